"""
LaTeX compilation service: text in, PDF bytes or a structured error out.
"""

from __future__ import annotations

import asyncio
import re
import shutil
import subprocess
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from loguru import logger

from octree.core.config import settings
from octree.core.logging import log_service_call
from octree.utils.exceptions import LatexSafetyError


@dataclass(frozen=True)
class CompileResult:
    success: bool
    engine: Optional[str] = None
    pdf_bytes: Optional[bytes] = None
    error_message: Optional[str] = None
    log: str = ""
    stdout: Optional[str] = None
    stderr: Optional[str] = None
    exit_code: Optional[int] = None


_FORBIDDEN_PATTERNS: List[Tuple[str, str]] = [
    (r"\\write18\b", "Disallowed: \\write18"),
    (r"\\(?:openin|openout|read|write)\b", "Disallowed: low-level I/O (\\openin/\\openout/\\read/\\write)"),
]


def _check_safe_mode(tex_source: str) -> List[str]:
    violations: List[str] = []
    for pattern, reason in _FORBIDDEN_PATTERNS:
        if re.search(pattern, tex_source):
            violations.append(reason)
    return violations


def _failure(message: str, **kwargs) -> CompileResult:
    return CompileResult(success=False, error_message=message, log=kwargs.pop("log", "") or message, **kwargs)


class LatexCompilerService:
    ENGINES = ("tectonic", "pdflatex")

    def available_engines(self) -> Dict[str, bool]:
        return {name: shutil.which(name) is not None for name in self.ENGINES}

    def check_safe_mode(self, tex_source: str) -> List[str]:
        return _check_safe_mode(tex_source or "")

    def pick_engine(self, preferred: Optional[str] = None) -> Optional[str]:
        """Preferred engine when installed, otherwise the first one found on PATH."""
        installed = [name for name, ok in self.available_engines().items() if ok]
        wanted = preferred or settings.LATEX_PREFERRED_ENGINE
        if wanted:
            return wanted if wanted in installed else None
        return installed[0] if installed else None

    @staticmethod
    def _command(engine: str, source: Path, out_dir: Path) -> List[str]:
        if engine == "tectonic":
            return ["tectonic", "--outdir", str(out_dir), source.name]
        return [
            "pdflatex",
            "-interaction=nonstopmode",
            "-halt-on-error",
            "-file-line-error",
            "-no-shell-escape",
            f"-output-directory={out_dir}",
            source.name,
        ]

    @staticmethod
    def _run(cmd: List[str], *, cwd: Path, timeout_seconds: int) -> Tuple[int, str, str]:
        proc = subprocess.run(cmd, cwd=str(cwd), capture_output=True, text=True, timeout=timeout_seconds, check=False)
        return proc.returncode, proc.stdout or "", proc.stderr or ""

    @staticmethod
    def _collect_log(out_dir: Path, stdout: str, stderr: str) -> str:
        chunks = [stdout.strip(), stderr.strip()]
        engine_log = out_dir / "main.log"
        if engine_log.exists():
            chunks.append(engine_log.read_text(encoding="utf-8", errors="replace").strip())
        return "\n\n".join(chunk for chunk in chunks if chunk)

    def compile_to_pdf(
        self,
        *,
        tex_source: str,
        timeout_seconds: Optional[int] = None,
        max_source_chars: Optional[int] = None,
        safe_mode: Optional[bool] = None,
        preferred_engine: Optional[str] = None,
    ) -> CompileResult:
        """Blocking compile of one standalone document in a throwaway directory."""
        timeout_seconds = timeout_seconds or settings.LATEX_COMPILE_TIMEOUT_SECONDS
        limit = max_source_chars or settings.LATEX_MAX_SOURCE_CHARS
        source = (tex_source or "").replace("\r\n", "\n")

        if not source.strip():
            return _failure("Empty LaTeX source.")
        if len(source) > limit:
            return _failure(f"LaTeX source too large ({len(source)} chars; max {limit}).")
        if settings.LATEX_SAFE_MODE if safe_mode is None else safe_mode:
            violations = _check_safe_mode(source)
            if violations:
                raise LatexSafetyError("Unsafe LaTeX detected in safe_mode.", violations=violations)

        engine = self.pick_engine(preferred_engine)
        if engine is None:
            return _failure("No LaTeX compiler available on server. Install `tectonic` or `pdflatex`.")

        with tempfile.TemporaryDirectory(prefix="octree_") as workdir:
            root = Path(workdir)
            out_dir = root / "out"
            out_dir.mkdir()
            main_tex = root / "main.tex"
            main_tex.write_text(source if source.endswith("\n") else source + "\n", encoding="utf-8")

            try:
                rc, stdout, stderr = self._run(self._command(engine, main_tex, out_dir), cwd=root, timeout_seconds=timeout_seconds)
            except subprocess.TimeoutExpired:
                return _failure(f"Compilation timed out after {timeout_seconds}s.", engine=engine)

            outputs = dict(
                engine=engine,
                log=self._collect_log(out_dir, stdout, stderr),
                stdout=stdout,
                stderr=stderr,
                exit_code=rc,
            )
            pdf_path = out_dir / "main.pdf"
            if rc != 0 or not pdf_path.exists():
                return _failure(f"Compilation failed (exit code {rc}).", **outputs)
            return CompileResult(success=True, pdf_bytes=pdf_path.read_bytes(), **outputs)

    async def compile(self, content: str, **kwargs) -> CompileResult:
        """Compile off the event loop with an upper bound on the wall-clock time."""
        timeout_seconds = kwargs.get("timeout_seconds") or settings.LATEX_COMPILE_TIMEOUT_SECONDS
        started = time.monotonic()
        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(self.compile_to_pdf, tex_source=content, **kwargs),
                timeout=timeout_seconds + 5,
            )
        except asyncio.TimeoutError:
            result = _failure(f"Compilation timed out after {timeout_seconds}s.")
        except LatexSafetyError as e:
            result = _failure(e.message, log="\n".join(e.violations))
        except OSError as e:
            logger.error(f"Compiler process error: {e}")
            result = _failure(f"Compiler process error: {e}")

        log_service_call(
            "LatexCompilerService",
            "compile",
            (time.monotonic() - started) * 1000,
            success=result.success,
            engine=result.engine,
        )
        return result


latex_compiler_service = LatexCompilerService()
