"""
Tests for the LaTeX compiler service. The engine process is stubbed out.
"""

import subprocess
from pathlib import Path

import pytest

from octree.services.latex_compiler_service import LatexCompilerService
from octree.utils.exceptions import LatexSafetyError

SOURCE = "\\documentclass{article}\n\\begin{document}\nHi\n\\end{document}\n"


@pytest.fixture
def service(monkeypatch):
    service = LatexCompilerService()
    monkeypatch.setattr(service, "available_engines", lambda: {"tectonic": False, "pdflatex": True})
    return service


def test_empty_source_fails(service):
    result = service.compile_to_pdf(tex_source="   ")
    assert result.success is False
    assert result.error_message == "Empty LaTeX source."


def test_oversized_source_fails(service):
    result = service.compile_to_pdf(tex_source="x" * 20, max_source_chars=10)
    assert result.success is False
    assert "too large" in result.error_message


def test_safe_mode_rejects_shell_escape(service):
    with pytest.raises(LatexSafetyError) as exc:
        service.compile_to_pdf(tex_source="\\immediate\\write18{rm -rf /}", safe_mode=True)
    assert exc.value.violations


def test_missing_engine_fails(monkeypatch):
    service = LatexCompilerService()
    monkeypatch.setattr(service, "available_engines", lambda: {"tectonic": False, "pdflatex": False})
    result = service.compile_to_pdf(tex_source=SOURCE)
    assert result.success is False
    assert "No LaTeX compiler available" in result.error_message


def test_successful_run_returns_pdf(service, monkeypatch):
    def fake_run(cmd, *, cwd, timeout_seconds):
        assert cmd[0] == "pdflatex"
        assert "-no-shell-escape" in cmd
        out_dir = Path(cwd) / "out"
        (out_dir / "main.pdf").write_bytes(b"%PDF-1.5 built")
        (out_dir / "main.log").write_text("Output written on main.pdf")
        return 0, "ok", ""

    monkeypatch.setattr(service, "_run", fake_run)
    result = service.compile_to_pdf(tex_source=SOURCE)

    assert result.success is True
    assert result.engine == "pdflatex"
    assert result.pdf_bytes == b"%PDF-1.5 built"
    assert "Output written" in result.log


def test_failed_run_keeps_log(service, monkeypatch):
    monkeypatch.setattr(service, "_run", lambda cmd, *, cwd, timeout_seconds: (1, "", "! Undefined control sequence."))
    result = service.compile_to_pdf(tex_source=SOURCE)

    assert result.success is False
    assert result.exit_code == 1
    assert "Undefined control sequence" in result.log


def test_timeout_is_reported(service, monkeypatch):
    def slow(cmd, *, cwd, timeout_seconds):
        raise subprocess.TimeoutExpired(cmd, timeout_seconds)

    monkeypatch.setattr(service, "_run", slow)
    result = service.compile_to_pdf(tex_source=SOURCE, timeout_seconds=3)

    assert result.success is False
    assert "timed out after 3s" in result.error_message


@pytest.mark.asyncio
async def test_async_compile_turns_safety_error_into_result(service):
    result = await service.compile("\\openout\\x=file.txt", safe_mode=True)
    assert result.success is False
    assert "Unsafe LaTeX" in result.error_message


def test_pick_engine_honours_installed_preference(monkeypatch):
    service = LatexCompilerService()
    monkeypatch.setattr(service, "available_engines", lambda: {"tectonic": True, "pdflatex": True})
    assert service.pick_engine() == "tectonic"
    assert service.pick_engine("pdflatex") == "pdflatex"

    monkeypatch.setattr(service, "available_engines", lambda: {"tectonic": False, "pdflatex": True})
    assert service.pick_engine("tectonic") is None
