"""
Parser for the ```latex-diff fenced blocks embedded in assistant replies.

Each block holds one hunk:

    @@ -<origStart>[,<origCount>] +<newStart>[,<newCount>] @@
    -removed line
    +added line

Lines without a `-`/`+` prefix are ignored. A malformed block is logged and skipped;
parsing never raises for bad input.
"""

from __future__ import annotations

import re
from typing import Iterator, List

from loguru import logger
from pydantic import ValidationError

from octree.schemas.suggestion import DiffHunk, EditSuggestion, SuggestionStatus
from octree.utils.exceptions import DiffParseError

DIFF_BLOCK_RE = re.compile(r"```latex-diff\n([\s\S]*?)\n```")
DIFF_HEADER_RE = re.compile(
    r"@@\s*-(?P<orig_start>\d+)(?:,(?P<orig_count>\d+))?\s*\+(?P<new_start>\d+)(?:,(?P<new_count>\d+))?\s*@@"
)


class LatexDiffParser:
    def iter_blocks(self, response_text: str) -> Iterator[str]:
        text = (response_text or "").replace("\r\n", "\n")
        for m in DIFF_BLOCK_RE.finditer(text):
            yield m.group(1)

    def parse_hunk(self, block: str) -> DiffHunk:
        lines = block.strip().split("\n")
        header = lines[0] if lines else ""
        m = DIFF_HEADER_RE.search(header)
        if not m:
            raise DiffParseError("missing or malformed hunk header", header=header)

        def _opt(name: str):
            v = m.group(name)
            return int(v) if v is not None else None

        return DiffHunk(
            orig_start=int(m.group("orig_start")),
            orig_count=_opt("orig_count"),
            new_start=int(m.group("new_start")),
            new_count=_opt("new_count"),
            body=lines[1:],
        )

    def hunk_to_suggestion(self, hunk: DiffHunk) -> EditSuggestion | None:
        """Fold a hunk into a suggestion, or None when it changes nothing."""
        original = ""
        suggested = ""
        removed_count = 0
        first_change_index = -1

        for index, line in enumerate(hunk.body):
            if line.startswith("-"):
                original += line[1:] + "\n"
                removed_count += 1
            elif line.startswith("+"):
                suggested += line[1:] + "\n"
            else:
                continue
            if first_change_index == -1:
                first_change_index = index

        start_line = hunk.orig_start + first_change_index if first_change_index != -1 else hunk.orig_start

        # The header count is only trusted when the body has no removals of its own.
        declared_count = hunk.orig_count or 0
        if removed_count == 0 and declared_count > 0:
            removed_count = declared_count

        original = original[:-1] if original.endswith("\n") else original
        suggested = suggested[:-1] if suggested.endswith("\n") else suggested

        if not original and not suggested:
            return None

        return EditSuggestion(
            original=original,
            suggested=suggested,
            start_line=start_line,
            original_line_count=removed_count,
            status=SuggestionStatus.PENDING,
        )

    def parse(self, response_text: str) -> List[EditSuggestion]:
        suggestions: List[EditSuggestion] = []
        for block in self.iter_blocks(response_text):
            try:
                suggestion = self.hunk_to_suggestion(self.parse_hunk(block))
            except DiffParseError as e:
                logger.error(f"{e.message}: {e.header!r}")
                continue
            except ValidationError as e:
                logger.error(f"Discarding latex-diff block with invalid anchor: {e.errors()[0].get('msg')}")
                continue
            if suggestion is not None:
                suggestions.append(suggestion)
        return suggestions


latex_diff_parser = LatexDiffParser()


def parse_latex_diff(response_text: str) -> List[EditSuggestion]:
    return latex_diff_parser.parse(response_text)
