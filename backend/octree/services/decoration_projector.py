"""
Projection of pending suggestions onto editor decorations.

`project` is a pure function of the suggestions and the buffer's line metrics. The
`DecorationRenderer` owns the ids of the live decorations and swaps the whole set in one
`delta_decorations` call, so earlier projections never leak markers.
"""

from __future__ import annotations

from typing import Iterable, List, Protocol, Sequence

from loguru import logger

from octree.schemas.editor import (
    Decoration,
    DecorationKind,
    DecorationOptions,
    Stickiness,
    TextRange,
)
from octree.schemas.suggestion import EditSuggestion

DELETED_CLASS = "octra-suggestion-deleted"
GLYPH_CLASS = "octra-suggestion-glyph"
ADDED_CLASS = "octra-suggestion-added"
LINE_BREAK_GLYPH = " ↵ "


class LineMetrics(Protocol):
    def get_line_count(self) -> int: ...

    def get_line_max_column(self, line_number: int) -> int: ...


class DecoratedBuffer(LineMetrics, Protocol):
    def delta_decorations(self, old_ids: Sequence[str], new_decorations: Sequence[Decoration]) -> List[str]: ...


def anchor_range(suggestion: EditSuggestion, buffer: LineMetrics) -> TextRange | None:
    """Range covered by the suggestion's original text, or None when it is out of bounds."""
    start_line = suggestion.start_line
    end_line = suggestion.end_line
    line_count = buffer.get_line_count()
    if start_line <= 0 or end_line <= 0 or start_line > line_count or end_line > line_count:
        return None
    end_column = buffer.get_line_max_column(end_line) if suggestion.original_line_count > 0 else 1
    return TextRange(start_line=start_line, start_column=1, end_line=end_line, end_column=end_column)


def project(suggestions: Iterable[EditSuggestion], buffer: LineMetrics) -> List[Decoration]:
    decorations: List[Decoration] = []
    for suggestion in suggestions:
        if not suggestion.is_pending:
            continue
        rng = anchor_range(suggestion, buffer)
        if rng is None:
            logger.warning(
                f"Suggestion {suggestion.id} line numbers [{suggestion.start_line}-{suggestion.end_line}] "
                f"are out of bounds for line count {buffer.get_line_count()}. Skipping decoration."
            )
            continue

        if suggestion.original_line_count > 0:
            decorations.append(Decoration(
                suggestion_id=suggestion.id,
                kind=DecorationKind.DELETED_RANGE,
                range=rng,
                options=DecorationOptions(
                    class_name=DELETED_CLASS,
                    glyph_margin_class_name=GLYPH_CLASS,
                    glyph_margin_hover_message=f"Suggestion: Replace Lines {rng.start_line}-{rng.end_line}",
                    stickiness=Stickiness.NEVER_GROWS_WHEN_TYPING_AT_EDGES,
                ),
            ))
        else:
            decorations.append(Decoration(
                suggestion_id=suggestion.id,
                kind=DecorationKind.INSERTION_POINT,
                range=TextRange(start_line=rng.start_line, start_column=1, end_line=rng.start_line, end_column=1),
                options=DecorationOptions(
                    glyph_margin_class_name=GLYPH_CLASS,
                    glyph_margin_hover_message=f"Suggestion: Insert at Line {rng.start_line}",
                    stickiness=Stickiness.NEVER_GROWS_WHEN_TYPING_AT_EDGES,
                ),
            ))

        if suggestion.suggested.strip():
            decorations.append(Decoration(
                suggestion_id=suggestion.id,
                kind=DecorationKind.INLINE_PREVIEW,
                range=TextRange(
                    start_line=rng.end_line,
                    start_column=rng.end_column,
                    end_line=rng.end_line,
                    end_column=rng.end_column,
                ),
                options=DecorationOptions(
                    after_content=" " + suggestion.suggested.replace("\n", LINE_BREAK_GLYPH),
                    after_inline_class_name=ADDED_CLASS,
                    stickiness=Stickiness.NEVER_GROWS_WHEN_TYPING_AT_EDGES,
                ),
            ))
    return decorations


class DecorationRenderer:
    def __init__(self, buffer: DecoratedBuffer):
        self.buffer = buffer
        self.decoration_ids: List[str] = []
        self.current: List[Decoration] = []

    def render(self, suggestions: Iterable[EditSuggestion]) -> List[Decoration]:
        decorations = project(suggestions, self.buffer)
        self.decoration_ids = self.buffer.delta_decorations(self.decoration_ids, decorations)
        self.current = decorations
        return decorations

    def clear(self) -> None:
        self.decoration_ids = self.buffer.delta_decorations(self.decoration_ids, [])
        self.current = []
