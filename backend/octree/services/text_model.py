"""
In-process text model with the capability set the browser code editor exposes:
value access, attributed atomic edits, decoration swaps and change/selection events.

Decorations are stored as given and are not re-anchored by edits; the editor session
re-projects them after every content change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import count
from typing import Callable, Dict, List, Optional, Sequence

from loguru import logger

from octree.schemas.editor import Decoration, TextEdit, TextRange


@dataclass
class ContentChangeEvent:
    source: str
    version: int
    changes: List[TextEdit] = field(default_factory=list)


@dataclass
class UndoEntry:
    label: str
    before_text: str
    after_text: str


class UndoTimeline:
    """Linear undo/redo history; one entry per `execute_edits` call."""

    def __init__(self) -> None:
        self._entries: List[UndoEntry] = []
        self._index: int = -1

    def push(self, entry: UndoEntry) -> None:
        if self._index < len(self._entries) - 1:
            self._entries = self._entries[: self._index + 1]
        self._entries.append(entry)
        self._index = len(self._entries) - 1

    def can_undo(self) -> bool:
        return self._index >= 0

    def can_redo(self) -> bool:
        return self._index < len(self._entries) - 1

    def undo(self) -> Optional[UndoEntry]:
        if not self.can_undo():
            return None
        entry = self._entries[self._index]
        self._index -= 1
        return entry

    def redo(self) -> Optional[UndoEntry]:
        if not self.can_redo():
            return None
        self._index += 1
        return self._entries[self._index]

    @property
    def last_label(self) -> Optional[str]:
        return self._entries[self._index].label if self.can_undo() else None


ContentListener = Callable[[ContentChangeEvent], None]
SelectionListener = Callable[[TextRange], None]


class TextModel:
    def __init__(self, text: str = "") -> None:
        self._lines: List[str] = _split(text)
        self._version = 1
        self._decorations: Dict[str, Decoration] = {}
        self._decoration_ids = count(1)
        self._content_listeners: List[ContentListener] = []
        self._selection_listeners: List[SelectionListener] = []
        self._selection: Optional[TextRange] = None
        self.undo_timeline = UndoTimeline()

    # ---- value access ----

    @property
    def version(self) -> int:
        return self._version

    def get_value(self) -> str:
        return "\n".join(self._lines)

    def set_value(self, text: str, *, source: str = "set-value") -> None:
        before = self.get_value()
        self._lines = _split(text)
        self._commit(source, before, [])

    def get_line_count(self) -> int:
        return len(self._lines)

    def get_line_content(self, line_number: int) -> str:
        self._check_line(line_number)
        return self._lines[line_number - 1]

    def get_line_max_column(self, line_number: int) -> int:
        return len(self.get_line_content(line_number)) + 1

    def get_value_in_range(self, rng: TextRange) -> str:
        start, end = self._offsets(rng)
        return self.get_value()[start:end]

    # ---- edits ----

    def execute_edits(self, source: str, edits: Sequence[TextEdit]) -> None:
        """Apply all edits as one undoable unit. Nothing changes if any range is invalid."""
        text = self.get_value()
        resolved = sorted(((*self._offsets(e.range), e) for e in edits), key=lambda t: t[0], reverse=True)
        for i in range(1, len(resolved)):
            if resolved[i][1] > resolved[i - 1][0]:
                raise ValueError("Overlapping edit ranges")

        new_text = text
        for start, end, edit in resolved:
            new_text = new_text[:start] + edit.text + new_text[end:]

        self._lines = _split(new_text)
        self._commit(source, text, list(edits))

    def undo(self) -> bool:
        entry = self.undo_timeline.undo()
        if entry is None:
            return False
        self._lines = _split(entry.before_text)
        self._bump(f"undo:{entry.label}", [])
        return True

    def redo(self) -> bool:
        entry = self.undo_timeline.redo()
        if entry is None:
            return False
        self._lines = _split(entry.after_text)
        self._bump(f"redo:{entry.label}", [])
        return True

    # ---- decorations ----

    def delta_decorations(self, old_ids: Sequence[str], new_decorations: Sequence[Decoration]) -> List[str]:
        """Remove `old_ids` and add `new_decorations` in one step; returns the new ids."""
        for dec_id in old_ids:
            self._decorations.pop(dec_id, None)
        new_ids: List[str] = []
        for decoration in new_decorations:
            dec_id = f"dec-{next(self._decoration_ids)}"
            self._decorations[dec_id] = decoration
            new_ids.append(dec_id)
        return new_ids

    def get_decorations(self) -> List[Decoration]:
        return list(self._decorations.values())

    # ---- events ----

    def on_did_change_model_content(self, listener: ContentListener) -> Callable[[], None]:
        self._content_listeners.append(listener)
        return lambda: self._content_listeners.remove(listener)

    def on_did_change_cursor_selection(self, listener: SelectionListener) -> Callable[[], None]:
        self._selection_listeners.append(listener)
        return lambda: self._selection_listeners.remove(listener)

    def set_selection(self, rng: TextRange) -> None:
        self._offsets(rng)
        self._selection = rng
        for listener in list(self._selection_listeners):
            listener(rng)

    def get_selection(self) -> Optional[TextRange]:
        return self._selection

    # ---- internals ----

    def _commit(self, source: str, before: str, changes: List[TextEdit]) -> None:
        after = self.get_value()
        if after != before:
            self.undo_timeline.push(UndoEntry(label=source, before_text=before, after_text=after))
        self._bump(source, changes)

    def _bump(self, source: str, changes: List[TextEdit]) -> None:
        self._version += 1
        event = ContentChangeEvent(source=source, version=self._version, changes=changes)
        for listener in list(self._content_listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Content change listener failed: {e}")

    def _check_line(self, line_number: int) -> None:
        if line_number < 1 or line_number > len(self._lines):
            raise ValueError(f"Line {line_number} out of range (1-{len(self._lines)})")

    def _offset(self, line_number: int, column: int) -> int:
        self._check_line(line_number)
        max_column = len(self._lines[line_number - 1]) + 1
        if column < 1 or column > max_column:
            raise ValueError(f"Column {column} out of range for line {line_number} (1-{max_column})")
        return sum(len(line) + 1 for line in self._lines[: line_number - 1]) + column - 1

    def _offsets(self, rng: TextRange) -> tuple[int, int]:
        start = self._offset(rng.start_line, rng.start_column)
        end = self._offset(rng.end_line, rng.end_column)
        if end < start:
            raise ValueError("Range end precedes start")
        return start, end


def _split(text: str) -> List[str]:
    return (text or "").replace("\r\n", "\n").split("\n")
