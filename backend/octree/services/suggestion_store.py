"""
Ordered queue of the suggestions from one assistant turn.

The first `batch_size` suggestions are displayed; the rest wait in the backlog until the
user explicitly continues. Accepted and rejected suggestions leave `displayed` at once.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Set

from loguru import logger

from octree.core.config import settings
from octree.schemas.suggestion import EditSuggestion, SuggestionStatus

StoreListener = Callable[["SuggestionStore"], None]


class SuggestionStore:
    def __init__(self, batch_size: Optional[int] = None):
        self.batch_size = batch_size or settings.SUGGESTION_BATCH_SIZE
        self._displayed: List[EditSuggestion] = []
        self._backlog: List[EditSuggestion] = []
        self._in_flight: Set[str] = set()
        self._listeners: List[StoreListener] = []

    @property
    def displayed(self) -> List[EditSuggestion]:
        return list(self._displayed)

    @property
    def backlog(self) -> List[EditSuggestion]:
        return list(self._backlog)

    @property
    def pending(self) -> List[EditSuggestion]:
        return [s for s in self._displayed if s.is_pending]

    @property
    def has_more(self) -> bool:
        """True when the displayed batch is finished and another one is waiting."""
        return not self.pending and bool(self._backlog)

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def get(self, suggestion_id: str) -> Optional[EditSuggestion]:
        for s in self._displayed:
            if s.id == suggestion_id:
                return s
        return None

    def load(self, suggestions: Sequence[EditSuggestion]) -> None:
        """Replace everything with one assistant turn's suggestions (an empty turn clears)."""
        fresh = [s.model_copy(update={"status": SuggestionStatus.PENDING}) for s in suggestions]
        self._displayed = fresh[: self.batch_size]
        self._backlog = fresh[self.batch_size:]
        self._in_flight.clear()
        logger.info(f"Loaded {len(fresh)} suggestions ({len(self._displayed)} displayed, {len(self._backlog)} queued)")
        self._emit()

    def clear(self) -> None:
        self.load([])

    def reject(self, suggestion_id: str) -> bool:
        suggestion = self.get(suggestion_id)
        if suggestion is None or not suggestion.is_pending or suggestion_id in self._in_flight:
            return False
        suggestion.status = SuggestionStatus.REJECTED
        self._displayed.remove(suggestion)
        logger.info(f"Rejected suggestion {suggestion_id}")
        self._emit()
        return True

    def claim(self, suggestion_id: str) -> Optional[EditSuggestion]:
        """Reserve a displayed pending suggestion for an accept; None if unavailable."""
        suggestion = self.get(suggestion_id)
        if suggestion is None or not suggestion.is_pending or suggestion_id in self._in_flight:
            return None
        self._in_flight.add(suggestion_id)
        return suggestion

    def release(self, suggestion_id: str) -> None:
        """Give up a claim; the suggestion stays pending and displayed."""
        self._in_flight.discard(suggestion_id)

    def mark_accepted(self, suggestion_id: str) -> bool:
        suggestion = self.get(suggestion_id)
        self._in_flight.discard(suggestion_id)
        if suggestion is None or not suggestion.is_pending:
            return False
        suggestion.status = SuggestionStatus.ACCEPTED
        self._displayed.remove(suggestion)
        logger.info(f"Accepted suggestion {suggestion_id}")
        self._emit()
        return True

    def replace(self, suggestion_id: str, replacements: Sequence[EditSuggestion]) -> bool:
        """Swap a stale suggestion for freshly resolved ones, in the same slot.

        With no replacements the stale suggestion is simply discarded.
        """
        self._in_flight.discard(suggestion_id)
        suggestion = self.get(suggestion_id)
        if suggestion is None:
            return False
        index = self._displayed.index(suggestion)
        fresh = [s.model_copy(update={"status": SuggestionStatus.PENDING}) for s in replacements]
        self._displayed[index:index + 1] = fresh
        logger.info(f"Replaced stale suggestion {suggestion_id} with {len(fresh)} resolved suggestion(s)")
        self._emit()
        return True

    def advance(self) -> bool:
        """Display the next batch once the current one has no pending entries."""
        if self.pending or not self._backlog:
            return False
        self._displayed = [
            s.model_copy(update={"status": SuggestionStatus.PENDING})
            for s in self._backlog[: self.batch_size]
        ]
        self._backlog = self._backlog[self.batch_size:]
        logger.info(f"Advanced to next batch ({len(self._displayed)} displayed, {len(self._backlog)} queued)")
        self._emit()
        return True

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener(self)
