"""
Accepting a suggestion against the live buffer.

Order of effects: edit-limit gate, anchor re-validation, one attributed range replacement,
status change, persistence, then a (debounced) recompilation. A stale anchor is never applied;
it is handed to the conflict resolver, and the suggestion is replaced by whatever comes back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence

from loguru import logger

from octree.core.config import settings
from octree.schemas.editor import TextEdit, TextRange
from octree.schemas.suggestion import EditSuggestion
from octree.services.conflict_resolver import ConflictResolver, is_small_change
from octree.services.decoration_projector import anchor_range
from octree.services.edit_limit_service import EditLimitGate
from octree.services.suggestion_store import SuggestionStore
from octree.utils.exceptions import (
    AnchorMismatchError,
    ApplyError,
    BoundsError,
    ConflictResolutionError,
    LimitExceededError,
    OctreeException,
)

ACCEPT_EDIT_SOURCE = "accept-ai-suggestion"


class EditableBuffer(Protocol):
    def get_value(self) -> str: ...

    def get_value_in_range(self, rng: TextRange) -> str: ...

    def get_line_count(self) -> int: ...

    def get_line_max_column(self, line_number: int) -> int: ...

    def execute_edits(self, source: str, edits: Sequence[TextEdit]) -> None: ...


class ApplyOutcome(str, Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    LIMIT_REACHED = "limit_reached"
    CONFLICT_RESOLVED = "conflict_resolved"
    CONFLICT_FAILED = "conflict_failed"
    FAILED = "failed"


@dataclass
class ApplyResult:
    outcome: ApplyOutcome
    suggestion_id: str
    error: Optional[OctreeException] = None
    replacements: List[EditSuggestion] = field(default_factory=list)
    persisted: Optional[bool] = None

    @property
    def applied(self) -> bool:
        return self.outcome == ApplyOutcome.APPLIED

    @property
    def message(self) -> Optional[str]:
        return self.error.message if self.error else None


def _lines(text: str) -> List[str]:
    return [line.rstrip() for line in text.split("\n")]


class EditApplicator:
    def __init__(
        self,
        buffer: EditableBuffer,
        store: SuggestionStore,
        gate: EditLimitGate,
        resolver: ConflictResolver,
        persist: Optional[Callable[[], Awaitable[bool]]] = None,
        schedule_compile: Optional[Callable[[], None]] = None,
        strict_anchor_check: Optional[bool] = None,
    ):
        self.buffer = buffer
        self.store = store
        self.gate = gate
        self.resolver = resolver
        self.persist = persist
        self.schedule_compile = schedule_compile
        self.strict_anchor_check = settings.STRICT_ANCHOR_CHECK if strict_anchor_check is None else strict_anchor_check

    def validate_anchor(self, suggestion: EditSuggestion) -> TextRange:
        """Range to replace in the current buffer; raises when the anchor has drifted."""
        rng = anchor_range(suggestion, self.buffer)
        if rng is None:
            raise BoundsError(
                suggestion.id, suggestion.start_line, suggestion.end_line, self.buffer.get_line_count()
            )
        if self.strict_anchor_check and suggestion.original_line_count > 0 and suggestion.original:
            current = self.buffer.get_value_in_range(rng)
            if _lines(current) != _lines(suggestion.original):
                raise AnchorMismatchError(suggestion.id, rng.start_line, rng.end_line, current)
        return rng

    def current_text_at(self, suggestion: EditSuggestion) -> str:
        """Whatever occupies the suggestion's lines now, clipped to the buffer."""
        line_count = self.buffer.get_line_count()
        start = max(1, suggestion.start_line)
        if start > line_count:
            return ""
        end = min(line_count, suggestion.end_line)
        return self.buffer.get_value_in_range(
            TextRange(start_line=start, start_column=1, end_line=end, end_column=self.buffer.get_line_max_column(end))
        )

    async def accept(self, suggestion_id: str) -> ApplyResult:
        suggestion = self.store.claim(suggestion_id)
        if suggestion is None:
            return ApplyResult(ApplyOutcome.SKIPPED, suggestion_id)

        try:
            allowed = await self.gate.can_perform_edit()
        except Exception as e:
            self.store.release(suggestion_id)
            logger.error(f"Error checking edit limits: {e}")
            return ApplyResult(
                ApplyOutcome.FAILED,
                suggestion_id,
                error=ApplyError(suggestion_id, f"Could not check edit limits: {e}"),
            )
        if not allowed:
            self.store.release(suggestion_id)
            return ApplyResult(ApplyOutcome.LIMIT_REACHED, suggestion_id, error=LimitExceededError())

        # The gate suspends; a newer assistant turn may have replaced the batch meanwhile.
        if self.store.get(suggestion_id) is not suggestion:
            logger.info(f"Suggestion {suggestion_id} was superseded while checking limits")
            return ApplyResult(ApplyOutcome.SKIPPED, suggestion_id)

        try:
            rng = self.validate_anchor(suggestion)
        except (BoundsError, AnchorMismatchError) as e:
            logger.warning(f"{e.message}; routing to conflict resolution")
            return await self._resolve_conflict(suggestion)

        text = suggestion.suggested
        if suggestion.is_insertion:
            text += "\n"
        try:
            self.buffer.execute_edits(
                ACCEPT_EDIT_SOURCE,
                [TextEdit(range=rng, text=text, force_move_markers=True)],
            )
        except Exception as e:
            self.store.release(suggestion_id)
            logger.error(f"Error applying edit {suggestion_id}: {e}")
            return ApplyResult(ApplyOutcome.FAILED, suggestion_id, error=ApplyError(suggestion_id, str(e)))

        self.store.mark_accepted(suggestion_id)

        persisted = None
        if self.persist is not None:
            persisted = await self.persist()
        if self.schedule_compile is not None:
            self.schedule_compile()
        return ApplyResult(ApplyOutcome.APPLIED, suggestion_id, persisted=persisted)

    async def _resolve_conflict(self, suggestion: EditSuggestion) -> ApplyResult:
        file_content = self.buffer.get_value()
        current_text = self.current_text_at(suggestion)
        try:
            replacements = await self.resolver.resolve(
                file_content, suggestion, current_text, is_small_change(suggestion)
            )
        except Exception as e:
            # Any failure drops the stale suggestion.
            self.store.replace(suggestion.id, [])
            if isinstance(e, ConflictResolutionError):
                error = e
            elif isinstance(e, OctreeException):
                error = ConflictResolutionError(e.message, e.detail)
            else:
                logger.exception(f"Unexpected resolver failure for {suggestion.id}")
                error = ConflictResolutionError(f"unexpected {type(e).__name__}", str(e))
            logger.error(f"Conflict resolution failed for {suggestion.id}: {error.message}")
            return ApplyResult(ApplyOutcome.CONFLICT_FAILED, suggestion.id, error=error)

        if not self.store.replace(suggestion.id, replacements):
            logger.info(f"Dropping resolved replacements for superseded suggestion {suggestion.id}")
            return ApplyResult(ApplyOutcome.SKIPPED, suggestion.id)
        resolved = [self.store.get(r.id) for r in replacements]
        return ApplyResult(
            ApplyOutcome.CONFLICT_RESOLVED,
            suggestion.id,
            replacements=[r for r in resolved if r is not None],
        )
