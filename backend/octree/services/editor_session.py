"""
One open document in the editor: buffer, suggestion queue, decorations, autosave and
recompilation, wired together the way the browser workspace wires them.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Tuple

from loguru import logger

from octree.core.config import settings
from octree.core.logging import context_logger
from octree.schemas.editor import (
    CompilationErrorInfo,
    Decoration,
    Notification,
    NotificationKind,
    TextEdit,
    TextRange,
)
from octree.schemas.suggestion import EditSuggestion
from octree.services.assistant_service import AssistantService, assistant_service
from octree.services.conflict_resolver import ConflictResolver, conflict_resolver
from octree.services.decoration_projector import DecorationRenderer
from octree.services.edit_applicator import (
    ACCEPT_EDIT_SOURCE,
    ApplyOutcome,
    ApplyResult,
    EditApplicator,
)
from octree.services.edit_limit_service import EditLimitGate, StaticEditGate
from octree.services.latex_compiler_service import CompileResult, latex_compiler_service
from octree.services.latex_diff_parser import LatexDiffParser, latex_diff_parser
from octree.services.suggestion_store import SuggestionStore
from octree.services.text_model import ContentChangeEvent, TextModel
from octree.utils.debounce import Debouncer
from octree.utils.exceptions import OctreeException

USER_EDIT_SOURCE = "user"


class DocumentPersister(Protocol):
    async def save(self, document_id: str, content: str) -> None: ...


class Compiler(Protocol):
    async def compile(self, content: str) -> CompileResult: ...


class EditorSession:
    def __init__(
        self,
        *,
        document_id: str,
        text: str,
        persister: DocumentPersister,
        user_id: Optional[str] = None,
        gate: Optional[EditLimitGate] = None,
        compiler: Optional[Compiler] = None,
        resolver: Optional[ConflictResolver] = None,
        assistant: Optional[AssistantService] = None,
        parser: Optional[LatexDiffParser] = None,
        batch_size: Optional[int] = None,
        autosave_delay: Optional[float] = None,
        compile_delay: Optional[float] = None,
        session_id: Optional[str] = None,
    ):
        self.id = session_id or str(uuid.uuid4())
        self.document_id = document_id
        self.user_id = user_id
        self.persister = persister
        self.compiler = compiler or latex_compiler_service
        self.assistant = assistant or assistant_service
        self.parser = parser or latex_diff_parser

        self.buffer = TextModel(text)
        self.store = SuggestionStore(batch_size)
        self.renderer = DecorationRenderer(self.buffer)
        self.applicator = EditApplicator(
            self.buffer,
            self.store,
            gate or StaticEditGate(True),
            resolver or conflict_resolver,
            persist=self.save,
            schedule_compile=self.schedule_compile,
        )

        self.history: List[Dict[str, str]] = []
        self.notifications: List[Notification] = []
        self.dirty = False
        self.last_saved_at: Optional[datetime] = None
        self.pdf_bytes: Optional[bytes] = None
        self.compilation_error: Optional[CompilationErrorInfo] = None
        self.compiling = False
        self.last_compile: Optional[CompileResult] = None
        self._compile_generation = 0
        self._more_announced = False
        self.selected_text: Optional[str] = None

        self._autosave = Debouncer(
            settings.AUTOSAVE_DEBOUNCE_SECONDS if autosave_delay is None else autosave_delay,
            self.save,
            name=f"autosave-{self.id}",
        )
        self._autocompile = Debouncer(
            settings.COMPILE_DEBOUNCE_SECONDS if compile_delay is None else compile_delay,
            self.compile_now,
            name=f"autocompile-{self.id}",
        )
        self._disposers = [
            self.store.subscribe(self._on_store_change),
            self.buffer.on_did_change_model_content(self._on_content_change),
            self.buffer.on_did_change_cursor_selection(self._on_selection_change),
        ]

    # ---- views -------------------------------------------------------------

    @property
    def content(self) -> str:
        return self.buffer.get_value()

    @property
    def decorations(self) -> List[Decoration]:
        return list(self.renderer.current)

    @property
    def suggestions(self) -> List[EditSuggestion]:
        return self.store.displayed

    @property
    def has_more_suggestions(self) -> bool:
        return self.store.has_more

    def drain_notifications(self) -> List[Notification]:
        drained, self.notifications = self.notifications, []
        return drained

    def notify(self, kind: NotificationKind, message: str, *, level: str = "info", **kwargs) -> Notification:
        notification = Notification(kind=kind, level=level, message=message, **kwargs)
        self.notifications.append(notification)
        context_logger(session_id=self.id, notification=kind.value).log(level.upper(), message)
        return notification

    # ---- assistant -----------------------------------------------------------

    def receive_assistant_response(self, text: str) -> List[EditSuggestion]:
        """Parse a finished assistant reply and make its suggestions the current turn."""
        suggestions = self.parser.parse(text)
        self.history.append({"role": "assistant", "content": text})
        self.store.load(suggestions)
        return self.store.displayed

    async def ask_assistant(self, prompt: str, selection: Optional[str] = None) -> Tuple[str, List[EditSuggestion]]:
        """One assistant turn; without an explicit excerpt the current editor selection is sent."""
        if selection is None:
            selection = self.selected_text
        reply = await self.assistant.respond(
            file_content=self.content,
            prompt=prompt,
            history=self.history,
            selection=selection,
        )
        self.history.append({"role": "user", "content": prompt})
        return reply, self.receive_assistant_response(reply)

    # ---- suggestion actions ----------------------------------------------------

    async def accept(self, suggestion_id: str) -> ApplyResult:
        result = await self.applicator.accept(suggestion_id)
        if result.outcome == ApplyOutcome.LIMIT_REACHED:
            self.notify(NotificationKind.LIMIT_REACHED, result.message, level="warning", suggestion_id=suggestion_id)
        elif result.outcome == ApplyOutcome.FAILED:
            self.notify(
                NotificationKind.APPLY_FAILED,
                f"Failed to apply suggestion: {result.message}",
                level="error",
                suggestion_id=suggestion_id,
                retryable=True,
            )
        elif result.outcome == ApplyOutcome.CONFLICT_RESOLVED:
            self.notify(
                NotificationKind.CONFLICT_RESOLVED,
                f"Document changed; suggestion re-anchored into {len(result.replacements)} updated suggestion(s)",
                suggestion_id=suggestion_id,
            )
        elif result.outcome == ApplyOutcome.CONFLICT_FAILED:
            self.notify(
                NotificationKind.CONFLICT_FAILED,
                f"Could not re-anchor suggestion: {result.message}",
                level="error",
                suggestion_id=suggestion_id,
            )
        return result

    def reject(self, suggestion_id: str) -> bool:
        return self.store.reject(suggestion_id)

    def continue_suggestions(self) -> bool:
        return self.store.advance()

    # ---- buffer ------------------------------------------------------------------

    def apply_user_edit(self, rng: TextRange, text: str) -> None:
        self.buffer.execute_edits(USER_EDIT_SOURCE, [TextEdit(range=rng, text=text)])

    def replace_content(self, text: str) -> None:
        self.buffer.set_value(text, source=USER_EDIT_SOURCE)

    def select(self, rng: TextRange) -> None:
        self.buffer.set_selection(rng)

    def _on_selection_change(self, rng: TextRange) -> None:
        self.selected_text = self.buffer.get_value_in_range(rng) or None

    def _on_content_change(self, event: ContentChangeEvent) -> None:
        self.renderer.render(self.store.displayed)
        self.dirty = True
        # Typing collapses the selection.
        self.selected_text = None
        if event.source != ACCEPT_EDIT_SOURCE:
            self._autosave.trigger()
            self._autocompile.trigger()

    def _on_store_change(self, store: SuggestionStore) -> None:
        self.renderer.render(store.displayed)
        if store.has_more:
            if not self._more_announced:
                self._more_announced = True
                self.notify(
                    NotificationKind.MORE_SUGGESTIONS,
                    f"{len(store.backlog)} more suggestion(s) available",
                )
        else:
            self._more_announced = False

    # ---- persistence and compilation ---------------------------------------------

    async def save(self) -> bool:
        """Write the buffer to storage; a failure keeps the session dirty for the next attempt."""
        self._autosave.cancel()
        content = self.content
        try:
            await self.persister.save(self.document_id, content)
        except OctreeException as e:
            self.dirty = True
            self.notify(
                NotificationKind.SAVE_FAILED,
                f"Failed to save document: {e.message}",
                level="error",
                retryable=True,
            )
            return False
        if self.content == content:
            self.dirty = False
        self.last_saved_at = datetime.utcnow()
        return True

    def schedule_compile(self) -> None:
        self._autocompile.trigger()

    async def compile_now(self) -> Optional[CompileResult]:
        """Compile the current buffer; results of superseded compiles are dropped."""
        self._autocompile.cancel()
        content = self.content
        if not content.strip():
            return None
        if self.dirty:
            await self.save()

        self._compile_generation += 1
        generation = self._compile_generation
        self.compiling = True
        try:
            result = await self.compiler.compile(content)
        finally:
            if generation == self._compile_generation:
                self.compiling = False

        if generation != self._compile_generation:
            logger.debug(f"Discarding stale compile result for session {self.id}")
            return result

        self.last_compile = result
        if result.success:
            self.pdf_bytes = result.pdf_bytes
            self.compilation_error = None
        else:
            self.compilation_error = CompilationErrorInfo(
                message=result.error_message or "Compilation failed",
                log=result.log,
                stdout=result.stdout,
                stderr=result.stderr,
                exit_code=result.exit_code,
            )
            self.notify(
                NotificationKind.COMPILE_FAILED,
                self.compilation_error.message,
                level="error",
                retryable=True,
            )
        return result

    async def retry_compile(self) -> Optional[CompileResult]:
        self.compilation_error = None
        return await self.compile_now()

    def dismiss_compilation_error(self) -> None:
        self.compilation_error = None

    async def flush(self) -> None:
        """Run any pending debounced save or compile to completion."""
        await self._autosave.flush()
        await self._autocompile.flush()

    async def close(self) -> None:
        self._autocompile.cancel()
        if self.dirty:
            await self.save()
        self._autosave.cancel()
        self.renderer.clear()
        for dispose in self._disposers:
            dispose()
        self._disposers = []
