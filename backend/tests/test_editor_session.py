"""
Tests for the editor session: assistant turns, accept flow, autosave and recompilation.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock

from octree.schemas.editor import DecorationKind, NotificationKind, TextRange
from octree.services.edit_applicator import ApplyOutcome
from octree.services.edit_limit_service import StaticEditGate
from octree.services.latex_compiler_service import CompileResult
from octree.utils.exceptions import ConflictResolutionError

from tests.factories import (
    FakeCompiler,
    FakeResolver,
    RecordingPersister,
    latex_diff_reply,
    make_session,
    make_suggestion,
)


def _kinds(session):
    return [n.kind for n in session.drain_notifications()]


@pytest.mark.asyncio
async def test_assistant_reply_becomes_decorated_suggestions(latex_document):
    session = make_session(latex_document)
    reply = latex_diff_reply(
        "@@ -3,1 +3,1 @@\n-Hello\n+Hello, world",
        "@@ -4,1 +4,1 @@\n-Second line\n+Line two",
    )

    suggestions = session.receive_assistant_response(reply)

    assert [s.start_line for s in suggestions] == [3, 4]
    assert all(s.is_pending for s in suggestions)
    assert len(session.decorations) == 4
    assert session.history[-1] == {"role": "assistant", "content": reply}
    await session.close()


@pytest.mark.asyncio
async def test_plain_reply_clears_previous_suggestions(latex_document):
    session = make_session(latex_document)
    session.receive_assistant_response(latex_diff_reply("@@ -3,1 +3,1 @@\n-Hello\n+Hi"))

    session.receive_assistant_response("LaTeX uses \\emph for emphasis.")

    assert session.suggestions == []
    assert session.decorations == []
    await session.close()


@pytest.mark.asyncio
async def test_accept_applies_saves_and_recompiles(latex_document):
    persister = RecordingPersister()
    compiler = FakeCompiler()
    session = make_session(latex_document, persister=persister, compiler=compiler)
    [s] = session.receive_assistant_response(latex_diff_reply("@@ -3,1 +3,1 @@\n-Hello\n+Hello, world"))

    result = await session.accept(s.id)
    await session.flush()

    assert result.outcome == ApplyOutcome.APPLIED
    assert session.buffer.get_line_content(3) == "Hello, world"
    assert persister.saved == [("doc-1", session.content)]
    assert session.dirty is False
    assert compiler.calls == [session.content]
    assert session.pdf_bytes == b"%PDF-1.5 test"
    assert session.decorations == []
    await session.close()


@pytest.mark.asyncio
async def test_limit_reached_is_notified(latex_document):
    session = make_session(latex_document, gate=StaticEditGate(False))
    [s] = session.receive_assistant_response(latex_diff_reply("@@ -3,1 +3,1 @@\n-Hello\n+Hi"))

    result = await session.accept(s.id)

    assert result.outcome == ApplyOutcome.LIMIT_REACHED
    assert session.content == latex_document
    assert session.suggestions[0].is_pending
    notifications = session.drain_notifications()
    assert notifications[0].kind == NotificationKind.LIMIT_REACHED
    assert "upgrade" in notifications[0].message.lower()
    await session.close()


@pytest.mark.asyncio
async def test_save_failure_keeps_edit_and_retries_later(latex_document):
    persister = RecordingPersister(fail=True)
    session = make_session(latex_document, persister=persister)
    [s] = session.receive_assistant_response(latex_diff_reply("@@ -3,1 +3,1 @@\n-Hello\n+Hi"))

    result = await session.accept(s.id)

    assert result.outcome == ApplyOutcome.APPLIED
    assert result.persisted is False
    assert session.buffer.get_line_content(3) == "Hi"
    assert session.dirty is True
    assert NotificationKind.SAVE_FAILED in _kinds(session)

    persister.fail = False
    assert await session.save() is True
    assert session.dirty is False
    assert persister.saved[-1][1] == session.content
    await session.close()


@pytest.mark.asyncio
async def test_conflict_outcomes_are_notified(latex_document):
    resolved = make_suggestion(3, original="Hello", suggested="Hi")
    session = make_session(latex_document, resolver=FakeResolver([resolved]))
    [s] = session.receive_assistant_response(latex_diff_reply("@@ -8,1 +8,1 @@\n-Hello\n+Hi"))

    result = await session.accept(s.id)

    assert result.outcome == ApplyOutcome.CONFLICT_RESOLVED
    assert [x.id for x in session.suggestions] == [resolved.id]
    assert NotificationKind.CONFLICT_RESOLVED in _kinds(session)

    session.applicator.resolver = FakeResolver(error=ConflictResolutionError("no usable block"))
    session.receive_assistant_response(latex_diff_reply("@@ -8,1 +8,1 @@\n-Hello\n+Hi"))
    result = await session.accept(session.suggestions[0].id)

    assert result.outcome == ApplyOutcome.CONFLICT_FAILED
    assert session.suggestions == []
    assert NotificationKind.CONFLICT_FAILED in _kinds(session)
    assert session.content == latex_document
    await session.close()


@pytest.mark.asyncio
async def test_more_suggestions_after_batch_is_done(latex_document):
    session = make_session(latex_document, batch_size=5)
    hunks = [f"@@ -{i},1 +{i},1 @@\n-x{i}\n+y{i}" for i in range(1, 8)]
    displayed = session.receive_assistant_response(latex_diff_reply(*hunks))

    assert len(displayed) == 5
    assert not session.has_more_suggestions
    assert session.continue_suggestions() is False

    for s in displayed:
        session.reject(s.id)

    assert session.has_more_suggestions
    assert _kinds(session).count(NotificationKind.MORE_SUGGESTIONS) == 1
    assert session.continue_suggestions() is True
    assert [s.start_line for s in session.suggestions] == [6, 7]
    await session.close()


@pytest.mark.asyncio
async def test_user_edit_reprojects_and_autosaves(latex_document):
    persister = RecordingPersister()
    session = make_session(latex_document, persister=persister)
    session.receive_assistant_response(latex_diff_reply("@@ -5,1 +5,1 @@\n-\\end{document}\n+% end\n+\\end{document}"))
    assert any(d.kind == DecorationKind.DELETED_RANGE for d in session.decorations)

    # Deleting line 4 shrinks the buffer to four lines, so line 5 is out of bounds.
    session.apply_user_edit(
        TextRange(start_line=3, start_column=6, end_line=4, end_column=12),
        "",
    )

    assert session.buffer.get_line_count() == 4
    assert session.decorations == []
    assert session.dirty is True

    await session.flush()
    assert persister.saved[-1][1] == session.content
    assert session.dirty is False
    await session.close()


@pytest.mark.asyncio
async def test_compile_failure_and_retry(latex_document):
    compiler = FakeCompiler(success=False)
    session = make_session(latex_document, compiler=compiler)

    result = await session.compile_now()

    assert result.success is False
    assert session.compilation_error.message == "Compilation failed (exit code 1)."
    assert session.compilation_error.log == "! Undefined control sequence."
    assert NotificationKind.COMPILE_FAILED in _kinds(session)

    compiler.success = True
    result = await session.retry_compile()

    assert result.success is True
    assert session.compilation_error is None
    assert session.pdf_bytes is not None
    await session.close()


@pytest.mark.asyncio
async def test_stale_compile_result_is_discarded(latex_document):
    release = asyncio.Event()

    class GatedCompiler:
        def __init__(self):
            self.calls = 0

        async def compile(self, content):
            self.calls += 1
            if self.calls == 1:
                await release.wait()
                return CompileResult(success=False, error_message="stale failure")
            return CompileResult(success=True, pdf_bytes=b"fresh")

    session = make_session(latex_document, compiler=GatedCompiler())
    first = asyncio.create_task(session.compile_now())
    await asyncio.sleep(0)

    await session.compile_now()
    release.set()
    await first

    assert session.pdf_bytes == b"fresh"
    assert session.compilation_error is None
    assert session.compiling is False
    await session.close()


@pytest.mark.asyncio
async def test_empty_document_is_not_compiled():
    compiler = FakeCompiler()
    session = make_session("   ", compiler=compiler)

    assert await session.compile_now() is None
    assert compiler.calls == []
    await session.close()


@pytest.mark.asyncio
async def test_ask_assistant_sends_history_and_parses_reply(latex_document):
    session = make_session(latex_document)
    reply = latex_diff_reply("@@ -3,1 +3,1 @@\n-Hello\n+Bonjour")
    session.assistant = AsyncMock()
    session.assistant.respond = AsyncMock(return_value=reply)

    text, suggestions = await session.ask_assistant("Translate line 3 to French", selection="Hello")

    kwargs = session.assistant.respond.await_args.kwargs
    assert kwargs["file_content"] == latex_document
    assert kwargs["selection"] == "Hello"
    assert text == reply
    assert suggestions[0].suggested == "Bonjour"
    assert [m["role"] for m in session.history] == ["user", "assistant"]
    await session.close()


@pytest.mark.asyncio
async def test_ask_assistant_sends_current_selection(latex_document):
    session = make_session(latex_document)
    session.assistant = AsyncMock()
    session.assistant.respond = AsyncMock(return_value="Nothing to change.")

    session.select(TextRange(start_line=4, start_column=1, end_line=4, end_column=7))
    assert session.selected_text == "Second"
    await session.ask_assistant("Improve this")
    assert session.assistant.respond.await_args.kwargs["selection"] == "Second"

    session.apply_user_edit(TextRange(start_line=1, start_column=1, end_line=1, end_column=1), "% ")
    assert session.selected_text is None
    await session.ask_assistant("And now?")
    assert session.assistant.respond.await_args.kwargs["selection"] is None
    await session.close()


@pytest.mark.asyncio
async def test_close_saves_dirty_buffer_and_clears_decorations(latex_document):
    persister = RecordingPersister()
    session = make_session(latex_document, persister=persister, autosave_delay=30)
    session.receive_assistant_response(latex_diff_reply("@@ -3,1 +3,1 @@\n-Hello\n+Hi"))
    session.apply_user_edit(TextRange(start_line=1, start_column=1, end_line=1, end_column=1), "% ")

    await session.close()

    assert persister.saved == [("doc-1", session.content)]
    assert session.buffer.get_decorations() == []
