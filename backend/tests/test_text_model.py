"""
Tests for the in-process text model.
"""

import pytest

from octree.schemas.editor import TextEdit, TextRange
from octree.services.text_model import TextModel


def _range(sl, sc, el, ec):
    return TextRange(start_line=sl, start_column=sc, end_line=el, end_column=ec)


def test_line_metrics():
    model = TextModel("ab\n\ncdef")
    assert model.get_line_count() == 3
    assert model.get_line_content(3) == "cdef"
    assert model.get_line_max_column(1) == 3
    assert model.get_line_max_column(2) == 1
    assert model.get_value_in_range(_range(1, 2, 3, 3)) == "b\n\ncd"


def test_execute_edits_is_one_undo_step():
    model = TextModel("one\ntwo\nthree")
    model.execute_edits("accept-ai-suggestion", [
        TextEdit(range=_range(1, 1, 1, 4), text="ONE"),
        TextEdit(range=_range(3, 1, 3, 6), text="THREE"),
    ])

    assert model.get_value() == "ONE\ntwo\nTHREE"
    assert model.undo_timeline.last_label == "accept-ai-suggestion"
    assert model.undo() is True
    assert model.get_value() == "one\ntwo\nthree"
    assert model.redo() is True
    assert model.get_value() == "ONE\ntwo\nTHREE"


def test_invalid_edit_leaves_text_untouched():
    model = TextModel("one\ntwo")
    version = model.version
    with pytest.raises(ValueError):
        model.execute_edits("user", [
            TextEdit(range=_range(1, 1, 1, 2), text="O"),
            TextEdit(range=_range(5, 1, 5, 1), text="x"),
        ])
    assert model.get_value() == "one\ntwo"
    assert model.version == version


def test_overlapping_edits_are_rejected():
    model = TextModel("abcdef")
    with pytest.raises(ValueError):
        model.execute_edits("user", [
            TextEdit(range=_range(1, 1, 1, 4), text="x"),
            TextEdit(range=_range(1, 3, 1, 5), text="y"),
        ])


def test_content_listeners_receive_source():
    model = TextModel("a")
    events = []
    dispose = model.on_did_change_model_content(events.append)

    model.execute_edits("user", [TextEdit(range=_range(1, 2, 1, 2), text="b")])
    dispose()
    model.set_value("c")

    assert [e.source for e in events] == ["user"]
    assert events[0].version == 2


def test_failing_listener_does_not_break_edit():
    model = TextModel("a")

    def boom(event):
        raise RuntimeError("listener failure")

    model.on_did_change_model_content(boom)
    model.set_value("b")
    assert model.get_value() == "b"


def test_selection_is_validated():
    model = TextModel("abc")
    seen = []
    model.on_did_change_cursor_selection(seen.append)

    model.set_selection(_range(1, 1, 1, 3))
    assert model.get_selection() == _range(1, 1, 1, 3)
    assert seen == [_range(1, 1, 1, 3)]

    with pytest.raises(ValueError):
        model.set_selection(_range(1, 1, 1, 9))
