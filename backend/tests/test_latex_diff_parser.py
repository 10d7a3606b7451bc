"""
Tests for the latex-diff block parser.
"""

from octree.schemas.suggestion import SuggestionStatus
from octree.services.latex_diff_parser import LatexDiffParser, parse_latex_diff

from tests.factories import latex_diff_reply


def _fields(s):
    return (s.original, s.suggested, s.start_line, s.original_line_count)


def test_single_block_reply():
    reply = "Sure, here:\n```latex-diff\n@@ -3,1 +3,1 @@\n-Hello\n+Hello, world\n```\nDone."
    suggestions = parse_latex_diff(reply)

    assert len(suggestions) == 1
    s = suggestions[0]
    assert s.original == "Hello"
    assert s.suggested == "Hello, world"
    assert s.start_line == 3
    assert s.original_line_count == 1
    assert s.status == SuggestionStatus.PENDING


def test_two_blocks_keep_document_order():
    reply = latex_diff_reply(
        "@@ -3,1 +3,1 @@\n-Hello\n+Hi",
        "@@ -4,1 +4,1 @@\n-Second line\n+Line two",
    )
    suggestions = parse_latex_diff(reply)

    assert [s.start_line for s in suggestions] == [3, 4]
    assert [s.suggested for s in suggestions] == ["Hi", "Line two"]
    assert all(s.status == SuggestionStatus.PENDING for s in suggestions)
    assert suggestions[0].id != suggestions[1].id


def test_parse_is_deterministic_except_ids():
    reply = latex_diff_reply("@@ -10,2 +10,3 @@\n-foo\n-bar\n+foo\n+baz\n+qux")
    first = parse_latex_diff(reply)
    second = parse_latex_diff(reply)

    assert [_fields(s) for s in first] == [_fields(s) for s in second]
    assert first[0].id != second[0].id


def test_start_line_uses_first_change_line():
    at_top = parse_latex_diff(latex_diff_reply("@@ -10,2 +10,3 @@\n-foo\n+bar\n+baz"))
    shifted = parse_latex_diff(latex_diff_reply("@@ -10,2 +10,3 @@\n context\n-foo\n+bar\n+baz"))

    assert at_top[0].start_line == 10
    assert shifted[0].start_line == 11


def test_removed_line_count_comes_from_body_not_header():
    suggestions = parse_latex_diff(latex_diff_reply("@@ -5,7 +5,1 @@\n-a\n-b\n+c"))
    assert suggestions[0].original_line_count == 2
    assert suggestions[0].original == "a\nb"


def test_insertion_only_hunk():
    suggestions = parse_latex_diff(latex_diff_reply("@@ -4,0 +4,2 @@\n+\\section{Intro}\n+Text"))

    s = suggestions[0]
    assert s.original == ""
    assert s.original_line_count == 0
    assert s.suggested == "\\section{Intro}\nText"
    assert s.is_insertion


def test_insertion_without_removals_falls_back_to_header_count():
    suggestions = parse_latex_diff(latex_diff_reply("@@ -4,2 +4,1 @@\n+replacement"))
    assert suggestions[0].original_line_count == 2


def test_deletion_only_hunk():
    suggestions = parse_latex_diff(latex_diff_reply("@@ -2,2 +2,0 @@\n-old one\n-old two"))

    s = suggestions[0]
    assert s.original == "old one\nold two"
    assert s.suggested == ""
    assert s.original_line_count == 2


def test_header_counts_are_optional():
    suggestions = parse_latex_diff(latex_diff_reply("@@ -7 +7 @@\n-x\n+y"))
    assert _fields(suggestions[0]) == ("x", "y", 7, 1)


def test_malformed_header_is_skipped():
    reply = latex_diff_reply(
        "not a header\n-foo\n+bar",
        "@@ -3,1 +3,1 @@\n-Hello\n+Hi",
    )
    suggestions = parse_latex_diff(reply)

    assert len(suggestions) == 1
    assert suggestions[0].start_line == 3


def test_block_without_changes_contributes_nothing():
    assert parse_latex_diff(latex_diff_reply("@@ -1,1 +1,1 @@\n unchanged")) == []


def test_zero_start_line_is_skipped():
    assert parse_latex_diff(latex_diff_reply("@@ -0,0 +1,1 @@\n+\\usepackage{amsmath}")) == []


def test_other_fences_are_ignored():
    reply = "```latex\n\\section{A}\n```\n```python\nprint(1)\n```"
    assert parse_latex_diff(reply) == []


def test_plain_chat_reply_has_no_suggestions():
    assert parse_latex_diff("Sure! LaTeX uses \\textbf for bold text.") == []
    assert parse_latex_diff("") == []


def test_windows_line_endings():
    reply = "```latex-diff\r\n@@ -3,1 +3,1 @@\r\n-Hello\r\n+Hi\r\n```"
    suggestions = parse_latex_diff(reply)
    assert _fields(suggestions[0]) == ("Hello", "Hi", 3, 1)


def test_parse_hunk_exposes_header_fields():
    hunk = LatexDiffParser().parse_hunk("@@ -12,3 +12,4 @@\n-a\n+b")
    assert (hunk.orig_start, hunk.orig_count, hunk.new_start, hunk.new_count) == (12, 3, 12, 4)
    assert hunk.body == ["-a", "+b"]
