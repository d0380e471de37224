import re

import pytest

from onward.captures import CaptureStack
from onward.cursor import PathCursor
from onward.matchers import evaluate, segment, template_pattern


@pytest.fixture
def captures() -> CaptureStack:
    return CaptureStack()


def test_template_pattern_replaces_placeholders():
    assert template_pattern("users/:id") == "users/([^/]+)"
    assert template_pattern(":a/:b") == "([^/]+)/([^/]+)"


def test_template_pattern_escapes_literal_text():
    cursor = PathCursor("", "/v1x2")

    assert not evaluate("v1.2", cursor, CaptureStack())
    assert cursor.remaining == "/v1x2"


class TestEvaluate:
    def test_string_template_pushes_captures(self, captures):
        cursor = PathCursor("", "/posts/7/comments/9")

        assert evaluate("posts/:post_id", cursor, captures)
        assert evaluate("comments/:id", cursor, captures)
        assert captures.snapshot() == ("7", "9")
        assert cursor.remaining == ""

    def test_failed_string_leaves_captures_alone(self, captures):
        cursor = PathCursor("", "/users/5")

        assert not evaluate("user/:id", cursor, captures)
        assert len(captures) == 0

    def test_regex_groups_become_captures(self, captures):
        cursor = PathCursor("", "/3-4/rest")

        assert evaluate(re.compile(r"(\d+)-(\d+)"), cursor, captures)
        assert captures.snapshot() == ("3", "4")
        assert cursor.remaining == "/rest"

    def test_regex_without_groups(self, captures):
        cursor = PathCursor("", "/articles")

        assert evaluate(re.compile("posts|articles"), cursor, captures)
        assert len(captures) == 0
        assert cursor.consumed == "/articles"

    def test_regex_flags_are_kept(self, captures):
        cursor = PathCursor("", "/USERS")

        assert evaluate(re.compile("users", re.IGNORECASE), cursor, captures)

    def test_inline_global_flags(self, captures):
        cursor = PathCursor("", "/USERS/7")

        assert evaluate(re.compile("(?i)users"), cursor, captures)
        assert cursor.consumed == "/USERS"
        assert cursor.remaining == "/7"

    def test_inline_global_flags_with_groups(self, captures):
        cursor = PathCursor("", "/Page-3")

        assert evaluate(re.compile(r"(?ia)page-(\d+)"), cursor, captures)
        assert captures.snapshot() == ("3",)

    def test_optional_group_that_did_not_participate(self, captures):
        cursor = PathCursor("", "/page")

        assert evaluate(re.compile(r"page(\d+)?"), cursor, captures)
        assert captures.snapshot() == (None,)

    def test_any_segment(self, captures):
        cursor = PathCursor("", "/anything/else")

        assert evaluate(segment, cursor, captures)
        assert captures.snapshot() == ("anything",)
        assert cursor.remaining == "/else"

    def test_any_segment_needs_a_segment(self, captures):
        cursor = PathCursor("/done", "")

        assert not evaluate(segment, cursor, captures)

    def test_predicate_result_is_used(self, captures):
        cursor = PathCursor("", "/a")

        assert evaluate(lambda: "truthy", cursor, captures)
        assert not evaluate(lambda: None, cursor, captures)
        assert cursor.remaining == "/a"

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(True, True), (False, False), (None, False), (1, True), (0, False)],
    )
    def test_literals(self, captures, value, expected):
        assert evaluate(value, PathCursor("", "/a"), captures) is expected


class TestCaptureStack:
    def test_push_keeps_order(self, captures):
        captures.push("a")
        captures.push("b", "c")

        assert captures.snapshot() == ("a", "b", "c")
        assert list(captures) == ["a", "b", "c"]

    def test_reset(self, captures):
        captures.push("a")
        captures.reset()

        assert len(captures) == 0

    def test_snapshot_is_detached(self, captures):
        captures.push("a")
        snapshot = captures.snapshot()
        captures.reset()

        assert snapshot == ("a",)
