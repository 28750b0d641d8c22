"""Tests for the edit classifier."""
import pytest

from edit_monitor.classifier import classify_change, non_whitespace_length
from edit_monitor.normalizer import ChangeType, EditDelta


def classify(inserted, removed="", previous="foo", offset=3):
    current = previous[:offset] + inserted + previous[offset + len(removed):]
    return classify_change(previous, current, EditDelta(offset, removed, inserted))


class TestClassifyChange:
    """Rule order and labels."""

    # ── Deletions and single characters ─────────────────────

    @pytest.mark.parametrize("removed", ["o", "foo", "\n"])
    def test_removal_only_is_deletion(self, removed):
        assert classify("", removed=removed, offset=0) == ChangeType.DELETION

    @pytest.mark.parametrize("ch", ["a", "(", ";", "1"])
    def test_single_char_is_hand_written(self, ch):
        assert classify(ch) == ChangeType.HAND_WRITTEN_CHAR

    def test_single_space_is_hand_written(self):
        # length rule comes before the whitespace rule
        assert classify(" ") == ChangeType.HAND_WRITTEN_CHAR

    def test_single_char_replacing_selection_is_not_hand_written(self):
        assert classify("x", removed="o", offset=1) != ChangeType.HAND_WRITTEN_CHAR

    # ── Whitespace and auto-close ───────────────────────────

    @pytest.mark.parametrize("ws", ["\n    ", "  ", "\t\t", "\r\n"])
    def test_whitespace_only(self, ws):
        assert classify(ws) == ChangeType.WHITESPACE

    @pytest.mark.parametrize("pair", ["()", "[]", "{}", '""', "''", "``"])
    def test_bracket_pairs_are_auto_close(self, pair):
        assert classify(pair) == ChangeType.AUTO_CLOSE_BRACKET

    def test_bracket_pair_with_removal_is_not_auto_close(self):
        assert classify("()", removed="o", offset=1) != ChangeType.AUTO_CLOSE_BRACKET

    # ── Auto-completion ─────────────────────────────────────

    def test_code_block_is_completion(self):
        assert classify("bar(x) {\n") == ChangeType.AUTO_COMPLETION

    @pytest.mark.parametrize("inserted", [
        "ab;",        # structural char
        "a->",        # arrow
        "x=>",        # arrow
        "abc",        # more than 2 non-whitespace chars
        "name",       # longer than 3
        "a\nb",       # newline
    ])
    def test_completion_triggers(self, inserted):
        assert classify(inserted) == ChangeType.AUTO_COMPLETION

    def test_two_plain_chars_are_unknown(self):
        assert classify("ab") == ChangeType.UNKNOWN

    def test_document_must_grow(self):
        # replacing "foo" with "bar" keeps the length
        assert classify("bar", removed="foo", offset=0) == ChangeType.UNKNOWN

    def test_replacement_that_grows_is_completion(self):
        assert classify("bar_baz()", removed="foo", offset=0) == ChangeType.AUTO_COMPLETION

    def test_empty_delta_is_no_change(self):
        assert classify_change("foo", "foo", EditDelta(0, "", "")) == ChangeType.NO_CHANGE

    def test_pure_given_inputs(self):
        delta = EditDelta(3, "", "bar(x) {\n")
        first = classify_change("foo", "foobar(x) {\n", delta)
        second = classify_change("foo", "foobar(x) {\n", delta)
        assert first == second == ChangeType.AUTO_COMPLETION


class TestNonWhitespaceLength:

    def test_counts_only_visible_chars(self):
        assert non_whitespace_length("bar(x) {\n") == 7

    def test_whitespace_only_is_zero(self):
        assert non_whitespace_length(" \t\n") == 0
