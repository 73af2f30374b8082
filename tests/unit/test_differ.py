"""Tests for the regex set diff engine."""

from waf_regex_sets.differ import (
    DELETE,
    INSERT,
    Update,
    diff_items,
    regex_match_set_updates,
    regex_pattern_set_updates,
)
from waf_regex_sets.models import FieldToMatch, RegexMatchTuple


def _tuple(field_type="URI", data=None, transformation="NONE", pattern_set_id="ps-1"):
    return RegexMatchTuple(
        field_to_match=FieldToMatch(type=field_type, data=data),
        text_transformation=transformation,
        regex_pattern_set_id=pattern_set_id,
    )


class TestDiffItems:
    """Tests for diff_items."""

    def test_identical_collections_produce_no_updates(self):
        """Items present on both sides are left alone."""
        assert diff_items(["a", "b"], ["a", "b"]) == []

    def test_empty_to_items_inserts_everything(self):
        """Starting from nothing, every new item is inserted in order."""
        assert diff_items([], ["a", "b"]) == [
            Update(action=INSERT, value="a"),
            Update(action=INSERT, value="b"),
        ]

    def test_items_to_empty_deletes_everything(self):
        """Clearing a set deletes every old item in order."""
        assert diff_items(["a", "b"], []) == [
            Update(action=DELETE, value="a"),
            Update(action=DELETE, value="b"),
        ]

    def test_deletes_come_before_inserts(self):
        """Every DELETE is emitted ahead of every INSERT."""
        updates = diff_items(["a", "b", "c"], ["c", "d", "e"])

        actions = [u.action for u in updates]
        assert actions == [DELETE, DELETE, INSERT, INSERT]
        assert [u.value for u in updates] == ["a", "b", "d", "e"]

    def test_changed_item_is_delete_then_insert(self):
        """A changed match tuple becomes one DELETE and one INSERT."""
        old = _tuple(transformation="NONE")
        new = _tuple(transformation="LOWERCASE")

        assert diff_items([old], [new]) == [
            Update(action=DELETE, value=old),
            Update(action=INSERT, value=new),
        ]

    def test_equal_tuples_are_not_updated(self):
        """Tuples with equal fields compare equal and need no update."""
        assert diff_items([_tuple(data="x")], [_tuple(data="x")]) == []

    def test_inputs_are_not_modified(self):
        """The caller's collections are untouched."""
        old = ["a", "b"]
        new = ["b", "c"]
        diff_items(old, new)
        assert old == ["a", "b"]
        assert new == ["b", "c"]

    def test_accepts_sets(self):
        """Any iterable works, including frozensets."""
        updates = diff_items(frozenset({"a"}), frozenset({"a", "b"}))
        assert updates == [Update(action=INSERT, value="b")]


class TestApiUpdates:
    """Tests for the API-shaped update builders."""

    def test_pattern_set_updates_are_sorted(self):
        """Pattern updates are deterministic regardless of input order."""
        updates = regex_pattern_set_updates({"z", "a"}, {"m", "b"})

        assert updates == [
            {"Action": "DELETE", "RegexPatternString": "a"},
            {"Action": "DELETE", "RegexPatternString": "z"},
            {"Action": "INSERT", "RegexPatternString": "b"},
            {"Action": "INSERT", "RegexPatternString": "m"},
        ]

    def test_pattern_set_no_change(self):
        """Unchanged pattern sets produce no API updates."""
        assert regex_pattern_set_updates(["a"], {"a"}) == []

    def test_match_set_updates_use_api_shape(self):
        """Match tuple updates carry the API representation of the tuple."""
        old = _tuple(field_type="HEADER", data="User-Agent")
        new = _tuple(field_type="URI")

        updates = regex_match_set_updates({old}, {new})

        assert updates == [
            {
                "Action": "DELETE",
                "RegexMatchTuple": {
                    "FieldToMatch": {"Type": "HEADER", "Data": "User-Agent"},
                    "TextTransformation": "NONE",
                    "RegexPatternSetId": "ps-1",
                },
            },
            {
                "Action": "INSERT",
                "RegexMatchTuple": {
                    "FieldToMatch": {"Type": "URI"},
                    "TextTransformation": "NONE",
                    "RegexPatternSetId": "ps-1",
                },
            },
        ]

    def test_match_set_inserts_sorted_by_field(self):
        """Several inserts are ordered by field type, then data."""
        tuples = {
            _tuple(field_type="URI"),
            _tuple(field_type="HEADER", data="Referer"),
            _tuple(field_type="HEADER", data="Host"),
        }

        updates = regex_match_set_updates(set(), tuples)

        fields = [u["RegexMatchTuple"]["FieldToMatch"] for u in updates]
        assert fields == [
            {"Type": "HEADER", "Data": "Host"},
            {"Type": "HEADER", "Data": "Referer"},
            {"Type": "URI"},
        ]
