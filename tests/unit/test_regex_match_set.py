"""Tests for the regex match set resource handler."""

import pytest

from waf_regex_sets.exceptions import WafApiError
from waf_regex_sets.models import FieldToMatch, RegexMatchTuple
from waf_regex_sets.resources import REGEX_MATCH_SET, REGEX_PATTERN_SET


@pytest.fixture
def pattern_set_id(provider):
    d = REGEX_PATTERN_SET.new_data({"name": "bots", "regex_pattern_strings": ["^curl/"]})
    REGEX_PATTERN_SET.create(d, provider)
    return d.id


def _tuple_config(pattern_set_id, field_type="HEADER", data="User-Agent", transformation="NONE"):
    field = {"type": field_type}
    if data:
        field["data"] = data
    return {
        "field_to_match": field,
        "text_transformation": transformation,
        "regex_pattern_set_id": pattern_set_id,
    }


def _create(provider, tuples, name="ua"):
    d = REGEX_MATCH_SET.new_data({"name": name, "regex_match_tuple": tuples})
    REGEX_MATCH_SET.create(d, provider)
    return d


class TestRegexMatchSet:
    """Lifecycle tests for the regex match set resource."""

    def test_create_inserts_tuples(self, provider, fake_waf, pattern_set_id):
        d = _create(provider, [_tuple_config(pattern_set_id)])

        stored = fake_waf.matches.sets[d.id]
        assert stored["Name"] == "ua"
        assert stored["RegexMatchTuples"] == [
            {
                "FieldToMatch": {"Type": "HEADER", "Data": "User-Agent"},
                "TextTransformation": "NONE",
                "RegexPatternSetId": pattern_set_id,
            }
        ]
        assert d.get("regex_match_tuple") == frozenset(
            {RegexMatchTuple(FieldToMatch("HEADER", "User-Agent"), "NONE", pattern_set_id)}
        )

    def test_create_without_tuples(self, provider, fake_waf):
        d = _create(provider, [])

        assert d.get("regex_match_tuple") == frozenset()
        assert "UpdateRegexMatchSet" not in fake_waf.calls

    def test_create_with_unknown_pattern_set_fails(self, provider, fake_waf):
        """WAF rejects tuples pointing at a pattern set that does not exist."""
        d = REGEX_MATCH_SET.new_data({"name": "ua", "regex_match_tuple": [_tuple_config("ps-404")]})

        with pytest.raises(WafApiError) as exc_info:
            REGEX_MATCH_SET.create(d, provider)

        assert exc_info.value.code == "WAFNonexistentItemException"
        assert exc_info.value.resource_type == "waf_regex_match_set"

    def test_changed_tuple_is_deleted_then_inserted(self, provider, fake_waf, pattern_set_id):
        created = _create(provider, [_tuple_config(pattern_set_id, transformation="NONE")])
        d = REGEX_MATCH_SET.new_data(
            {
                "name": "ua",
                "regex_match_tuple": [_tuple_config(pattern_set_id, transformation="LOWERCASE")],
            },
            state=created.state(),
            id=created.id,
        )

        REGEX_MATCH_SET.update(d, provider)

        (stored,) = fake_waf.matches.sets[created.id]["RegexMatchTuples"]
        assert stored["TextTransformation"] == "LOWERCASE"
        (t,) = d.get("regex_match_tuple")
        assert t.text_transformation == "LOWERCASE"

    def test_update_without_change_only_reads(self, provider, fake_waf, pattern_set_id):
        config = {"name": "ua", "regex_match_tuple": [_tuple_config(pattern_set_id)]}
        created = _create(provider, config["regex_match_tuple"])
        d = REGEX_MATCH_SET.new_data(config, state=created.state(), id=created.id)
        fake_waf.calls.clear()

        REGEX_MATCH_SET.update(d, provider)

        assert fake_waf.calls == ["GetRegexMatchSet"]

    def test_read_missing_clears_id(self, provider):
        d = REGEX_MATCH_SET.new_data(id="ms-404")

        REGEX_MATCH_SET.read(d, provider)

        assert d.id == ""

    def test_read_error_is_wrapped(self, provider, fake_waf):
        fake_waf.fail_next("GetRegexMatchSet", "AccessDeniedException")
        d = REGEX_MATCH_SET.new_data(id="ms-1")

        with pytest.raises(WafApiError, match="Failed reading WAF regex match set"):
            REGEX_MATCH_SET.read(d, provider)

    def test_delete_drains_then_deletes(self, provider, fake_waf, pattern_set_id):
        created = _create(
            provider,
            [_tuple_config(pattern_set_id), _tuple_config(pattern_set_id, "URI", None)],
        )
        d = REGEX_MATCH_SET.new_data(state=created.state(), id=created.id)
        fake_waf.calls.clear()

        REGEX_MATCH_SET.delete(d, provider)

        assert fake_waf.matches.sets == {}
        assert fake_waf.calls == [
            "GetChangeToken",
            "UpdateRegexMatchSet",
            "GetChangeToken",
            "DeleteRegexMatchSet",
        ]
        assert d.id == ""

    def test_pattern_set_deletable_after_match_set(self, provider, fake_waf, pattern_set_id):
        """Once the match set is gone its pattern set is no longer referenced."""
        created = _create(provider, [_tuple_config(pattern_set_id)])
        REGEX_MATCH_SET.delete(
            REGEX_MATCH_SET.new_data(state=created.state(), id=created.id), provider
        )

        ps = REGEX_PATTERN_SET.new_data(id=pattern_set_id)
        REGEX_PATTERN_SET.read(ps, provider)
        REGEX_PATTERN_SET.delete(
            REGEX_PATTERN_SET.new_data(state=ps.state(), id=pattern_set_id), provider
        )

        assert fake_waf.patterns.sets == {}
