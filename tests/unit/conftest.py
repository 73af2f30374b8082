"""Unit test fixtures backed by an in-memory WAF Classic client."""

import copy
import itertools
import time

import pytest
from botocore.exceptions import ClientError

from waf_regex_sets import Provider, ProviderConfig


def client_error(code, operation, message="test error"):
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


class _Table:
    """Storage and API naming for one kind of regex set."""

    def __init__(self, kind, id_key, items_key, item_key, prefix):
        self.kind = kind
        self.id_key = id_key
        self.items_key = items_key
        self.item_key = item_key
        self.prefix = prefix
        self.sets = {}


class FakeWafClient:
    """
    In-memory stand-in for the regex set calls of a boto3 ``waf`` client.

    Mirrors the WAF behaviors the handlers depend on: single-use change
    tokens, ``WAFNonexistentItemException`` for unknown ids and items,
    refusing to delete non-empty or referenced sets, and paginated lists.
    ``fail_next`` queues error codes for the next calls of an operation.
    """

    def __init__(self):
        self.patterns = _Table(
            "RegexPatternSet",
            "RegexPatternSetId",
            "RegexPatternStrings",
            "RegexPatternString",
            "ps",
        )
        self.matches = _Table(
            "RegexMatchSet", "RegexMatchSetId", "RegexMatchTuples", "RegexMatchTuple", "ms"
        )
        self.calls = []
        self.failures = {}
        self._ids = itertools.count(1)
        self._tokens = itertools.count(1)
        self._issued = set()

    def fail_next(self, operation, *codes):
        self.failures.setdefault(operation, []).extend(codes)

    def _record(self, operation):
        self.calls.append(operation)
        queued = self.failures.get(operation)
        if queued:
            raise client_error(queued.pop(0), operation)

    def _use_token(self, token, operation):
        if token not in self._issued:
            raise client_error("WAFStaleDataException", operation)
        self._issued.discard(token)

    def _lookup(self, table, set_id, operation):
        if set_id not in table.sets:
            raise client_error("WAFNonexistentItemException", operation)
        return table.sets[set_id]

    # Generic operations

    def _create(self, table, operation, name, token):
        self._record(operation)
        self._use_token(token, operation)
        set_id = f"{table.prefix}-{next(self._ids)}"
        table.sets[set_id] = {table.id_key: set_id, "Name": name, table.items_key: []}
        return {table.kind: copy.deepcopy(table.sets[set_id]), "ChangeToken": token}

    def _get(self, table, operation, set_id):
        self._record(operation)
        return {table.kind: copy.deepcopy(self._lookup(table, set_id, operation))}

    def _update(self, table, operation, set_id, updates, token):
        self._record(operation)
        self._use_token(token, operation)
        current = self._lookup(table, set_id, operation)
        items = list(current[table.items_key])
        for update in updates:
            item = update[table.item_key]
            if update["Action"] == "DELETE":
                if item not in items:
                    raise client_error("WAFNonexistentItemException", operation)
                items.remove(item)
            else:
                if item in items:
                    raise client_error("WAFInvalidOperationException", operation)
                if table is self.matches and item["RegexPatternSetId"] not in self.patterns.sets:
                    raise client_error("WAFNonexistentItemException", operation)
                items.append(copy.deepcopy(item))
        current[table.items_key] = items
        return {"ChangeToken": token}

    def _delete(self, table, operation, set_id, token):
        self._record(operation)
        self._use_token(token, operation)
        current = self._lookup(table, set_id, operation)
        if current[table.items_key]:
            raise client_error("WAFNonEmptyEntityException", operation)
        if table is self.patterns and self._is_referenced(set_id):
            raise client_error("WAFReferencedItemException", operation)
        del table.sets[set_id]
        return {"ChangeToken": token}

    def _is_referenced(self, pattern_set_id):
        return any(
            t["RegexPatternSetId"] == pattern_set_id
            for match_set in self.matches.sets.values()
            for t in match_set["RegexMatchTuples"]
        )

    def _list(self, table, operation, key, Limit=100, NextMarker=None):
        self._record(operation)
        summaries = [
            {table.id_key: s[table.id_key], "Name": s["Name"]} for s in table.sets.values()
        ]
        start = int(NextMarker or 0)
        end = start + Limit
        response = {key: summaries[start:end]}
        if end < len(summaries):
            response["NextMarker"] = str(end)
        return response

    # boto3 client surface

    def get_change_token(self):
        self._record("GetChangeToken")
        token = f"token-{next(self._tokens)}"
        self._issued.add(token)
        return {"ChangeToken": token}

    def create_regex_pattern_set(self, Name, ChangeToken):
        return self._create(self.patterns, "CreateRegexPatternSet", Name, ChangeToken)

    def get_regex_pattern_set(self, RegexPatternSetId):
        return self._get(self.patterns, "GetRegexPatternSet", RegexPatternSetId)

    def update_regex_pattern_set(self, RegexPatternSetId, Updates, ChangeToken):
        return self._update(
            self.patterns, "UpdateRegexPatternSet", RegexPatternSetId, Updates, ChangeToken
        )

    def delete_regex_pattern_set(self, RegexPatternSetId, ChangeToken):
        return self._delete(self.patterns, "DeleteRegexPatternSet", RegexPatternSetId, ChangeToken)

    def list_regex_pattern_sets(self, **kwargs):
        return self._list(self.patterns, "ListRegexPatternSets", "RegexPatternSets", **kwargs)

    def create_regex_match_set(self, Name, ChangeToken):
        return self._create(self.matches, "CreateRegexMatchSet", Name, ChangeToken)

    def get_regex_match_set(self, RegexMatchSetId):
        return self._get(self.matches, "GetRegexMatchSet", RegexMatchSetId)

    def update_regex_match_set(self, RegexMatchSetId, Updates, ChangeToken):
        return self._update(
            self.matches, "UpdateRegexMatchSet", RegexMatchSetId, Updates, ChangeToken
        )

    def delete_regex_match_set(self, RegexMatchSetId, ChangeToken):
        return self._delete(self.matches, "DeleteRegexMatchSet", RegexMatchSetId, ChangeToken)

    def list_regex_match_sets(self, **kwargs):
        return self._list(self.matches, "ListRegexMatchSets", "RegexMatchSets", **kwargs)


@pytest.fixture
def fake_waf():
    """Empty in-memory WAF."""
    return FakeWafClient()


@pytest.fixture
def provider(fake_waf):
    """Provider wired to the in-memory WAF."""
    return Provider(ProviderConfig(), client=fake_waf)


@pytest.fixture
def no_sleep(monkeypatch):
    """Make retry backoff instant; returns the requested sleep intervals."""
    sleeps = []
    monkeypatch.setattr(time, "sleep", sleeps.append)
    return sleeps
