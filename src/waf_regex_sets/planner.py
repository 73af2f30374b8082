"""Plan and apply a manifest against live WAF state.

Remote sets are matched to manifest entries by name, so no local state is
kept: every run lists the remote sets, reads the ones the manifest names,
and diffs their items against the manifest.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from botocore.exceptions import ClientError

from .differ import Update, diff_items
from .exceptions import WafApiError, WafRegexSetsError
from .manifest import WafManifest
from .models import sorted_items
from .provider import Provider
from .resource_data import ResourceData
from .resources import REGEX_MATCH_SET, REGEX_PATTERN_SET, RESOURCES
from .schema import TYPE_SET, Resource

logger = logging.getLogger(__name__)

# list operation, response key, id key per resource type
_LIST_OPERATIONS = {
    REGEX_PATTERN_SET.name: ("list_regex_pattern_sets", "RegexPatternSets", "RegexPatternSetId"),
    REGEX_MATCH_SET.name: ("list_regex_match_sets", "RegexMatchSets", "RegexMatchSetId"),
}

LIST_PAGE_SIZE = 100


def placeholder_id(name: str) -> str:
    """Stand-in id for a pattern set that does not exist yet."""
    return f"(known after apply: {name})"


@dataclass(frozen=True)
class PlannedChange:
    """A change to one regex set."""

    action: str  # "create", "update", "noop", "delete"
    resource_type: str
    name: str
    resource_id: str | None = None
    updates: tuple[Update[Any], ...] = ()


@dataclass
class ApplyResult:
    """Result of applying or destroying a manifest."""

    created: int = 0
    updated: int = 0
    unchanged: int = 0
    deleted: int = 0
    errors: list[str] = field(default_factory=list)


def list_remote_sets(provider: Provider, resource_type: str) -> dict[str, str]:
    """List remote sets of one type as ``{name: id}``.

    When several sets share a name, the first one listed wins.
    """
    operation, key, id_key = _LIST_OPERATIONS[resource_type]
    list_func = getattr(provider.client, operation)

    result: dict[str, str] = {}
    marker: str | None = None
    while True:
        kwargs: dict[str, Any] = {"Limit": LIST_PAGE_SIZE}
        if marker:
            kwargs["NextMarker"] = marker
        try:
            response = list_func(**kwargs)
        except ClientError as e:
            raise WafApiError(f"Failed listing {resource_type}", e) from e

        for summary in response.get(key, []):
            name, set_id = summary["Name"], summary[id_key]
            if name in result:
                logger.warning("Multiple %s named %s, using %s", resource_type, name, result[name])
                continue
            result[name] = set_id

        marker = response.get("NextMarker")
        if not marker or not response.get(key):
            return result


def discover(provider: Provider) -> dict[str, dict[str, str]]:
    """List all remote regex sets, keyed by resource type then name."""
    return {
        resource_type: list_remote_sets(provider, resource_type)
        for resource_type in _LIST_OPERATIONS
    }


def refresh(resource: Resource, provider: Provider, resource_id: str) -> dict[str, Any] | None:
    """Read a remote set; ``None`` if it no longer exists."""
    d = resource.new_data(id=resource_id)
    resource.read(d, provider)
    return d.state()


def item_updates(resource: Resource, d: ResourceData) -> tuple[Update[Any], ...]:
    """Diff the item collection of a resource."""
    for name, attr in resource.schema.items():
        if attr.type == TYPE_SET:
            old, new = d.get_change(name)
            return tuple(diff_items(sorted_items(old), sorted_items(new)))
    return ()


def _plan_one(
    resource: Resource,
    provider: Provider,
    config: dict[str, Any],
    resource_id: str | None,
) -> PlannedChange:
    state = refresh(resource, provider, resource_id) if resource_id else None
    if state is None:
        d = resource.new_data(config)
        return PlannedChange(
            action="create",
            resource_type=resource.name,
            name=config["name"],
            updates=item_updates(resource, d),
        )

    d = resource.new_data(config, state=state, id=resource_id or "")
    updates = item_updates(resource, d)
    return PlannedChange(
        action="update" if updates else "noop",
        resource_type=resource.name,
        name=config["name"],
        resource_id=resource_id,
        updates=updates,
    )


def compute_plan(
    manifest: WafManifest,
    provider: Provider,
    remote: dict[str, dict[str, str]] | None = None,
) -> list[PlannedChange]:
    """Compute the changes ``apply_manifest`` would make.

    Pattern sets come first; match sets that reference a pattern set about
    to be created carry a placeholder id for it.
    """
    remote = remote if remote is not None else discover(provider)
    remote_patterns = remote.get(REGEX_PATTERN_SET.name, {})
    remote_matches = remote.get(REGEX_MATCH_SET.name, {})

    changes: list[PlannedChange] = []
    pattern_set_ids: dict[str, str] = {}

    for name in sorted(manifest.pattern_sets):
        decl = manifest.pattern_sets[name]
        change = _plan_one(
            REGEX_PATTERN_SET, provider, decl.to_config(), remote_patterns.get(name)
        )
        pattern_set_ids[name] = change.resource_id or placeholder_id(name)
        changes.append(change)

    for name in sorted(manifest.match_sets):
        decl = manifest.match_sets[name]
        config = decl.to_config(pattern_set_ids)
        changes.append(_plan_one(REGEX_MATCH_SET, provider, config, remote_matches.get(name)))

    return changes


def _apply_one(
    resource: Resource,
    provider: Provider,
    config: dict[str, Any],
    resource_id: str | None,
) -> tuple[str, ResourceData]:
    state = refresh(resource, provider, resource_id) if resource_id else None
    if state is None:
        d = resource.new_data(config)
        resource.create(d, provider)
        return "created", d

    d = resource.new_data(config, state=state, id=resource_id or "")
    changed = bool(item_updates(resource, d))
    resource.update(d, provider)
    return ("updated" if changed else "unchanged"), d


def _record(result: ApplyResult, outcome: str) -> None:
    setattr(result, outcome, getattr(result, outcome) + 1)


def apply_manifest(
    manifest: WafManifest,
    provider: Provider,
    remote: dict[str, dict[str, str]] | None = None,
) -> ApplyResult:
    """Create or update every set the manifest declares.

    A failure on one set is logged and recorded in ``errors``; the remaining
    sets are still applied. Match sets that reference a failed pattern set
    fail with an unresolved reference.
    """
    remote = remote if remote is not None else discover(provider)
    remote_patterns = remote.get(REGEX_PATTERN_SET.name, {})
    remote_matches = remote.get(REGEX_MATCH_SET.name, {})

    result = ApplyResult()
    pattern_set_ids: dict[str, str] = {}

    for name in sorted(manifest.pattern_sets):
        decl = manifest.pattern_sets[name]
        try:
            outcome, d = _apply_one(
                REGEX_PATTERN_SET, provider, decl.to_config(), remote_patterns.get(name)
            )
        except WafRegexSetsError as e:
            logger.warning("Failed to apply %s %s: %s", REGEX_PATTERN_SET.name, name, e)
            result.errors.append(f"{REGEX_PATTERN_SET.name} {name}: {e}")
            continue
        _record(result, outcome)
        pattern_set_ids[name] = d.id

    for name in sorted(manifest.match_sets):
        decl = manifest.match_sets[name]
        try:
            config = decl.to_config(pattern_set_ids)
            outcome, d = _apply_one(REGEX_MATCH_SET, provider, config, remote_matches.get(name))
        except WafRegexSetsError as e:
            logger.warning("Failed to apply %s %s: %s", REGEX_MATCH_SET.name, name, e)
            result.errors.append(f"{REGEX_MATCH_SET.name} {name}: {e}")
            continue
        _record(result, outcome)

    return result


def compute_destroy_plan(
    manifest: WafManifest,
    provider: Provider,
    remote: dict[str, dict[str, str]] | None = None,
) -> list[PlannedChange]:
    """List the declared sets that exist remotely, in deletion order."""
    remote = remote if remote is not None else discover(provider)

    changes: list[PlannedChange] = []
    for resource, names in (
        (REGEX_MATCH_SET, manifest.match_sets),
        (REGEX_PATTERN_SET, manifest.pattern_sets),
    ):
        existing = remote.get(resource.name, {})
        for name in sorted(names):
            if name in existing:
                changes.append(
                    PlannedChange(
                        action="delete",
                        resource_type=resource.name,
                        name=name,
                        resource_id=existing[name],
                    )
                )
    return changes


def destroy_manifest(
    manifest: WafManifest,
    provider: Provider,
    remote: dict[str, dict[str, str]] | None = None,
) -> ApplyResult:
    """Delete every declared set that exists remotely.

    Match sets go first: WAF refuses to delete a pattern set that a match
    set still references.
    """
    result = ApplyResult()

    for change in compute_destroy_plan(manifest, provider, remote):
        resource = RESOURCES[change.resource_type]
        resource_id = change.resource_id or ""
        try:
            state = refresh(resource, provider, resource_id)
            if state is None:
                logger.info("%s %s already deleted", change.resource_type, change.name)
                continue
            resource.delete(resource.new_data(state=state, id=resource_id), provider)
        except WafRegexSetsError as e:
            logger.warning("Failed to delete %s %s: %s", change.resource_type, change.name, e)
            result.errors.append(f"{change.resource_type} {change.name}: {e}")
            continue
        result.deleted += 1

    return result
