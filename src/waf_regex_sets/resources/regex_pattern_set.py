"""WAF regex pattern set resource."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from botocore.exceptions import ClientError

from ..differ import regex_pattern_set_updates
from ..exceptions import WafApiError
from ..models import RegexPatternSet
from ..provider import Provider
from ..resource_data import ResourceData
from ..schema import TYPE_SET, TYPE_STRING, Attribute, Resource, string_elem
from .base import is_nonexistent, mutate

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "waf_regex_pattern_set"

SCHEMA = {
    "name": Attribute(
        type=TYPE_STRING,
        required=True,
        force_new=True,
        description="Name of the pattern set.",
    ),
    "regex_pattern_strings": Attribute(
        type=TYPE_SET,
        elem=string_elem,
        description="Regular expressions WAF searches for.",
    ),
}


def create(d: ResourceData, provider: Provider) -> None:
    name = d.get("name")
    logger.info("Creating WAF regex pattern set: %s", name)

    out = mutate(
        provider,
        lambda token: provider.client.create_regex_pattern_set(Name=name, ChangeToken=token),
        "Failed creating WAF regex pattern set",
        resource_type=RESOURCE_TYPE,
    )
    d.set_id(out["RegexPatternSet"]["RegexPatternSetId"])

    update(d, provider)


def read(d: ResourceData, provider: Provider) -> None:
    logger.info("Reading WAF regex pattern set: %s", d.id)
    try:
        resp = provider.client.get_regex_pattern_set(RegexPatternSetId=d.id)
    except ClientError as e:
        if is_nonexistent(e):
            logger.warning("WAF regex pattern set (%s) not found, removing from state", d.id)
            d.set_id("")
            return
        raise WafApiError(
            "Failed reading WAF regex pattern set",
            e,
            resource_type=RESOURCE_TYPE,
            resource_id=d.id,
        ) from e

    pattern_set = RegexPatternSet.from_api(resp["RegexPatternSet"])
    d.set("name", pattern_set.name)
    d.set("regex_pattern_strings", pattern_set.patterns)


def update(d: ResourceData, provider: Provider) -> None:
    logger.info("Updating WAF regex pattern set: %s", d.get("name"))

    if d.has_change("regex_pattern_strings"):
        old, new = d.get_change("regex_pattern_strings")
        update_pattern_strings(d.id, old, new, provider)

    read(d, provider)


def delete(d: ResourceData, provider: Provider) -> None:
    old, _ = d.get_change("regex_pattern_strings")
    if old:
        update_pattern_strings(d.id, old, frozenset(), provider)

    logger.info("Deleting WAF regex pattern set: %s", d.id)
    mutate(
        provider,
        lambda token: provider.client.delete_regex_pattern_set(
            RegexPatternSetId=d.id, ChangeToken=token
        ),
        "Failed deleting WAF regex pattern set",
        resource_type=RESOURCE_TYPE,
        resource_id=d.id,
    )
    d.set_id("")


def update_pattern_strings(
    pattern_set_id: str,
    old: Iterable[str],
    new: Iterable[str],
    provider: Provider,
) -> None:
    """Move a pattern set from ``old`` to ``new`` pattern strings."""
    updates = regex_pattern_set_updates(old, new)
    if not updates:
        return

    mutate(
        provider,
        lambda token: provider.client.update_regex_pattern_set(
            RegexPatternSetId=pattern_set_id,
            Updates=updates,
            ChangeToken=token,
        ),
        "Failed updating WAF regex pattern set",
        resource_type=RESOURCE_TYPE,
        resource_id=pattern_set_id,
    )


REGEX_PATTERN_SET = Resource(
    name=RESOURCE_TYPE,
    schema=SCHEMA,
    create_func=create,
    read_func=read,
    update_func=update,
    delete_func=delete,
)
