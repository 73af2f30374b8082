"""WAF regex match set resource."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from botocore.exceptions import ClientError

from ..differ import regex_match_set_updates
from ..exceptions import WafApiError
from ..models import RegexMatchSet, RegexMatchTuple
from ..provider import Provider
from ..resource_data import ResourceData
from ..schema import TYPE_SET, TYPE_STRING, Attribute, Resource
from .base import is_nonexistent, mutate

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "waf_regex_match_set"

SCHEMA = {
    "name": Attribute(
        type=TYPE_STRING,
        required=True,
        force_new=True,
        description="Name of the match set.",
    ),
    "regex_match_tuple": Attribute(
        type=TYPE_SET,
        elem=RegexMatchTuple.coerce,
        description=(
            "Request parts to inspect, each with a text transformation "
            "and the regex pattern set to search for."
        ),
    ),
}


def create(d: ResourceData, provider: Provider) -> None:
    name = d.get("name")
    logger.info("Creating WAF regex match set: %s", name)

    out = mutate(
        provider,
        lambda token: provider.client.create_regex_match_set(Name=name, ChangeToken=token),
        "Failed creating WAF regex match set",
        resource_type=RESOURCE_TYPE,
    )
    d.set_id(out["RegexMatchSet"]["RegexMatchSetId"])

    update(d, provider)


def read(d: ResourceData, provider: Provider) -> None:
    logger.info("Reading WAF regex match set: %s", d.id)
    try:
        resp = provider.client.get_regex_match_set(RegexMatchSetId=d.id)
    except ClientError as e:
        if is_nonexistent(e):
            logger.warning("WAF regex match set (%s) not found, removing from state", d.id)
            d.set_id("")
            return
        raise WafApiError(
            "Failed reading WAF regex match set",
            e,
            resource_type=RESOURCE_TYPE,
            resource_id=d.id,
        ) from e

    match_set = RegexMatchSet.from_api(resp["RegexMatchSet"])
    d.set("name", match_set.name)
    d.set("regex_match_tuple", match_set.tuples)


def update(d: ResourceData, provider: Provider) -> None:
    logger.info("Updating WAF regex match set: %s", d.get("name"))

    if d.has_change("regex_match_tuple"):
        old, new = d.get_change("regex_match_tuple")
        update_match_tuples(d.id, old, new, provider)

    read(d, provider)


def delete(d: ResourceData, provider: Provider) -> None:
    old, _ = d.get_change("regex_match_tuple")
    if old:
        update_match_tuples(d.id, old, frozenset(), provider)

    logger.info("Deleting WAF regex match set: %s", d.id)
    mutate(
        provider,
        lambda token: provider.client.delete_regex_match_set(
            RegexMatchSetId=d.id, ChangeToken=token
        ),
        "Failed deleting WAF regex match set",
        resource_type=RESOURCE_TYPE,
        resource_id=d.id,
    )
    d.set_id("")


def update_match_tuples(
    match_set_id: str,
    old: Iterable[RegexMatchTuple],
    new: Iterable[RegexMatchTuple],
    provider: Provider,
) -> None:
    """Move a match set from ``old`` to ``new`` match tuples."""
    updates = regex_match_set_updates(old, new)
    if not updates:
        return

    mutate(
        provider,
        lambda token: provider.client.update_regex_match_set(
            RegexMatchSetId=match_set_id,
            Updates=updates,
            ChangeToken=token,
        ),
        "Failed updating WAF regex match set",
        resource_type=RESOURCE_TYPE,
        resource_id=match_set_id,
    )


REGEX_MATCH_SET = Resource(
    name=RESOURCE_TYPE,
    schema=SCHEMA,
    create_func=create,
    read_func=read,
    update_func=update,
    delete_func=delete,
)
