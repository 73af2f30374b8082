"""Helpers shared by the resource handlers."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from botocore.exceptions import ClientError

from ..exceptions import WafApiError
from ..provider import Provider
from ..retryer import error_code

NONEXISTENT_ITEM_CODE = "WAFNonexistentItemException"


def is_nonexistent(error: ClientError) -> bool:
    """True if WAF reports the item does not exist."""
    return error_code(error) == NONEXISTENT_ITEM_CODE


def mutate(
    provider: Provider,
    call: Callable[[str], Any],
    message: str,
    *,
    resource_type: str,
    resource_id: str | None = None,
) -> Any:
    """Run one mutating call through the retryer, wrapping API errors.

    Args:
        provider: Connection to run against.
        call: Receives a change token and performs the call.
        message: Error message used if the call fails.
        resource_type: Resource type for error context.
        resource_id: Resource id for error context.
    """
    try:
        return provider.new_retryer().retry_with_token(call)
    except ClientError as e:
        raise WafApiError(message, e, resource_type=resource_type, resource_id=resource_id) from e
