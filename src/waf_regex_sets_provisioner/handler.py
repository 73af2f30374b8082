"""Lambda handler for WAF regex set CloudFormation custom resources.

Handles two custom resource types:
1. Custom::WafRegexPatternSet (Name, RegexPatternStrings)
2. Custom::WafRegexMatchSet (Name, RegexMatchTuples)

Optional ``Scope`` and ``Region`` properties select the WAF endpoint;
otherwise the Lambda environment decides (see ``ProviderConfig.from_env``).
"""

from __future__ import annotations

import json
import traceback
import urllib.request
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from waf_regex_sets.config import ProviderConfig
from waf_regex_sets.exceptions import ValidationError, WafRegexSetsError
from waf_regex_sets.planner import refresh
from waf_regex_sets.provider import Provider
from waf_regex_sets.resources import REGEX_MATCH_SET, REGEX_PATTERN_SET
from waf_regex_sets.schema import Resource

PATTERN_SET_TYPE = "Custom::WafRegexPatternSet"
MATCH_SET_TYPE = "Custom::WafRegexMatchSet"

PROVIDER_PROPERTIES = ("ServiceToken", "Scope", "Region")

RESPONSE_TIMEOUT_SECONDS = 10


class StructuredLogger:
    """JSON-formatted logger for CloudWatch Logs Insights.

    Fields given to ``bound`` are added to every entry logged inside the
    block, so each line of a request carries its request and resource ids.
    """

    def __init__(self, name: str):
        self._name = name
        self._fields: dict[str, Any] = {}

    @contextmanager
    def bound(self, **fields: Any) -> Iterator[StructuredLogger]:
        previous = self._fields
        self._fields = {**previous, **fields}
        try:
            yield self
        finally:
            self._fields = previous

    def _log(self, level: str, message: str, **extra: Any) -> None:
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": level,
            "logger": self._name,
            "message": message,
            **self._fields,
            **extra,
        }
        print(json.dumps(log_entry, default=str))

    def info(self, message: str, **extra: Any) -> None:
        self._log("INFO", message, **extra)

    def warning(self, message: str, **extra: Any) -> None:
        self._log("WARNING", message, **extra)

    def error(self, message: str, exc_info: bool = False, **extra: Any) -> None:
        if exc_info:
            extra["exception"] = traceback.format_exc()
        self._log("ERROR", message, **extra)


logger = StructuredLogger(__name__)


class CreateFailedError(WafRegexSetsError):
    """A create that failed after WAF assigned an id, leaving the set behind.

    ``physical_id`` is reported back so the rollback Delete removes the set.
    """

    def __init__(self, physical_id: str, cause: Exception) -> None:
        self.physical_id = physical_id
        super().__init__(str(cause))


def on_event(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Lambda entry point."""
    request_type = event.get("RequestType", "")
    with logger.bound(
        request_id=event.get("RequestId"),
        request_type=request_type,
        resource_type=event.get("ResourceType", ""),
        logical_resource_id=event.get("LogicalResourceId"),
    ):
        response = _handle(event, context, request_type)
        _send_response(event, response)
        logger.info(
            "Custom resource request completed",
            status=response["Status"],
            physical_resource_id=response["PhysicalResourceId"],
        )
    return response


def _handle(event: dict[str, Any], context: Any, request_type: str) -> dict[str, Any]:
    physical_id = event.get("PhysicalResourceId", "")
    properties = event.get("ResourceProperties", {})
    logger.info("Custom resource request started", physical_resource_id=physical_id or None)

    try:
        resource = _resource_for(event.get("ResourceType", ""))
        provider = _provider_for(properties)

        if request_type == "Create":
            physical_id, data = _create(resource, provider, properties)
        elif request_type == "Update":
            physical_id, data = _update(resource, provider, physical_id, properties)
        elif request_type == "Delete":
            data = _delete(resource, provider, physical_id)
        else:
            raise ValidationError("RequestType", request_type, "unsupported request type")

        return _build_response(event, context, "SUCCESS", physical_id, data)
    except Exception as e:
        # CloudFormation needs a response for every request
        logger.error("Custom resource request failed", exc_info=True, error=str(e))
        if not physical_id:
            physical_id = (
                getattr(e, "physical_id", None)
                or getattr(context, "log_stream_name", None)
                or event.get("RequestId", "")
            )
        return _build_response(event, context, "FAILED", physical_id, {}, reason=str(e))


def _resource_for(resource_type: str) -> Resource:
    if resource_type == PATTERN_SET_TYPE:
        return REGEX_PATTERN_SET
    if resource_type == MATCH_SET_TYPE:
        return REGEX_MATCH_SET
    raise ValidationError(
        "ResourceType",
        resource_type,
        f"expected {PATTERN_SET_TYPE} or {MATCH_SET_TYPE}",
    )


def _provider_for(properties: dict[str, Any]) -> Provider:
    config = ProviderConfig.from_env(
        scope=properties.get("Scope"),
        region=properties.get("Region"),
    )
    return Provider(config)


def _properties_to_config(resource: Resource, properties: dict[str, Any]) -> dict[str, Any]:
    """Convert CloudFormation PascalCase properties to resource config."""
    props = {k: v for k, v in properties.items() if k not in PROVIDER_PROPERTIES}
    config: dict[str, Any] = {"name": props.pop("Name", None)}

    if resource is REGEX_PATTERN_SET:
        config["regex_pattern_strings"] = props.pop("RegexPatternStrings", [])
    else:
        tuples = []
        for cfn_tuple in props.pop("RegexMatchTuples", []):
            field = cfn_tuple.get("FieldToMatch") or {}
            field_to_match = {"type": field.get("Type")}
            if field.get("Data"):
                field_to_match["data"] = field["Data"]
            tuples.append(
                {
                    "field_to_match": field_to_match,
                    "text_transformation": cfn_tuple.get("TextTransformation"),
                    "regex_pattern_set_id": cfn_tuple.get("RegexPatternSetId"),
                }
            )
        config["regex_match_tuple"] = tuples

    if props:
        unknown = sorted(props)[0]
        raise ValidationError(unknown, props[unknown], "unknown property")
    return config


def _create(
    resource: Resource,
    provider: Provider,
    properties: dict[str, Any],
) -> tuple[str, dict[str, Any]]:
    d = resource.new_data(_properties_to_config(resource, properties))
    try:
        resource.create(d, provider)
    except WafRegexSetsError as e:
        if not d.id:
            raise
        # the set exists but its items were never written
        logger.warning("Deleting regex set after failed create", physical_resource_id=d.id)
        try:
            _delete(resource, provider, d.id)
        except WafRegexSetsError as cleanup_error:
            logger.error(
                "Could not delete regex set after failed create",
                physical_resource_id=d.id,
                error=str(cleanup_error),
            )
            raise CreateFailedError(d.id, e) from e
        raise
    return d.id, {"Id": d.id, "Name": d.get("name")}


def _update(
    resource: Resource,
    provider: Provider,
    physical_id: str,
    properties: dict[str, Any],
) -> tuple[str, dict[str, Any]]:
    config = _properties_to_config(resource, properties)

    state = refresh(resource, provider, physical_id) if physical_id else None
    if state is None:
        logger.warning("Regex set not found, creating a new one", physical_resource_id=physical_id)
        return _create(resource, provider, properties)

    d = resource.new_data(config, state=state, id=physical_id)
    replaced = resource.requires_replacement(d)
    if replaced:
        # CloudFormation deletes the old physical id once it sees a new one
        logger.info("Replacing regex set", physical_resource_id=physical_id, changed=replaced)
        return _create(resource, provider, properties)

    resource.update(d, provider)
    return d.id, {"Id": d.id, "Name": d.get("name")}


def _delete(resource: Resource, provider: Provider, physical_id: str) -> dict[str, Any]:
    state = refresh(resource, provider, physical_id) if physical_id else None
    if state is None:
        logger.info("Regex set already deleted", physical_resource_id=physical_id)
        return {}

    resource.delete(resource.new_data(state=state, id=physical_id), provider)
    return {}


def _build_response(
    event: dict[str, Any],
    context: Any,
    status: str,
    physical_id: str,
    data: dict[str, Any],
    reason: str | None = None,
) -> dict[str, Any]:
    log_stream = getattr(context, "log_stream_name", "unknown")
    return {
        "Status": status,
        "Reason": reason or f"See the details in CloudWatch Log Stream: {log_stream}",
        "PhysicalResourceId": physical_id,
        "StackId": event.get("StackId"),
        "RequestId": event.get("RequestId"),
        "LogicalResourceId": event.get("LogicalResourceId"),
        "NoEcho": False,
        "Data": data,
    }


def _send_response(event: dict[str, Any], response: dict[str, Any]) -> None:
    """PUT the response to the pre-signed CloudFormation URL."""
    url = event.get("ResponseURL")
    if not url:
        return

    body = json.dumps(response).encode()
    request = urllib.request.Request(
        url,
        data=body,
        method="PUT",
        headers={"Content-Type": "", "Content-Length": str(len(body))},
    )
    with urllib.request.urlopen(request, timeout=RESPONSE_TIMEOUT_SECONDS) as resp:
        logger.info("Response sent to CloudFormation", http_status=resp.status)
