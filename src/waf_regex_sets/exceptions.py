"""Exceptions for waf-regex-sets."""

from typing import Any

# ---------------------------------------------------------------------------
# Base Exception
# ---------------------------------------------------------------------------


class WafRegexSetsError(Exception):
    """
    Base exception for all waf-regex-sets errors.

    All exceptions raised by this library inherit from this class,
    allowing callers to catch all library-specific errors with a single
    except clause.
    """

    pass


# ---------------------------------------------------------------------------
# Validation Exceptions
# ---------------------------------------------------------------------------


class ValidationError(WafRegexSetsError):
    """
    Raised when configuration does not satisfy a resource schema or manifest.

    Attributes:
        field: Name of the offending attribute
        value: The rejected value
        reason: Human-readable explanation
    """

    def __init__(self, field: str, value: Any, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


# ---------------------------------------------------------------------------
# WAF API Exceptions
# ---------------------------------------------------------------------------


class WafApiError(WafRegexSetsError):
    """
    Raised when a WAF API call fails.

    Wraps the underlying botocore ``ClientError`` and adds the resource
    being operated on.

    Attributes:
        cause: The underlying exception
        resource_type: Resource type name (e.g. ``waf_regex_pattern_set``)
        resource_id: WAF identifier of the resource, if known
    """

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        *,
        resource_type: str | None = None,
        resource_id: str | None = None,
    ) -> None:
        self.cause = cause
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(self._format_message(message))

    @property
    def code(self) -> str | None:
        """AWS error code of the underlying ClientError, if any."""
        response = getattr(self.cause, "response", None)
        if not isinstance(response, dict):
            return None
        code = response.get("Error", {}).get("Code")
        return str(code) if code is not None else None

    def _format_message(self, message: str) -> str:
        parts = [message]
        context = []
        if self.resource_type:
            context.append(f"type={self.resource_type}")
        if self.resource_id:
            context.append(f"id={self.resource_id}")
        if context:
            parts.append(f"[{', '.join(context)}]")
        if self.cause is not None:
            parts.append(f": {self.cause}")
        return " ".join(parts)


class ChangeTokenError(WafApiError):
    """Raised when a change token cannot be acquired."""

    pass


class RetryTimeoutError(WafApiError):
    """
    Raised when the retry budget runs out while WAF keeps rejecting tokens.

    ``cause`` holds the last error seen before giving up.
    """

    def __init__(self, timeout_seconds: float, attempts: int, cause: Exception | None) -> None:
        self.timeout_seconds = timeout_seconds
        self.attempts = attempts
        super().__init__(
            f"Gave up after {attempts} attempt(s) in {timeout_seconds:.0f}s",
            cause,
        )
