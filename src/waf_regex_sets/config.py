"""Provider configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .exceptions import ValidationError

SCOPE_GLOBAL = "global"
"""CloudFront WAF, served by the ``waf`` endpoint in us-east-1."""

SCOPE_REGIONAL = "regional"
"""Regional WAF, served by the ``waf-regional`` endpoint of a region."""

SCOPE_ENV_VAR = "WAF_REGEX_SETS_SCOPE"
RETRY_TIMEOUT_ENV_VAR = "WAF_REGEX_SETS_RETRY_TIMEOUT"

DEFAULT_REGION = "us-east-1"
DEFAULT_RETRY_TIMEOUT_SECONDS = 900.0


@dataclass(frozen=True)
class ProviderConfig:
    """
    Connection settings for WAF Classic.

    Attributes:
        scope: ``"global"`` or ``"regional"``
        region: AWS region (ignored for the global scope)
        endpoint_url: Override endpoint (e.g. LocalStack)
        profile: Named AWS profile
        retry_timeout_seconds: Budget for change-token retries
    """

    scope: str = SCOPE_GLOBAL
    region: str = DEFAULT_REGION
    endpoint_url: str | None = None
    profile: str | None = None
    retry_timeout_seconds: float = DEFAULT_RETRY_TIMEOUT_SECONDS

    def __post_init__(self) -> None:
        if self.scope not in (SCOPE_GLOBAL, SCOPE_REGIONAL):
            raise ValidationError("scope", self.scope, "must be 'global' or 'regional'")
        if not self.region:
            raise ValidationError("region", self.region, "region cannot be empty")
        if self.retry_timeout_seconds <= 0:
            raise ValidationError(
                "retry_timeout_seconds",
                self.retry_timeout_seconds,
                "must be positive",
            )

    @classmethod
    def from_env(cls, **overrides: object) -> ProviderConfig:
        """
        Build a config from environment variables.

        Explicit keyword overrides win over the environment; ``None`` values
        are ignored so CLI options that were not given fall through.
        """
        values: dict[str, object] = {
            "scope": os.environ.get(SCOPE_ENV_VAR, SCOPE_GLOBAL),
            "region": (
                os.environ.get("AWS_REGION")
                or os.environ.get("AWS_DEFAULT_REGION")
                or DEFAULT_REGION
            ),
            "endpoint_url": os.environ.get("AWS_ENDPOINT_URL") or None,
            "profile": os.environ.get("AWS_PROFILE") or None,
        }
        timeout = os.environ.get(RETRY_TIMEOUT_ENV_VAR)
        if timeout:
            try:
                values["retry_timeout_seconds"] = float(timeout)
            except ValueError:
                raise ValidationError(RETRY_TIMEOUT_ENV_VAR, timeout, "must be a number") from None

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)  # type: ignore[arg-type]

    @property
    def service_name(self) -> str:
        """boto3 service name for this scope."""
        return "waf" if self.scope == SCOPE_GLOBAL else "waf-regional"

    @property
    def client_region(self) -> str:
        """Region the client talks to. Global WAF lives in us-east-1."""
        return DEFAULT_REGION if self.scope == SCOPE_GLOBAL else self.region

    @property
    def lock_key(self) -> str:
        """Key of the change-token sequence this config mutates."""
        return SCOPE_GLOBAL if self.scope == SCOPE_GLOBAL else self.region
