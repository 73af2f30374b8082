"""AWS connection shared by the resource handlers."""

from __future__ import annotations

import logging
from typing import Any

import boto3

from .config import ProviderConfig
from .retryer import WafRetryer

logger = logging.getLogger(__name__)


class Provider:
    """
    Holds the WAF client and configuration resource handlers run against.

    The boto3 client is created lazily on first use. A ready-made client
    can be injected for testing.

    Example:
        provider = Provider(ProviderConfig(scope="regional", region="eu-west-1"))
        data = REGEX_PATTERN_SET.new_data({"name": "bots", "regex_pattern_strings": ["^curl"]})
        REGEX_PATTERN_SET.create(data, provider)
    """

    def __init__(self, config: ProviderConfig | None = None, client: Any | None = None) -> None:
        self.config = config or ProviderConfig.from_env()
        self._client = client

    @property
    def client(self) -> Any:
        """boto3 ``waf`` or ``waf-regional`` client."""
        if self._client is None:
            session = boto3.Session(profile_name=self.config.profile)
            kwargs: dict[str, Any] = {"region_name": self.config.client_region}
            if self.config.endpoint_url:
                kwargs["endpoint_url"] = self.config.endpoint_url
            logger.debug(
                "Creating %s client in %s", self.config.service_name, self.config.client_region
            )
            self._client = session.client(self.config.service_name, **kwargs)
        return self._client

    def new_retryer(self) -> WafRetryer:
        """Return a retryer bound to this provider's change-token sequence."""
        return WafRetryer(
            self.client,
            self.config.lock_key,
            timeout=self.config.retry_timeout_seconds,
        )
