"""
waf-regex-sets: Declarative management of AWS WAF Classic regex sets.

Provides resource handlers for regex pattern sets and regex match sets:
- Create/read/update/delete driven by a desired configuration
- Item diffs applied as ordered DELETE-then-INSERT updates
- Change-token acquisition with retries on token conflicts and throttling
- A YAML manifest workflow (plan/apply/destroy) and a CLI

Example:
    from waf_regex_sets import Provider, ProviderConfig, REGEX_PATTERN_SET

    provider = Provider(ProviderConfig(scope="regional", region="eu-west-1"))
    data = REGEX_PATTERN_SET.new_data(
        {"name": "bad-bots", "regex_pattern_strings": ["^curl/", "python-requests"]}
    )
    REGEX_PATTERN_SET.create(data, provider)
    print(data.id)
"""

from importlib.metadata import PackageNotFoundError, version

from .config import SCOPE_GLOBAL, SCOPE_REGIONAL, ProviderConfig
from .differ import DELETE, INSERT, Update, diff_items
from .exceptions import (
    ChangeTokenError,
    RetryTimeoutError,
    ValidationError,
    WafApiError,
    WafRegexSetsError,
)
from .manifest import WafManifest
from .models import FieldToMatch, RegexMatchSet, RegexMatchTuple, RegexPatternSet
from .planner import (
    ApplyResult,
    PlannedChange,
    apply_manifest,
    compute_plan,
    destroy_manifest,
)
from .provider import Provider
from .resource_data import ResourceData
from .resources import REGEX_MATCH_SET, REGEX_PATTERN_SET, RESOURCES, get_resource
from .retryer import WafRetryer

try:
    __version__ = version("waf-regex-sets")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

__all__ = [
    # Version
    "__version__",
    # Connection
    "Provider",
    "ProviderConfig",
    "SCOPE_GLOBAL",
    "SCOPE_REGIONAL",
    "WafRetryer",
    # Resources
    "REGEX_MATCH_SET",
    "REGEX_PATTERN_SET",
    "RESOURCES",
    "ResourceData",
    "get_resource",
    # Models
    "FieldToMatch",
    "RegexMatchSet",
    "RegexMatchTuple",
    "RegexPatternSet",
    # Diff
    "DELETE",
    "INSERT",
    "Update",
    "diff_items",
    # Manifest workflow
    "ApplyResult",
    "PlannedChange",
    "WafManifest",
    "apply_manifest",
    "compute_plan",
    "destroy_manifest",
    # Exceptions
    "ChangeTokenError",
    "RetryTimeoutError",
    "ValidationError",
    "WafApiError",
    "WafRegexSetsError",
]
