"""Resource handlers for WAF Classic regex sets."""

from ..exceptions import ValidationError
from ..schema import Resource
from .regex_match_set import REGEX_MATCH_SET
from .regex_pattern_set import REGEX_PATTERN_SET

RESOURCES: dict[str, Resource] = {
    REGEX_MATCH_SET.name: REGEX_MATCH_SET,
    REGEX_PATTERN_SET.name: REGEX_PATTERN_SET,
}


def get_resource(name: str) -> Resource:
    """Look up a resource type by name."""
    try:
        return RESOURCES[name]
    except KeyError:
        raise ValidationError(
            "resource_type", name, f"expected one of {', '.join(sorted(RESOURCES))}"
        ) from None


__all__ = ["REGEX_MATCH_SET", "REGEX_PATTERN_SET", "RESOURCES", "get_resource"]
