"""Core models for waf-regex-sets."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from .exceptions import ValidationError


@dataclass(frozen=True)
class FieldToMatch:
    """
    The part of a web request WAF inspects.

    Attributes:
        type: Request part (e.g. "URI", "HEADER", "QUERY_STRING")
        data: Header or query argument name, when ``type`` needs one
    """

    type: str
    data: str | None = None

    def __post_init__(self) -> None:
        if not self.type:
            raise ValidationError("field_to_match.type", self.type, "type is required")

    @classmethod
    def from_dict(cls, d: Any) -> FieldToMatch:
        # Accept a single-element list, the shape Terraform-style configs use
        if isinstance(d, (list, tuple)):
            if len(d) != 1:
                raise ValidationError(
                    "field_to_match", d, "exactly one field_to_match block is required"
                )
            d = d[0]
        if not isinstance(d, dict):
            raise ValidationError("field_to_match", d, "must be a mapping")
        data = d.get("data")
        return cls(type=d.get("type", ""), data=data if data else None)

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> FieldToMatch:
        return cls(type=d["Type"], data=d.get("Data") or None)

    def to_dict(self) -> dict[str, str]:
        result = {"type": self.type}
        if self.data is not None:
            result["data"] = self.data
        return result

    def to_api(self) -> dict[str, str]:
        result = {"Type": self.type}
        if self.data is not None:
            result["Data"] = self.data
        return result


@dataclass(frozen=True)
class RegexMatchTuple:
    """
    One rule of a regex match set.

    Two tuples are equal when all of their fields are equal, which is what
    the diff relies on.
    """

    field_to_match: FieldToMatch
    text_transformation: str
    regex_pattern_set_id: str

    def __post_init__(self) -> None:
        if not self.text_transformation:
            raise ValidationError(
                "text_transformation", self.text_transformation, "text_transformation is required"
            )
        if not self.regex_pattern_set_id:
            raise ValidationError(
                "regex_pattern_set_id",
                self.regex_pattern_set_id,
                "regex_pattern_set_id is required",
            )

    @classmethod
    def coerce(cls, value: Any) -> RegexMatchTuple:
        """Return ``value`` as a tuple, parsing it if it is a config mapping."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, dict):
            raise ValidationError("regex_match_tuple", value, "must be a mapping")
        return cls.from_dict(value)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> RegexMatchTuple:
        if "field_to_match" not in d:
            raise ValidationError("field_to_match", None, "field_to_match is required")
        return cls(
            field_to_match=FieldToMatch.from_dict(d["field_to_match"]),
            text_transformation=d.get("text_transformation", ""),
            regex_pattern_set_id=d.get("regex_pattern_set_id", ""),
        )

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> RegexMatchTuple:
        return cls(
            field_to_match=FieldToMatch.from_api(d["FieldToMatch"]),
            text_transformation=d["TextTransformation"],
            regex_pattern_set_id=d["RegexPatternSetId"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "field_to_match": self.field_to_match.to_dict(),
            "text_transformation": self.text_transformation,
            "regex_pattern_set_id": self.regex_pattern_set_id,
        }

    def to_api(self) -> dict[str, Any]:
        return {
            "FieldToMatch": self.field_to_match.to_api(),
            "TextTransformation": self.text_transformation,
            "RegexPatternSetId": self.regex_pattern_set_id,
        }

    @property
    def sort_key(self) -> tuple[str, str, str, str]:
        return (
            self.field_to_match.type,
            self.field_to_match.data or "",
            self.text_transformation,
            self.regex_pattern_set_id,
        )


def sorted_items(items: Iterable[Any]) -> list[Any]:
    """Order set items deterministically; match tuples sort by ``sort_key``."""
    return sorted(items, key=lambda v: v.sort_key if isinstance(v, RegexMatchTuple) else v)


@dataclass(frozen=True)
class RegexPatternSet:
    """Remote snapshot of a regex pattern set."""

    id: str
    name: str
    patterns: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> RegexPatternSet:
        return cls(
            id=d["RegexPatternSetId"],
            name=d.get("Name", ""),
            patterns=frozenset(d.get("RegexPatternStrings", [])),
        )


@dataclass(frozen=True)
class RegexMatchSet:
    """Remote snapshot of a regex match set."""

    id: str
    name: str
    tuples: frozenset[RegexMatchTuple] = field(default_factory=frozenset)

    @classmethod
    def from_api(cls, d: dict[str, Any]) -> RegexMatchSet:
        return cls(
            id=d["RegexMatchSetId"],
            name=d.get("Name", ""),
            tuples=frozenset(RegexMatchTuple.from_api(t) for t in d.get("RegexMatchTuples", [])),
        )
