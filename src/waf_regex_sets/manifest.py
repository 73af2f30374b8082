"""YAML manifest parsing and validation for declarative regex sets."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .exceptions import ValidationError
from .models import FieldToMatch, RegexMatchTuple

MAX_NAME_LENGTH = 128


def validate_set_name(name: Any) -> None:
    """WAF names are 1-128 characters."""
    if not isinstance(name, str) or not name:
        raise ValidationError("name", name, "Name cannot be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError("name", name, f"Name exceeds {MAX_NAME_LENGTH} characters")


def _mapping(field_name: str, value: Any) -> dict[str, Any]:
    """An optional YAML mapping; a bare key (None) reads as empty."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError(field_name, value, "must be a mapping")
    return value


@dataclass(frozen=True)
class PatternSetDecl:
    """A declared regex pattern set."""

    name: str
    patterns: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_dict(cls, name: str, d: dict[str, Any] | None) -> PatternSetDecl:
        validate_set_name(name)
        d = _mapping(f"regex_pattern_sets.{name}", d)
        patterns = d.get("patterns", [])
        if not isinstance(patterns, list) or not all(isinstance(p, str) and p for p in patterns):
            raise ValidationError(
                f"regex_pattern_sets.{name}.patterns", patterns, "must be a list of strings"
            )
        return cls(name=name, patterns=frozenset(patterns))

    def to_dict(self) -> dict[str, Any]:
        return {"patterns": sorted(self.patterns)}

    def to_config(self) -> dict[str, Any]:
        """Resource config for ``waf_regex_pattern_set``."""
        return {"name": self.name, "regex_pattern_strings": sorted(self.patterns)}


@dataclass(frozen=True)
class MatchTupleDecl:
    """A declared match tuple, referencing its pattern set by name or id."""

    field_to_match: FieldToMatch
    text_transformation: str
    regex_pattern_set: str | None = None
    regex_pattern_set_id: str | None = None

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> MatchTupleDecl:
        if not isinstance(d, dict):
            raise ValidationError("tuples", d, "each tuple must be a mapping")
        ref = d.get("regex_pattern_set")
        ref_id = d.get("regex_pattern_set_id")
        if bool(ref) == bool(ref_id):
            raise ValidationError(
                "regex_pattern_set",
                d,
                "exactly one of 'regex_pattern_set' or 'regex_pattern_set_id' is required",
            )
        text_transformation = d.get("text_transformation")
        if not text_transformation:
            raise ValidationError("text_transformation", None, "text_transformation is required")
        return cls(
            field_to_match=FieldToMatch.from_dict(d.get("field_to_match")),
            text_transformation=text_transformation,
            regex_pattern_set=ref,
            regex_pattern_set_id=ref_id,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "field_to_match": self.field_to_match.to_dict(),
            "text_transformation": self.text_transformation,
        }
        if self.regex_pattern_set is not None:
            result["regex_pattern_set"] = self.regex_pattern_set
        else:
            result["regex_pattern_set_id"] = self.regex_pattern_set_id
        return result

    def resolve(self, pattern_set_ids: Mapping[str, str]) -> RegexMatchTuple:
        """Build the match tuple, looking up a referenced pattern set's id."""
        if self.regex_pattern_set is None:
            pattern_set_id = self.regex_pattern_set_id or ""
        else:
            pattern_set_id = pattern_set_ids.get(self.regex_pattern_set, "")
            if not pattern_set_id:
                raise ValidationError(
                    "regex_pattern_set",
                    self.regex_pattern_set,
                    f"pattern set '{self.regex_pattern_set}' has no id",
                )
        return RegexMatchTuple(
            field_to_match=self.field_to_match,
            text_transformation=self.text_transformation,
            regex_pattern_set_id=pattern_set_id,
        )


@dataclass(frozen=True)
class MatchSetDecl:
    """A declared regex match set."""

    name: str
    tuples: tuple[MatchTupleDecl, ...] = ()

    @classmethod
    def from_dict(cls, name: str, d: dict[str, Any] | None) -> MatchSetDecl:
        validate_set_name(name)
        d = _mapping(f"regex_match_sets.{name}", d)
        raw_tuples = d.get("tuples", [])
        if not isinstance(raw_tuples, list):
            raise ValidationError(f"regex_match_sets.{name}.tuples", raw_tuples, "must be a list")
        return cls(name=name, tuples=tuple(MatchTupleDecl.from_dict(t) for t in raw_tuples))

    def to_dict(self) -> dict[str, Any]:
        return {"tuples": [t.to_dict() for t in self.tuples]}

    def references(self) -> set[str]:
        """Names of manifest pattern sets this match set uses."""
        return {t.regex_pattern_set for t in self.tuples if t.regex_pattern_set is not None}

    def to_config(self, pattern_set_ids: Mapping[str, str]) -> dict[str, Any]:
        """Resource config for ``waf_regex_match_set``."""
        return {
            "name": self.name,
            "regex_match_tuple": [t.resolve(pattern_set_ids).to_dict() for t in self.tuples],
        }


@dataclass(frozen=True)
class WafManifest:
    """Parsed YAML manifest of regex pattern sets and regex match sets."""

    pattern_sets: dict[str, PatternSetDecl] = field(default_factory=dict)
    match_sets: dict[str, MatchSetDecl] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> WafManifest:
        if not isinstance(d, dict):
            raise ValidationError("manifest", d, "manifest must be a mapping")

        unknown = sorted(set(d) - {"regex_pattern_sets", "regex_match_sets"})
        if unknown:
            raise ValidationError(unknown[0], d[unknown[0]], "unknown manifest section")

        pattern_sets = {
            name: PatternSetDecl.from_dict(name, val)
            for name, val in _mapping("regex_pattern_sets", d.get("regex_pattern_sets")).items()
        }
        match_sets = {
            name: MatchSetDecl.from_dict(name, val)
            for name, val in _mapping("regex_match_sets", d.get("regex_match_sets")).items()
        }

        if not pattern_sets and not match_sets:
            raise ValidationError("manifest", d, "manifest declares no regex sets")

        for match_set in match_sets.values():
            for ref in sorted(match_set.references()):
                if ref not in pattern_sets:
                    raise ValidationError(
                        f"regex_match_sets.{match_set.name}",
                        ref,
                        f"references undeclared pattern set '{ref}'",
                    )

        return cls(pattern_sets=pattern_sets, match_sets=match_sets)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> WafManifest:
        import yaml

        data = yaml.safe_load(yaml_str)
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.pattern_sets:
            result["regex_pattern_sets"] = {
                name: decl.to_dict() for name, decl in self.pattern_sets.items()
            }
        if self.match_sets:
            result["regex_match_sets"] = {
                name: decl.to_dict() for name, decl in self.match_sets.items()
            }
        return result
