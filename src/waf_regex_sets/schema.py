"""Declarative resource schemas.

A schema maps attribute names to :class:`Attribute` declarations. It is the
only place configuration is validated before reaching WAF: required
attributes, attribute types, element shapes and item counts. Value ranges
and enums are left to the WAF API.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .exceptions import ValidationError

if TYPE_CHECKING:
    from .provider import Provider
    from .resource_data import ResourceData

TYPE_STRING = "string"
TYPE_SET = "set"

HandlerFunc = Callable[["ResourceData", "Provider"], None]


@dataclass(frozen=True)
class Attribute:
    """
    One attribute of a resource schema.

    Attributes:
        type: ``"string"`` or ``"set"``
        required: Attribute must be given a non-empty value
        force_new: Changing the value requires replacing the resource
        elem: Converts a raw set element into a hashable value (sets only)
        description: Help text
    """

    type: str
    required: bool = False
    force_new: bool = False
    elem: Callable[[Any], Hashable] | None = None
    description: str = ""

    def empty(self) -> Any:
        return frozenset() if self.type == TYPE_SET else ""

    def normalize(self, name: str, value: Any) -> Any:
        """Validate a raw config value and return its canonical form."""
        if self.type == TYPE_STRING:
            if not isinstance(value, str):
                raise ValidationError(name, value, "must be a string")
            return value

        if isinstance(value, (str, bytes, dict)) or not hasattr(value, "__iter__"):
            raise ValidationError(name, value, "must be a list of values")
        convert = self.elem or (lambda v: v)
        return frozenset(convert(v) for v in value)


def validate_config(schema: dict[str, Attribute], config: dict[str, Any]) -> dict[str, Any]:
    """Validate ``config`` against ``schema``.

    Returns:
        A dict holding every schema attribute in canonical form. Absent
        optional attributes get their empty value.

    Raises:
        ValidationError: On unknown or missing attributes, or bad values.
    """
    unknown = sorted(set(config) - set(schema))
    if unknown:
        raise ValidationError(unknown[0], config[unknown[0]], "unknown attribute")

    result: dict[str, Any] = {}
    for name, attr in schema.items():
        value = config.get(name)
        if value is None or value == "":
            if attr.required:
                raise ValidationError(name, value, f"{name} is required")
            result[name] = attr.empty()
            continue
        result[name] = attr.normalize(name, value)
    return result


def string_elem(value: Any) -> str:
    """Set element converter for non-empty strings."""
    if not isinstance(value, str) or not value:
        raise ValidationError("element", value, "must be a non-empty string")
    return value


@dataclass(frozen=True)
class Resource:
    """A resource type: its schema plus its lifecycle handlers."""

    name: str
    schema: dict[str, Attribute]
    create_func: HandlerFunc
    read_func: HandlerFunc
    update_func: HandlerFunc
    delete_func: HandlerFunc

    def new_data(
        self,
        config: dict[str, Any] | None = None,
        *,
        state: dict[str, Any] | None = None,
        id: str = "",
    ) -> ResourceData:
        """Build a :class:`ResourceData` for this resource type."""
        from .resource_data import ResourceData

        return ResourceData(self.schema, config=config, state=state, id=id)

    def create(self, d: ResourceData, provider: Provider) -> None:
        self.create_func(d, provider)

    def read(self, d: ResourceData, provider: Provider) -> None:
        self.read_func(d, provider)

    def update(self, d: ResourceData, provider: Provider) -> None:
        self.update_func(d, provider)

    def delete(self, d: ResourceData, provider: Provider) -> None:
        self.delete_func(d, provider)

    def requires_replacement(self, d: ResourceData) -> list[str]:
        """Names of changed attributes that cannot be updated in place."""
        return [name for name, attr in self.schema.items() if attr.force_new and d.has_change(name)]
