"""Per-operation view of a single resource."""

from __future__ import annotations

from typing import Any

from .schema import Attribute, validate_config


class ResourceData:
    """
    Identity, prior state and desired config of one resource.

    Handlers read the desired value of an attribute with :meth:`get`, compare
    prior and desired values with :meth:`get_change` / :meth:`has_change`,
    and record what they observe remotely with :meth:`set`. When ``config``
    is ``None`` (destroy, refresh) the prior state is also the desired state.

    Args:
        schema: Attribute declarations of the resource type
        config: Desired configuration, validated against ``schema``
        state: Last known state, e.g. from a previous read
        id: Remote identifier, empty when the resource does not exist
    """

    def __init__(
        self,
        schema: dict[str, Attribute],
        config: dict[str, Any] | None = None,
        state: dict[str, Any] | None = None,
        id: str = "",
    ) -> None:
        self._schema = schema
        self._config = validate_config(schema, config) if config is not None else None
        self._state = self._normalize_state(state or {})
        self._observed: dict[str, Any] = {}
        self._id = id

    def _normalize_state(self, state: dict[str, Any]) -> dict[str, Any]:
        result = {}
        for name, attr in self._schema.items():
            value = state.get(name)
            result[name] = attr.empty() if value is None else attr.normalize(name, value)
        return result

    @property
    def id(self) -> str:
        return self._id

    def set_id(self, id: str) -> None:
        """Set the remote identifier; an empty string marks the resource gone."""
        self._id = id

    def get(self, key: str) -> Any:
        """Current value of ``key``: observed, else desired, else prior."""
        self._check_key(key)
        if key in self._observed:
            return self._observed[key]
        if self._config is not None:
            return self._config[key]
        return self._state[key]

    def get_change(self, key: str) -> tuple[Any, Any]:
        """Return ``(prior, desired)`` values of ``key``."""
        self._check_key(key)
        old = self._state[key]
        new = self._config[key] if self._config is not None else old
        return old, new

    def has_change(self, key: str) -> bool:
        old, new = self.get_change(key)
        return bool(old != new)

    def set(self, key: str, value: Any) -> None:
        """Record the remote value of ``key``."""
        attr = self._check_key(key)
        self._observed[key] = attr.empty() if value is None else attr.normalize(key, value)

    def state(self) -> dict[str, Any] | None:
        """Resulting state, or ``None`` if the resource does not exist."""
        if not self._id:
            return None
        return {name: self.get(name) for name in self._schema}

    def _check_key(self, key: str) -> Attribute:
        try:
            return self._schema[key]
        except KeyError:
            raise KeyError(f"Unknown attribute: {key}") from None
