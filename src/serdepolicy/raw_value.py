"""
Raw configuration values and the read-only config tree they come from.

A raw value is tri-state:
- MISSING: there is no entry at the requested path
- None: the entry exists and is explicitly null
- anything else: the entry exists and holds that value

Skip conditions depend on this distinction (IS_MISSING vs IS_NULL), so the
config tree never collapses "absent" into None.
"""

from collections.abc import Mapping
from typing import Any, Dict, Iterator, Sequence, Union

Path = Union[str, Sequence[str]]


class _MissingType:
    """Type of the MISSING sentinel. Only one instance exists."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'MISSING'

    def __bool__(self) -> bool:
        return False

    def __reduce__(self):
        return (_MissingType, ())


MISSING = _MissingType()


def is_missing(value: Any) -> bool:
    """True if value is the MISSING sentinel."""
    return value is MISSING


def is_null(value: Any) -> bool:
    """True if value is an explicit null entry (present, but None)."""
    return value is None


def split_path(path: Path) -> tuple:
    """Normalize a dotted string or a key sequence into a tuple of keys."""
    if isinstance(path, str):
        return tuple(path.split('.')) if path else ()
    return tuple(path)


class ConfigTree(Mapping):
    """
    Read-only view over a nested mapping of configuration values.

    Nested mappings are exposed as ConfigTree instances so that the
    deserializer can walk into sub-objects with the same API.

    Example:
        config = ConfigTree({"server": {"host": "localhost", "port": None}})
        config.get_raw("server.host")   # "localhost"
        config.get_raw("server.port")   # None (explicit null)
        config.get_raw("server.user")   # MISSING
    """

    def __init__(self, values: Mapping = None):
        if isinstance(values, ConfigTree):
            values = values._values
        self._values: Dict[str, Any] = dict(values or {})

    def get_raw(self, path: Path) -> Any:
        """Return the raw value at path, or MISSING if any segment is absent."""
        keys = split_path(path)
        if not keys:
            return self
        current: Any = self._values
        for key in keys:
            if isinstance(current, ConfigTree):
                current = current._values
            if not isinstance(current, Mapping) or key not in current:
                return MISSING
            current = current[key]
        return self._wrap(current)

    def contains(self, path: Path) -> bool:
        """True if an entry (possibly null) exists at path."""
        return self.get_raw(path) is not MISSING

    def is_empty(self) -> bool:
        return not self._values

    def to_dict(self) -> Dict[str, Any]:
        """Export to a plain nested dict."""
        return {
            key: value.to_dict() if isinstance(value, ConfigTree) else value
            for key, value in ((k, self._wrap(v)) for k, v in self._values.items())
        }

    @staticmethod
    def _wrap(value: Any) -> Any:
        if isinstance(value, Mapping) and not isinstance(value, ConfigTree):
            return ConfigTree(value)
        return value

    def __getitem__(self, key: str) -> Any:
        return self._wrap(self._values[key])

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ConfigTree({self._values!r})"
