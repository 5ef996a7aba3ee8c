from typing import Any, Dict, Iterator, List, Optional


def _to_plain(value: Any) -> Any:
    converter = getattr(value, "to_mapping", None)
    return converter() if callable(converter) else value


class Record:
    """Values extracted by one parse, keyed by property name.

    Properties are readable as attributes (`record.title`) or items
    (`record["title"]`). Plural properties hold lists.
    """

    def __init__(self, values: Optional[Dict[str, Any]] = None):
        object.__setattr__(self, "_values", dict(values or {}))

    def __getattr__(self, name: str) -> Any:
        values = self.__dict__.get("_values", {})
        if name in values:
            return values[name]
        raise AttributeError(f"{type(self).__name__!r} has no property {name!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self._values:
            self._values[name] = value
        else:
            object.__setattr__(self, name, value)

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self._values[name] = value

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return type(self) is type(other) and self._values == other._values

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self._values.items())
        return f"{type(self).__name__}({fields})"

    @property
    def properties(self) -> List[str]:
        return list(self._values)

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def to_mapping(self) -> Dict[str, Any]:
        """Plain dict of all properties, with nested records converted too."""
        mapping = {}
        for name, value in self._values.items():
            if isinstance(value, list):
                mapping[name] = [_to_plain(v) for v in value]
            else:
                mapping[name] = _to_plain(value)
        return mapping
