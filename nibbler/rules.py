"""
Ordered rule tables and delegate normalization.
"""

from typing import Any, Dict, Iterator, List, Optional

from .errors import InvalidDelegate, InvalidRuleDeclaration
from .models import ConversionFunction, NestedSchema, Rule


def is_schema(obj: Any) -> bool:
    return callable(getattr(obj, "parse", None)) and isinstance(getattr(obj, "rules", None), RuleTable)


def as_delegate(obj: Any):
    """Normalize a delegate into a `ConversionFunction` or `NestedSchema`."""
    if obj is None or isinstance(obj, (ConversionFunction, NestedSchema)):
        return obj
    if is_schema(obj):
        return NestedSchema.of(obj)
    if callable(obj):
        return ConversionFunction.of(obj)
    raise InvalidDelegate(f"Delegate must be callable or a schema, got {type(obj).__name__}")


class RuleTable:
    """Rules keyed by property name, in declaration order.

    Redeclaring a property replaces its rule entirely but keeps its
    original position.
    """

    def __init__(self, rules: Optional[Dict[str, Rule]] = None):
        self._rules: Dict[str, Rule] = dict(rules or {})

    def __iter__(self) -> Iterator[Rule]:
        return iter(list(self._rules.values()))

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, name: object) -> bool:
        return name in self._rules

    def __getitem__(self, name: str) -> Rule:
        return self._rules[name]

    def __repr__(self) -> str:
        return f"RuleTable({list(self._rules)!r})"

    def names(self) -> List[str]:
        return list(self._rules)

    def declare_singular(self, selector: str, property: str, delegate: Any = None) -> str:
        if not isinstance(selector, str) or not selector.strip():
            raise InvalidRuleDeclaration(f"Invalid selector for {property!r}: {selector!r}")
        if not isinstance(property, str) or not property:
            raise InvalidRuleDeclaration(f"Invalid property name for selector {selector!r}: {property!r}")

        self._rules[property] = Rule(
            selector=selector,
            property=property,
            delegate=as_delegate(delegate),
        )
        return property

    def declare_plural(self, selector: str, property: str, delegate: Any = None) -> str:
        name = self.declare_singular(selector, property, delegate)
        self._rules[name] = self._rules[name].model_copy(update={"plural": True})
        return name

    def derive(self) -> "RuleTable":
        """Independent copy for an extending schema."""
        return RuleTable(self._rules)
