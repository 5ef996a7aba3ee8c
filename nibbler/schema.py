"""
Declarative extraction schemas.

A schema is an ordered table of rules binding selectors to property names.
Parsing a document visits every rule, queries the document and stores the
converted matches on a fresh `Record`:

    article = Schema("Article")
    article.element("h1", "title")
    article.element("a::attr(href)", "link")

    blog = Schema("Blog")
    blog.element("title")
    blog.elements("#nav li", "navigation_items")
    blog.elements("div.hentry", "articles", using=article)

    record = blog.parse(html)
    record.articles[0].title
"""

import copy
import json
import logging
import re
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Tuple, Type, Union

from .converters import get_converter
from .documents import Document, HtmlDocument, JsonDocument, node_text, to_document
from .errors import InvalidDelegate, InvalidRuleDeclaration
from .models import ConversionFunction, NestedSchema, RuleDefinition, SchemaDefinition
from .record import Record
from .rules import RuleTable

logger = logging.getLogger(__name__)

PROPERTY_NAME = re.compile(r'^[A-Za-z_][\w-]*$')

# Names that would be shadowed by Record members on attribute access
RESERVED_NAMES = frozenset(name for name in dir(Record) if not name.startswith('_'))


class Schema:
    """Extraction schema for markup (and any object with `at`/`search`)."""

    def __init__(
        self,
        name: Optional[str] = None,
        rules: Optional[RuleTable] = None,
        record_class: Type[Record] = Record
    ):
        self.name = name or type(self).__name__
        self.rules = rules if rules is not None else RuleTable()
        self.record_class = record_class

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} rules={self.rules.names()}>"

    @classmethod
    def base_schema_class(cls) -> Type["Schema"]:
        """Class used for inline nested schemas declared on this schema."""
        return Schema

    # Declaration

    def element(
        self,
        spec: Union[str, Mapping[str, str]],
        property: Optional[str] = None,
        *,
        using: Any = None,
        nested: Optional[Callable[["Schema"], Any]] = None
    ) -> str:
        """Declare a singular rule; the first match is stored.

        Args:
            spec: Bare property name, a selector, or a `{selector: property}` mapping
            property: Property name when `spec` is a selector
            using: Conversion function or schema applied to the match
            nested: Callable that declares rules on an inline nested schema

        Returns:
            The property name
        """
        selector, name, delegate = self._parse_rule_declaration(spec, property, using, nested)
        return self.rules.declare_singular(selector, name, delegate)

    def elements(
        self,
        spec: Union[str, Mapping[str, str]],
        property: Optional[str] = None,
        *,
        using: Any = None,
        nested: Optional[Callable[["Schema"], Any]] = None
    ) -> str:
        """Declare a plural rule; every match is collected into a list."""
        selector, name, delegate = self._parse_rule_declaration(spec, property, using, nested)
        return self.rules.declare_plural(selector, name, delegate)

    def declare_singular(self, selector: str, property: str, delegate: Any = None) -> str:
        return self.element(selector, property, using=delegate)

    def declare_plural(self, selector: str, property: str, delegate: Any = None) -> str:
        return self.elements(selector, property, using=delegate)

    def derive(self, name: Optional[str] = None) -> "Schema":
        """Copy of this schema whose rules can be extended independently."""
        derived = copy.copy(self)
        derived.name = name or self.name
        derived.rules = self.rules.derive()
        return derived

    def _parse_rule_declaration(self, spec, property, using, nested) -> Tuple[str, str, Any]:
        if isinstance(spec, Mapping):
            if property is not None or len(spec) != 1:
                raise InvalidRuleDeclaration(f"Expected a single {{selector: property}} pair, got {spec!r}")
            selector, property = next(iter(spec.items()))
        elif isinstance(spec, str) and property is None:
            if not PROPERTY_NAME.match(spec):
                raise InvalidRuleDeclaration(
                    f"{spec!r} is not a property name; pass the property explicitly"
                )
            selector = property = spec
        elif isinstance(spec, str):
            selector = spec
        else:
            raise InvalidRuleDeclaration(f"Invalid rule declaration: {spec!r}")

        if not isinstance(property, str) or not PROPERTY_NAME.match(property):
            raise InvalidRuleDeclaration(f"Invalid property name {property!r} for selector {selector!r}")
        if property in RESERVED_NAMES:
            raise InvalidRuleDeclaration(f"Property name {property!r} is reserved by {Record.__name__}")

        if nested is not None:
            if using is not None and not isinstance(using, Schema):
                raise InvalidDelegate("Nested rules can only extend a schema")
            inline = using.derive(property) if using is not None else self.base_schema_class()(property)
            nested(inline)
            using = inline

        return selector, property, using

    # Extraction

    def convert_document(self, document: Any, parent: Optional[Document] = None) -> Document:
        if isinstance(document, (str, bytes)):
            return HtmlDocument(document)
        return to_document(document, parent)

    def parse(self, document: Any, into: Optional[Record] = None, parent: Optional[Document] = None) -> Record:
        """Extract a record from `document`.

        Args:
            document: Markup, JSON data, or anything with `at` and `search`
            into: Existing record to parse again; singular properties are
                replaced and plural properties are appended to
            parent: Document the input was matched in (nested schemas)

        Returns:
            The populated record
        """
        doc = self.convert_document(document, parent)
        record = into if into is not None else self.record_class()

        for rule in self.rules:
            if rule.plural and not isinstance(record.get(rule.property), list):
                record[rule.property] = []
            elif not rule.plural and rule.property not in record:
                record[rule.property] = None

        for rule in self.rules:
            if rule.plural:
                matches = doc.search(rule.selector)
                logger.debug("%s.%s: %d matches for %r", self.name, rule.property, len(matches), rule.selector)
                values = record[rule.property]
                values.extend(self.resolve(node, rule.delegate, record, doc) for node in matches)
            else:
                node = doc.at(rule.selector)
                logger.debug("%s.%s: %s for %r", self.name, rule.property,
                             "match" if node is not None else "no match", rule.selector)
                record[rule.property] = self.resolve(node, rule.delegate, record, doc)

        return record

    def parse_many(self, documents: List[Any]) -> List[Record]:
        return [self.parse(document) for document in documents]

    def resolve(self, node: Any, delegate: Any, record: Record, document: Any = None) -> Any:
        """Convert a matched node into a property value."""
        if node is None:
            return None
        if delegate is None:
            return node_text(node)
        if isinstance(delegate, ConversionFunction):
            return delegate(node, record)
        if isinstance(delegate, NestedSchema):
            return delegate.target.parse(node, parent=document)
        raise InvalidDelegate(f"Can't resolve a value with {delegate!r}")

    # Definitions

    @classmethod
    def from_definition(cls, definition: Union[SchemaDefinition, Mapping[str, Any]]) -> "Schema":
        """Build a schema from a declarative definition."""
        if not isinstance(definition, SchemaDefinition):
            definition = SchemaDefinition.model_validate(definition)

        schema_class = JsonSchema if definition.type == "json" else Schema
        schema = schema_class(definition.name)
        for rule in definition.rules:
            _declare_from_definition(schema, rule)
        return schema


def _declare_from_definition(schema: Schema, rule: RuleDefinition) -> None:
    nested = None
    if rule.rules:
        def nested(inline, rules=rule.rules):
            for child in rules:
                _declare_from_definition(inline, child)

    using = get_converter(rule.converter) if rule.converter else None
    if nested is not None and using is not None:
        raise InvalidRuleDeclaration(f"Rule {rule.property!r} can't have both a converter and nested rules")

    declare = schema.elements if rule.plural else schema.element
    if rule.selector is None:
        declare(rule.property, using=using, nested=nested)
    else:
        declare(rule.selector, rule.property, using=using, nested=nested)


class JsonSchema(Schema):
    """Extraction schema for JSON text or already decoded JSON data."""

    @classmethod
    def base_schema_class(cls) -> Type[Schema]:
        return JsonSchema

    def convert_document(self, document: Any, parent: Optional[Document] = None) -> Document:
        if parent is None and isinstance(document, (str, bytes, bytearray)):
            return JsonDocument.loads(document)
        if parent is None and not callable(getattr(document, "search", None)):
            return JsonDocument(document)
        return to_document(document, parent)


def load_schema(path: Union[str, Path]) -> Schema:
    """Load a schema definition from a JSON file."""
    with open(path) as f:
        return Schema.from_definition(json.load(f))
