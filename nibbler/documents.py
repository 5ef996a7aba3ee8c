"""
Queryable documents: anything answering `at(selector)` and `search(selector)`.

Markup is handled by selectolax; JSON-like data by the path-query engine.
"""

import json
import re
from functools import lru_cache
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union, runtime_checkable

from selectolax.lexbor import LexborHTMLParser, LexborNode

from .config import get_settings
from .jsonpath import MISSING, Filters, compile_path

JsonValue = Union[None, bool, int, float, str, List["JsonValue"], Dict[str, "JsonValue"]]

ATTR_SUFFIX = re.compile(r'^(?P<css>.*?)\s*::attr\(\s*(?P<name>[^)\s]+)\s*\)\s*$', re.DOTALL)
TEXT_SUFFIX = re.compile(r'^(?P<css>.*?)\s*::text\s*$', re.DOTALL)


@runtime_checkable
class Document(Protocol):
    """Minimal contract consumed by the extraction engine."""

    def at(self, selector: str) -> Any:
        ...

    def search(self, selector: str) -> List[Any]:
        ...


def is_document(obj: Any) -> bool:
    return callable(getattr(obj, "at", None)) and callable(getattr(obj, "search", None))


@lru_cache(maxsize=None)
def _modest_classes() -> Tuple[type, type]:
    # selectolax 1.0 dropped the Modest engine; its module refuses to import.
    from selectolax.parser import HTMLParser, Node
    return HTMLParser, Node


@lru_cache(maxsize=None)
def _html_types() -> Tuple[Tuple[type, ...], Tuple[type, ...]]:
    """(tree classes, node classes) of the selectolax engines installed."""
    try:
        tree, node = _modest_classes()
    except ImportError:
        return (LexborHTMLParser,), (LexborNode,)
    return (LexborHTMLParser, tree), (LexborNode, node)


def make_html_tree(markup: Union[str, bytes], backend: Optional[str] = None):
    """Parse markup with the configured selectolax backend."""
    backend = backend or get_settings().html_backend
    if backend == "modest":
        tree_class, _ = _modest_classes()
        return tree_class(markup)
    return LexborHTMLParser(markup)


def node_text(node: Any, strip: Optional[bool] = None) -> Any:
    """Default value of a matched node.

    Markup nodes are reduced to their text content; anything else (JSON
    scalars, attribute strings, objects) is returned as-is.
    """
    text = getattr(node, "text", None)
    if callable(text):
        if strip is None:
            strip = get_settings().strip_text
        return text(strip=strip)
    return node


class HtmlDocument:
    """Markup document backed by a selectolax tree or node.

    Selectors are CSS, optionally followed by `::attr(name)` to pick an
    attribute value or `::text` to pick stripped text. An empty CSS part
    addresses the wrapped node itself (`::attr(href)`).
    """

    def __init__(self, source: Any, backend: Optional[str] = None):
        if isinstance(source, (str, bytes)):
            source = make_html_tree(source, backend)
        if not callable(getattr(source, "css", None)):
            raise TypeError(f"Can't build an HTML document from {type(source).__name__}")
        self.node = source

    def __repr__(self) -> str:
        return f"<HtmlDocument {getattr(self.node, 'tag', type(self.node).__name__)}>"

    def search(self, selector: str) -> List[Any]:
        css, extract = _split_selector(selector)
        nodes = self.node.css(css) if css else [self._own_node()]

        if extract is None:
            return list(nodes)

        kind, name = extract
        if kind == "text":
            return [n.text(strip=True) for n in nodes if n is not None]

        values = []
        for n in nodes:
            if n is None:
                continue
            value = n.attributes.get(name)
            if value is not None:
                values.append(value)
        return values

    def at(self, selector: str) -> Any:
        css, extract = _split_selector(selector)
        if extract is None:
            return self.node.css_first(css)
        matches = self.search(selector)
        return matches[0] if matches else None

    def descend(self, node: Any) -> "HtmlDocument":
        return HtmlDocument(node)

    def _own_node(self):
        trees, _ = _html_types()
        if isinstance(self.node, trees):
            return self.node.root
        return self.node


def _split_selector(selector: str):
    match = ATTR_SUFFIX.match(selector)
    if match:
        return match.group("css"), ("attr", match.group("name"))
    match = TEXT_SUFFIX.match(selector)
    if match:
        return match.group("css"), ("text", None)
    return selector, None


class JsonDocument:
    """JSON-like data queried with path selectors.

    `root` is the value `$` paths start from. Sub-documents created with
    `descend` share it, so nested schemas can still reach the top level.
    """

    def __init__(self, data: JsonValue, root: Any = MISSING, filters: Optional[Filters] = None):
        self.data = data
        self.root = data if root is MISSING else root
        self.filters = dict(filters or {})

    @classmethod
    def loads(cls, text: Union[str, bytes], filters: Optional[Filters] = None) -> "JsonDocument":
        return cls(json.loads(text), filters=filters)

    def __repr__(self) -> str:
        return f"<JsonDocument {type(self.data).__name__}>"

    def search(self, selector: str) -> List[Any]:
        return compile_path(selector).evaluate(self.data, self.root, self.filters)

    def at(self, selector: str) -> Any:
        return compile_path(selector).first(self.data, self.root, self.filters)

    def descend(self, value: JsonValue) -> "JsonDocument":
        return JsonDocument(value, root=self.root, filters=self.filters)


def to_document(obj: Any, parent: Optional[Document] = None) -> Document:
    """Wrap `obj` in the document adapter that fits it.

    Args:
        obj: A document, a selectolax tree/node, markup text, or JSON data
        parent: Document `obj` was matched in, used to keep the JSON root
    """
    if is_document(obj):
        return obj
    if parent is not None and callable(getattr(parent, "descend", None)):
        return parent.descend(obj)
    trees, nodes = _html_types()
    if isinstance(obj, trees + nodes):
        return HtmlDocument(obj)
    if isinstance(obj, (dict, list)):
        return JsonDocument(obj)
    if isinstance(obj, (str, bytes)):
        return HtmlDocument(obj)
    raise TypeError(f"Can't query a {type(obj).__name__}; expected a document, markup or JSON data")
