"""
Ready-made conversion functions for rules, plus a registry so schema
definition files can refer to them by name (`"with": "strip_prefix:Published on "`).
"""

import re
from typing import Any, Callable, Dict, Optional
from urllib.parse import urljoin

from .documents import node_text
from .errors import InvalidDelegate


def text(node: Any) -> Optional[str]:
    """Text of a markup node, or the string form of any other value."""
    value = node_text(node, strip=True)
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def to_int(node: Any) -> Optional[int]:
    value = text(node)
    if value is None:
        return None
    match = re.search(r'-?\d[\d,]*', value)
    return int(match.group(0).replace(',', '')) if match else None


def to_float(node: Any) -> Optional[float]:
    value = text(node)
    if value is None:
        return None
    match = re.search(r'-?\d[\d,]*(\.\d+)?', value)
    return float(match.group(0).replace(',', '')) if match else None


def clean_email(node: Any) -> Optional[str]:
    value = text(node)
    if value is None:
        return None
    value = value.strip()
    if value.lower().startswith('mailto:'):
        value = value[len('mailto:'):]
    match = re.search(r'[\w\.-]+@[\w\.-]+\.\w+', value)
    return match.group(0) if match else value


def clean_url(node: Any) -> Optional[str]:
    value = text(node)
    if value is None:
        return None
    value = value.strip()
    if value and not value.startswith(('http://', 'https://', '//')):
        value = 'https://' + value
    return value


def strip_prefix(prefix: str) -> Callable[[Any], Optional[str]]:
    """Build a converter removing `prefix` from the node text."""
    def convert(node: Any) -> Optional[str]:
        value = text(node)
        if value is not None and value.startswith(prefix):
            value = value[len(prefix):]
        return value
    return convert


def absolute_url(base_url: str) -> Callable[[Any], Optional[str]]:
    """Build a converter resolving the node text against `base_url`."""
    def convert(node: Any) -> Optional[str]:
        value = text(node)
        return urljoin(base_url, value) if value else value
    return convert


def attribute(name: str) -> Callable[[Any], Optional[str]]:
    """Build a converter reading an attribute from a markup node."""
    def convert(node: Any) -> Optional[str]:
        attributes = getattr(node, 'attributes', None)
        if attributes is None:
            return None
        return attributes.get(name)
    return convert


CONVERTERS: Dict[str, Callable[[Any], Any]] = {
    'text': text,
    'int': to_int,
    'float': to_float,
    'email': clean_email,
    'url': clean_url,
}

FACTORIES: Dict[str, Callable[[str], Callable[[Any], Any]]] = {
    'strip_prefix': strip_prefix,
    'absolute_url': absolute_url,
    'attr': attribute,
}


def get_converter(name: str) -> Callable[[Any], Any]:
    """Look up a converter by name; `factory:argument` builds a parameterized one."""
    if name in CONVERTERS:
        return CONVERTERS[name]

    factory_name, sep, argument = name.partition(':')
    if sep and factory_name in FACTORIES:
        return FACTORIES[factory_name](argument)

    known = sorted(CONVERTERS) + [f"{n}:<arg>" for n in sorted(FACTORIES)]
    raise InvalidDelegate(f"Unknown converter {name!r}; expected one of {', '.join(known)}")
