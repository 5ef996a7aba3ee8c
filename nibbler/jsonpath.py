"""
JSONPath-style queries over plain JSON values (dicts, lists and scalars).

Selector syntax, read left to right:

    name              field of the current object, or every item when the
                      current value is an array
    $.a.b             field access anchored at the document root
    @.a.b             field access anchored at the current value
    ..name            every `name` field at any depth
    [0]               array index
    [1:3]             array slice, end exclusive
    [?(@.v > 1)]      filter items with a predicate

Indexes and slice bounds count from zero; a negative or out-of-range index,
or a negative slice bound, drops the array instead of counting from the end.
The final result is flattened, so matches never contain arrays of arrays.

Predicates use a small closed grammar (no host-language evaluation):
comparisons `== != < <= > >=`, regex matching `=~ /pattern/flags`,
`&&`, `||`, `!`, parentheses, `@`/`$` paths, string and number literals,
`true`, `false`, `null`, and bare names of filter callbacks registered on
the document.
"""

import logging
import re
from functools import lru_cache
from typing import Any, Callable, List, Mapping, NamedTuple, Optional, Tuple

from .errors import SelectorSyntaxError

logger = logging.getLogger(__name__)

FAST_PATH = re.compile(r'^[\w-]+$')
NAME = re.compile(r'[\w-]+')
INDEX = re.compile(r'\s*(-?\d+)\s*\]')
SLICE = re.compile(r'\s*(-?\d*)\s*:\s*(-?\d*)\s*\]')
INTEGER = re.compile(r'-?\d+')
NUMBER = re.compile(r'-?\d+(\.\d+)?([eE][-+]?\d+)?')
IDENTIFIER = re.compile(r'[A-Za-z_]\w*')
REGEX_FLAGS = {'i': re.IGNORECASE, 'm': re.MULTILINE, 's': re.DOTALL, 'x': re.VERBOSE}
COMPARISONS = ('==', '!=', '<=', '>=', '=~', '<', '>')

MISSING = object()

Filters = Mapping[str, Callable[[Any], Any]]


class _Context(NamedTuple):
    selector: str
    root: Any
    filters: Filters


class Field:
    def __init__(self, name: str):
        self.name = name

    def apply(self, values: List[Any], ctx: _Context) -> List[Any]:
        return [v[self.name] for v in values if isinstance(v, dict) and self.name in v]


class Descendants:
    def __init__(self, name: str):
        self.name = name

    def apply(self, values: List[Any], ctx: _Context) -> List[Any]:
        found: List[Any] = []
        for value in values:
            _collect(value, self.name, found)
        return found


class Index:
    def __init__(self, index: int):
        self.index = index

    def apply(self, values: List[Any], ctx: _Context) -> List[Any]:
        i = self.index
        return [v[i] for v in values if isinstance(v, list) and 0 <= i < len(v)]


class Slice:
    def __init__(self, start: Optional[int], stop: Optional[int]):
        self.start = start
        self.stop = stop

    def apply(self, values: List[Any], ctx: _Context) -> List[Any]:
        if (self.start or 0) < 0 or (self.stop or 0) < 0:
            return []
        items: List[Any] = []
        for value in values:
            if isinstance(value, list):
                items.extend(value[self.start:self.stop])
        return items


class Filter:
    def __init__(self, predicate: Callable[[Any, _Context], Any]):
        self.predicate = predicate

    def apply(self, values: List[Any], ctx: _Context) -> List[Any]:
        return [item for item in _flatten(values) if _truthy(self.predicate(item, ctx))]


def _collect(value: Any, name: str, found: List[Any]) -> None:
    """Depth-first, pre-order search for `name` fields."""
    if isinstance(value, dict):
        if name in value:
            found.append(value[name])
        for child in value.values():
            _collect(child, name, found)
    elif isinstance(value, list):
        for child in value:
            _collect(child, name, found)


def _flatten(values: List[Any]) -> List[Any]:
    flat: List[Any] = []
    for value in values:
        if isinstance(value, list):
            flat.extend(value)
        else:
            flat.append(value)
    return flat


def _flatten_all(values: List[Any]) -> List[Any]:
    """Splice nested arrays at any depth into one ordered list."""
    flat: List[Any] = []
    for value in values:
        if isinstance(value, list):
            flat.extend(_flatten_all(value))
        else:
            flat.append(value)
    return flat


def _truthy(value: Any) -> bool:
    return value is not MISSING and value is not None and value is not False


class JsonPath:
    """A compiled selector."""

    def __init__(self, selector: str, steps: List[Any], from_root: bool = False, field: Optional[str] = None):
        self.selector = selector
        self.steps = steps
        self.from_root = from_root
        self.field = field

    def __repr__(self) -> str:
        return f"JsonPath({self.selector!r})"

    def evaluate(self, current: Any, root: Any = MISSING, filters: Optional[Filters] = None) -> List[Any]:
        """Return every value matched by this path as a flat list.

        Args:
            current: Value that relative paths start from
            root: Value that `$` paths start from (defaults to `current`)
            filters: Named predicate callbacks usable inside `[?(...)]`
        """
        if root is MISSING:
            root = current

        if self.field is not None:
            if isinstance(current, dict):
                return _flatten_all([current[self.field]]) if self.field in current else []
            if isinstance(current, list):
                # The field name is ignored for arrays; kept for compatibility.
                return _flatten_all(current)
            return []

        ctx = _Context(self.selector, root, filters or {})
        values = [root if self.from_root else current]
        for step in self.steps:
            values = step.apply(values, ctx)
            if not values:
                break
        return _flatten_all(values)

    def first(self, current: Any, root: Any = MISSING, filters: Optional[Filters] = None) -> Any:
        matches = self.evaluate(current, root, filters)
        return matches[0] if matches else None


@lru_cache(maxsize=512)
def compile_path(selector: str) -> JsonPath:
    """Compile a selector string, raising `SelectorSyntaxError` if malformed."""
    if not isinstance(selector, str):
        raise SelectorSyntaxError("selector must be a string", repr(selector))
    if FAST_PATH.match(selector):
        return JsonPath(selector, [], field=selector)
    path = _PathParser(selector).parse()
    logger.debug("Compiled path %r into %d steps", selector, len(path.steps))
    return path


class _PathParser:
    def __init__(self, selector: str):
        self.selector = selector
        self.pos = 0

    def error(self, message: str, position: Optional[int] = None) -> SelectorSyntaxError:
        return SelectorSyntaxError(message, self.selector, self.pos if position is None else position)

    def parse(self) -> JsonPath:
        s = self.selector
        if not s.strip():
            raise SelectorSyntaxError("empty selector", s)

        from_root = False
        if s[0] == '$':
            from_root = True
            self.pos = 1
        elif s[0] == '@':
            self.pos = 1

        steps: List[Any] = []
        if self.pos < len(s) and s[self.pos] not in '.[':
            steps.append(Field(self._name()))

        while self.pos < len(s):
            if s.startswith('..', self.pos):
                self.pos += 2
                steps.append(Descendants(self._name()))
            elif s[self.pos] == '.':
                self.pos += 1
                steps.append(Field(self._name()))
            elif s[self.pos] == '[':
                steps.append(self._bracket())
            else:
                raise self.error(f"unexpected character {s[self.pos]!r}")

        return JsonPath(s, steps, from_root=from_root)

    def _name(self) -> str:
        match = NAME.match(self.selector, self.pos)
        if not match:
            raise self.error("expected a field name")
        self.pos = match.end()
        return match.group()

    def _bracket(self):
        s = self.selector
        start = self.pos
        self.pos += 1

        if s.startswith('?(', self.pos):
            predicate, self.pos = _PredicateParser(s, self.pos + 2).parse()
            if not s.startswith(')', self.pos):
                raise self.error("unterminated filter expression", start)
            self.pos += 1
            if not s.startswith(']', self.pos):
                raise self.error("unterminated bracket", start)
            self.pos += 1
            return Filter(predicate)

        match = INDEX.match(s, self.pos)
        if match:
            self.pos = match.end()
            return Index(int(match.group(1)))

        match = SLICE.match(s, self.pos)
        if match:
            self.pos = match.end()
            lower, upper = match.groups()
            return Slice(int(lower) if lower else None, int(upper) if upper else None)

        if ']' not in s[self.pos:]:
            raise self.error("unterminated bracket", start)
        raise self.error("unsupported bracket expression", start)


class _PredicateParser:
    """Recursive descent parser turning a filter expression into a callable.

    Every parse method returns a function of `(item, ctx)`.
    """

    def __init__(self, selector: str, pos: int):
        self.selector = selector
        self.pos = pos

    def error(self, message: str) -> SelectorSyntaxError:
        return SelectorSyntaxError(message, self.selector, self.pos)

    def parse(self) -> Tuple[Callable[[Any, _Context], Any], int]:
        expr = self._or()
        self._skip()
        return expr, self.pos

    def _skip(self) -> None:
        while self.pos < len(self.selector) and self.selector[self.pos].isspace():
            self.pos += 1

    def _accept(self, token: str) -> bool:
        self._skip()
        if self.selector.startswith(token, self.pos):
            self.pos += len(token)
            return True
        return False

    def _or(self):
        left = self._and()
        while self._accept('||'):
            left = _either(left, self._and())
        return left

    def _and(self):
        left = self._unary()
        while self._accept('&&'):
            left = _both(left, self._unary())
        return left

    def _unary(self):
        if self._accept('!'):
            operand = self._unary()
            return lambda item, ctx: not _truthy(operand(item, ctx))
        if self._accept('('):
            expr = self._or()
            if not self._accept(')'):
                raise self.error("unbalanced parenthesis")
            return expr
        return self._comparison()

    def _comparison(self):
        left = self._operand()
        self._skip()
        for op in COMPARISONS:
            if self.selector.startswith(op, self.pos):
                self.pos += len(op)
                if op == '=~':
                    pattern = self._pattern()
                    return lambda item, ctx: _matches(left(item, ctx), pattern)
                right = self._operand()
                return lambda item, ctx: _compare(op, left(item, ctx), right(item, ctx))
        return left

    def _operand(self):
        self._skip()
        s = self.selector
        if self.pos >= len(s):
            raise self.error("unterminated filter expression")

        ch = s[self.pos]
        if ch in '@$':
            self.pos += 1
            accessors = self._accessors()
            if ch == '@':
                return lambda item, ctx: _walk(item, accessors)
            return lambda item, ctx: _walk(ctx.root, accessors)

        if ch in '\'"':
            value = self._string()
            return lambda item, ctx: value

        match = NUMBER.match(s, self.pos)
        if match:
            self.pos = match.end()
            text = match.group()
            value = float(text) if ('.' in text or 'e' in text.lower()) else int(text)
            return lambda item, ctx: value

        match = IDENTIFIER.match(s, self.pos)
        if match:
            self.pos = match.end()
            name = match.group()
            constants = {'true': True, 'false': False, 'null': None}
            if name in constants:
                value = constants[name]
                return lambda item, ctx: value
            return lambda item, ctx: _call_filter(name, item, ctx)

        raise self.error("expected an operand")

    def _accessors(self) -> List[Any]:
        s = self.selector
        accessors: List[Any] = []
        while self.pos < len(s):
            if s[self.pos] == '.' and not s.startswith('..', self.pos):
                self.pos += 1
                match = NAME.match(s, self.pos)
                if not match:
                    raise self.error("expected a field name")
                accessors.append(match.group())
                self.pos = match.end()
            elif s[self.pos] == '[':
                self.pos += 1
                self._skip()
                if self.pos < len(s) and s[self.pos] in '\'"':
                    accessors.append(self._string())
                else:
                    match = INTEGER.match(s, self.pos)
                    if not match:
                        raise self.error("expected an index or quoted name")
                    accessors.append(int(match.group()))
                    self.pos = match.end()
                if not self._accept(']'):
                    raise self.error("unterminated bracket")
            else:
                break
        return accessors

    def _string(self) -> str:
        s = self.selector
        quote = s[self.pos]
        self.pos += 1
        chars: List[str] = []
        while self.pos < len(s):
            ch = s[self.pos]
            if ch == '\\' and self.pos + 1 < len(s):
                chars.append(s[self.pos + 1])
                self.pos += 2
                continue
            if ch == quote:
                self.pos += 1
                return ''.join(chars)
            chars.append(ch)
            self.pos += 1
        raise self.error("unterminated string literal")

    def _pattern(self) -> re.Pattern:
        self._skip()
        s = self.selector
        if s.startswith(('"', "'"), self.pos):
            source, flags = self._string(), 0
        elif s.startswith('/', self.pos):
            self.pos += 1
            chars: List[str] = []
            while True:
                if self.pos >= len(s):
                    raise self.error("unterminated regular expression")
                ch = s[self.pos]
                if ch == '\\' and self.pos + 1 < len(s) and s[self.pos + 1] == '/':
                    chars.append('/')
                    self.pos += 2
                    continue
                self.pos += 1
                if ch == '/':
                    break
                chars.append(ch)
            source, flags = ''.join(chars), 0
            while self.pos < len(s) and s[self.pos] in REGEX_FLAGS:
                flags |= REGEX_FLAGS[s[self.pos]]
                self.pos += 1
        else:
            raise self.error("expected a regular expression")

        try:
            return re.compile(source, flags)
        except re.error as e:
            raise self.error(f"invalid regular expression ({e})") from e


def _either(left, right):
    return lambda item, ctx: _truthy(left(item, ctx)) or _truthy(right(item, ctx))


def _both(left, right):
    return lambda item, ctx: _truthy(left(item, ctx)) and _truthy(right(item, ctx))


def _walk(value: Any, accessors: List[Any]) -> Any:
    for key in accessors:
        if isinstance(key, int):
            if not (isinstance(value, list) and 0 <= key < len(value)):
                return MISSING
        elif not (isinstance(value, dict) and key in value):
            return MISSING
        value = value[key]
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _same(left: Any, right: Any) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    return left == right


def _compare(op: str, left: Any, right: Any) -> bool:
    if left is MISSING or right is MISSING:
        return False
    if op == '==':
        return _same(left, right)
    if op == '!=':
        return not _same(left, right)
    if not ((_is_number(left) and _is_number(right)) or (isinstance(left, str) and isinstance(right, str))):
        return False
    if op == '<':
        return left < right
    if op == '<=':
        return left <= right
    if op == '>':
        return left > right
    return left >= right


def _matches(value: Any, pattern: re.Pattern) -> bool:
    return isinstance(value, str) and pattern.search(value) is not None


def _call_filter(name: str, item: Any, ctx: _Context) -> bool:
    callback = ctx.filters.get(name)
    if callback is None:
        raise SelectorSyntaxError(f"unknown filter {name!r}", ctx.selector)
    return bool(callback(item))


def search(data: Any, selector: str, root: Any = MISSING, filters: Optional[Filters] = None) -> List[Any]:
    """Evaluate `selector` against `data` and return all matches."""
    return compile_path(selector).evaluate(data, root, filters)


def first(data: Any, selector: str, root: Any = MISSING, filters: Optional[Filters] = None) -> Any:
    """Evaluate `selector` against `data` and return the first match or None."""
    return compile_path(selector).first(data, root, filters)


__all__ = ["JsonPath", "compile_path", "search", "first", "Filters", "MISSING"]
