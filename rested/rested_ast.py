"""
Syntax tree for rested scripts.

Any slot that can fail to parse holds either a real node or an `Error` node
wrapping the parse error, so a malformed construct never takes its
neighbours down with it. `Error` doubles as the failed variant of items,
statements, expressions, endpoints and single tokens (`ParsedNode`).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Union

from rested.rested_errors import ContextualError
from rested.rested_lexer import Token
from rested.rested_locations import Location, Span, span_of


class Node:
    """Base for every tree node: a span and the nodes directly below it."""

    @property
    def span(self) -> Span:
        raise NotImplementedError

    def children(self) -> List['Node']:
        return []


def walk(node: Node) -> Iterator[Node]:
    """Yield `node` and all of its descendants, depth first, in source order."""
    yield node
    for child in node.children():
        yield from walk(child)


# =================================================================
# Parsed-node wrappers
# =================================================================

@dataclass
class Ok(Node):
    value: Union[Token, 'StringLiteral']

    @property
    def span(self) -> Span:
        return self.value.span

    def get(self):
        return self.value


@dataclass(eq=False)
class Error(Node):
    """A construct that failed to parse."""
    error: ContextualError

    @property
    def span(self) -> Span:
        return self.error.span

    def get(self):
        raise self.error


ParsedNode = Union[Ok, Error]


# =================================================================
# Literals
# =================================================================

@dataclass
class Literal(Node):
    value: str
    _span: Span

    @property
    def span(self) -> Span:
        return self._span

    @classmethod
    def from_token(cls, token: Token):
        return cls(token.text, token.span)


class Url(Literal):
    pass


class Pathname(Literal):
    pass


Endpoint = Union[Url, Pathname, Error]


def _unescape(text: str, quote: str) -> str:
    return text.replace("\\" + quote, quote)


@dataclass
class StringLiteral(Node):
    raw: str
    value: str
    _span: Span

    @property
    def span(self) -> Span:
        return self._span

    @classmethod
    def from_token(cls, token: Token) -> 'StringLiteral':
        """A double-quoted string token, quotes stripped from the value."""
        text = token.text
        value = text[1:-1] if len(text) > 1 and text.endswith('"') else text[1:]
        return cls(text, _unescape(value, '"'), token.span)

    @classmethod
    def from_template_segment(cls, token: Token) -> 'StringLiteral':
        value = _unescape(token.text, "`").replace("\\${", "${")
        return cls(token.text, value, token.span)


@dataclass
class LineComment(Node):
    value: str
    _span: Span

    @property
    def span(self) -> Span:
        return self._span

    @classmethod
    def from_token(cls, token: Token) -> 'LineComment':
        return cls(token.text, token.span)


# =================================================================
# Expressions
# =================================================================

@dataclass
class Identifier(Node):
    token: Token

    @property
    def span(self) -> Span:
        return self.token.span

    @property
    def name(self) -> str:
        return self.token.text


@dataclass
class String(Node):
    literal: StringLiteral

    @property
    def span(self) -> Span:
        return self.literal.span

    @property
    def value(self) -> str:
        return self.literal.value


@dataclass
class Bool(Node):
    literal: Literal

    @property
    def span(self) -> Span:
        return self.literal.span

    @property
    def value(self) -> bool:
        return self.literal.value == "true"


@dataclass
class Number(Node):
    literal: Literal

    @property
    def span(self) -> Span:
        return self.literal.span

    @property
    def value(self) -> float:
        return float(self.literal.value)


@dataclass
class Arguments(Node):
    """A parenthesised expression list; `errors` holds separator problems."""
    _span: Span
    exprs: List['Expression'] = field(default_factory=list)
    errors: List[ContextualError] = field(default_factory=list)

    @property
    def span(self) -> Span:
        return self._span

    def children(self) -> List[Node]:
        return list(self.exprs)

    def __len__(self) -> int:
        return len(self.exprs)

    def __iter__(self):
        return iter(self.exprs)


@dataclass
class Call(Node):
    identifier: Token
    arguments: Arguments

    @property
    def span(self) -> Span:
        return self.identifier.span.to_end_of(self.arguments.span)

    @property
    def name(self) -> str:
        return self.identifier.text

    def children(self) -> List[Node]:
        return [self.arguments]


@dataclass
class Array(Node):
    _span: Span
    elements: List[Union['Expression', LineComment]] = field(default_factory=list)
    errors: List[ContextualError] = field(default_factory=list)

    @property
    def span(self) -> Span:
        return self._span

    def values(self) -> List['Expression']:
        return [e for e in self.elements if not isinstance(e, LineComment)]

    def children(self) -> List[Node]:
        return list(self.elements)


@dataclass
class ObjectEntry(Node):
    key: ParsedNode
    value: 'Expression'

    @property
    def span(self) -> Span:
        return self.key.span.to_end_of(self.value.span)

    @property
    def name(self) -> Optional[str]:
        if isinstance(self.key, Ok):
            return self.key.value.text
        return None

    def children(self) -> List[Node]:
        return [self.key, self.value]


@dataclass
class Object(Node):
    _span: Span
    entries: List[Union[ObjectEntry, LineComment]] = field(default_factory=list)
    errors: List[ContextualError] = field(default_factory=list)

    @property
    def span(self) -> Span:
        return self._span

    def fields(self) -> List[ObjectEntry]:
        return [e for e in self.entries if isinstance(e, ObjectEntry)]

    def keys(self) -> List[str]:
        return [e.name for e in self.fields() if e.name is not None]

    def children(self) -> List[Node]:
        return list(self.entries)


@dataclass
class Null(Node):
    _span: Span

    @property
    def span(self) -> Span:
        return self._span


@dataclass
class EmptyArray(Node):
    _span: Span

    @property
    def span(self) -> Span:
        return self._span


@dataclass
class EmptyObject(Node):
    _span: Span

    @property
    def span(self) -> Span:
        return self._span


@dataclass
class TemplateStringLiteral(Node):
    """`text ${expr} text`: string parts alternate with interpolated expressions."""
    parts: List['Expression']
    _span: Span

    @property
    def span(self) -> Span:
        return self._span

    def children(self) -> List[Node]:
        return list(self.parts)


Expression = Union[
    Identifier, String, Bool, Number, Call, Array, Object,
    Null, EmptyArray, EmptyObject, TemplateStringLiteral, Error,
]


# =================================================================
# Statements
# =================================================================

@dataclass
class Header(Node):
    name: ParsedNode
    value: Expression
    start: Location

    @property
    def span(self) -> Span:
        return self.start.to_end_of(self.value.span)

    def children(self) -> List[Node]:
        return [self.name, self.value]


@dataclass
class Body(Node):
    value: Expression
    start: Location

    @property
    def span(self) -> Span:
        return self.start.to_end_of(self.value.span)

    def children(self) -> List[Node]:
        return [self.value]


Statement = Union[Header, Body, LineComment, Error]


@dataclass
class Block(Node):
    statements: List[Statement]
    _span: Span

    @property
    def span(self) -> Span:
        return self._span

    def children(self) -> List[Node]:
        return list(self.statements)


# =================================================================
# Items
# =================================================================

class RequestMethod(enum.Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    def __str__(self) -> str:
        return self.value


@dataclass
class Set(Node):
    identifier: ParsedNode
    value: Expression
    start: Location

    @property
    def span(self) -> Span:
        return self.start.to_end_of(self.value.span)

    def children(self) -> List[Node]:
        if self.identifier is self.value:
            return [self.value]
        return [self.identifier, self.value]


@dataclass
class Let(Node):
    identifier: ParsedNode
    value: Expression
    start: Location

    @property
    def span(self) -> Span:
        return self.start.to_end_of(self.value.span)

    def children(self) -> List[Node]:
        if self.identifier is self.value:
            return [self.value]
        return [self.identifier, self.value]


@dataclass
class Request(Node):
    method: RequestMethod
    endpoint: Endpoint
    block: Optional[Block]
    _span: Span

    @property
    def span(self) -> Span:
        return self._span

    def children(self) -> List[Node]:
        if self.block is None:
            return [self.endpoint]
        return [self.endpoint, self.block]


@dataclass
class Attribute(Node):
    location: Location
    identifier: ParsedNode
    arguments: Optional[Arguments] = None

    @property
    def span(self) -> Span:
        if self.arguments is not None:
            return self.location.to_end_of(self.arguments.span)
        return self.location.to_end_of(self.identifier.span)

    @property
    def name(self) -> Optional[str]:
        if isinstance(self.identifier, Ok):
            return self.identifier.value.text
        return None

    def children(self) -> List[Node]:
        if self.arguments is None:
            return [self.identifier]
        return [self.identifier, self.arguments]


@dataclass
class Expr(Node):
    """A bare expression at the top level."""
    expression: Expression

    @property
    def span(self) -> Span:
        return self.expression.span

    def children(self) -> List[Node]:
        return [self.expression]


Item = Union[Set, Let, LineComment, Request, Attribute, Expr, Error]


# =================================================================
# Program
# =================================================================

@dataclass
class Program(Node):
    source: str
    items: List[Item]

    @property
    def span(self) -> Span:
        return span_of(self.items) or Span(Location(0, 0), Location(0, 0))

    def children(self) -> List[Node]:
        return list(self.items)

    def errors(self) -> List[ContextualError]:
        """Every parse error in the tree, ordered by where it starts."""
        found: List[ContextualError] = []
        seen = set()

        def add(err: ContextualError):
            if id(err) not in seen:
                seen.add(id(err))
                found.append(err)

        for node in walk(self):
            if isinstance(node, Error):
                add(node.error)
            elif isinstance(node, (Arguments, Array, Object)):
                for err in node.errors:
                    add(err)

        found.sort(key=lambda e: e.span.start)
        return found

    def variables(self) -> List[Token]:
        return [
            item.identifier.value
            for item in self.items
            if isinstance(item, Let) and isinstance(item.identifier, Ok)
        ]

    def variables_before(self, location: Location) -> List[Token]:
        """`let` names whose declaration starts at or before `location`."""
        return [token for token in self.variables() if token.start.is_before(location)]
