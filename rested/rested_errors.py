"""
Error values for parsing and evaluation, and the one renderer they share.

Both families wrap a small error-kind value in a `ContextualError` that knows
where in the source it happened. Rendering looks like:

    let a = 1
    get /users {
                ≈≈≈≈≈
                ↳ [2:13] expected 'string' but got identifier
                         a hint, if there is one
    }
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from rested.rested_lexer import Token, TokenKind
from rested.rested_locations import Location, Span


# ===================================================================
# Source context
# ===================================================================

@dataclass(frozen=True)
class ErrorSourceContext:
    above: Optional[str]
    line: str
    below: Optional[str]

    @classmethod
    def from_source(cls, location: Location, source: str) -> 'ErrorSourceContext':
        lines = [ln.rstrip("\r") for ln in source.split("\n")]

        def get_line(n: int) -> Optional[str]:
            if 0 <= n < len(lines):
                return lines[n]
            return None

        return cls(
            above=get_line(location.line - 1),
            line=get_line(location.line) or "",
            below=get_line(location.line + 1),
        )


class ContextualError(Exception):
    """An error kind paired with the span it covers and the lines around it.

    `span` is what the error replaces in the tree. `bad_token_at`, when given,
    is the narrower range that gets underlined.
    """

    def __init__(self, inner_error, span: Span, source: str,
                 message: Optional[str] = None, bad_token_at: Optional[Span] = None):
        super().__init__(str(inner_error))
        self.inner_error = inner_error
        self.span = span
        self.bad_token_at = bad_token_at or span
        self.message = message
        self.context = ErrorSourceContext.from_source(self.bad_token_at.end, source)

    def with_message(self, message: str) -> 'ContextualError':
        self.message = message
        return self

    def __str__(self) -> str:
        out = []
        if self.context.above is not None:
            out.append(self.context.above)
        out.append(self.context.line)

        marked = self.bad_token_at
        location = str(marked.start)
        indent = " " * marked.start.col
        out.append(f"{indent}{'≈' * max(marked.width, 1)}")
        out.append(f"{indent}↳ {location} {self.inner_error}")

        if self.message:
            out.append(f"{' ' * (marked.start.col + len(location))}   {self.message}")

        if self.context.below is not None:
            out.append(self.context.below)

        return "\n".join(out) + "\n"

    def __repr__(self) -> str:
        return f"ContextualError({self.inner_error!r}, {self.span})"


# ===================================================================
# Parse error kinds
# ===================================================================

def describe_token(token: Token) -> str:
    """How an offending token is named in messages."""
    if token.kind in (TokenKind.URL, TokenKind.LINE_COMMENT, TokenKind.ILLEGAL_TOKEN):
        return f"{token.kind}<{token.text}>"
    return str(token.kind)


class ParseError:
    pass


@dataclass(frozen=True)
class ExpectedToken(ParseError):
    found: Token
    expected: TokenKind

    def __str__(self) -> str:
        return f"expected '{self.expected}' but got {describe_token(self.found)}"


@dataclass(frozen=True)
class ExpectedEitherOfTokens(ParseError):
    found: Token
    expected: tuple

    def __str__(self) -> str:
        expected = ",".join(f"'{kind}'" for kind in self.expected)
        return f"expected either one of {expected} but got {describe_token(self.found)}"


@dataclass(frozen=True)
class DuplicateObjectKey(ParseError):
    key: str

    def __str__(self) -> str:
        return f"duplicate key: {self.key} is already set in this object"


# ===================================================================
# Interpreter error kinds
# ===================================================================

class InterpreterErrorKind:
    pass


@dataclass(frozen=True)
class UnknownConstant(InterpreterErrorKind):
    constant: str

    def __str__(self) -> str:
        return f"trying to set an unknown constant {self.constant}"


@dataclass(frozen=True)
class RequiredArguments(InterpreterErrorKind):
    required: int
    received: int

    def __str__(self) -> str:
        return f"{self.required} argument(s) required, recieved {self.received}"


@dataclass(frozen=True)
class EnvVariableNotFound(InterpreterErrorKind):
    name: str

    def __str__(self) -> str:
        return f'no variable found by the name "{self.name}"'


@dataclass(frozen=True)
class RequestWithPathnameWithoutBaseUrl(InterpreterErrorKind):

    def __str__(self) -> str:
        return ("BASE_URL needs to be set first for requests to work with just pathnames; "
                "try writing like set BASE_URL \"<api orgin>\" before this request")


@dataclass(frozen=True)
class UndefinedCallable(InterpreterErrorKind):
    name: str

    def __str__(self) -> str:
        return f"attempting to calling an undefined function: {self.name}"


@dataclass(frozen=True)
class UndeclaredIdentifier(InterpreterErrorKind):
    name: str

    def __str__(self) -> str:
        return f"undeclared variable: {self.name}"


@dataclass(frozen=True)
class UnsupportedAttribute(InterpreterErrorKind):
    name: str

    def __str__(self) -> str:
        return f"unsupported attribute: {self.name}"


@dataclass(frozen=True)
class DuplicateAttribute(InterpreterErrorKind):
    name: str

    def __str__(self) -> str:
        return f"duplicate attribute: @{self.name} is already set for this request"


@dataclass(frozen=True)
class TypeMismatch(InterpreterErrorKind):
    expected: str
    found: str

    def __str__(self) -> str:
        return f"type mismatch: expected a {self.expected} but found {self.found}"


@dataclass(frozen=True)
class Other(InterpreterErrorKind):
    error: str

    def __str__(self) -> str:
        return self.error


# ===================================================================
# Aggregates raised to callers
# ===================================================================

class InterpreterError(Exception):
    """Base for everything the interpret step raises."""

    def __init__(self, errors: Sequence[ContextualError]):
        self.errors: List[ContextualError] = list(errors)
        super().__init__(f"{len(self.errors)} error(s)")

    def __str__(self) -> str:
        return "".join(str(err) for err in self.errors)


class ParseErrors(InterpreterError):
    """The script has syntax errors; `program` is the partial tree."""

    def __init__(self, errors: Sequence[ContextualError], program=None):
        super().__init__(errors)
        self.program = program


class EvaluationErrors(InterpreterError):
    pass
