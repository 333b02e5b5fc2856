"""
Tokenizer for rested scripts.

The lexer is pull-based: the parser asks for one token at a time with
`next_token()`. Template strings are the one place where a single scan step
produces several tokens (an opening backtick followed by a text segment and
an interpolation opener, say), so those are buffered in a small FIFO queue
that is always drained before the cursor moves on.
"""

from __future__ import annotations

import enum
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterator, List

from rested.rested_locations import Location, Span


class TokenKind(enum.Enum):
    # keywords
    GET = enum.auto()
    POST = enum.auto()
    PUT = enum.auto()
    PATCH = enum.auto()
    DELETE = enum.auto()
    HEADER = enum.auto()
    BODY = enum.auto()
    SET = enum.auto()
    LET = enum.auto()
    NULL = enum.auto()

    IDENT = enum.auto()

    # literals
    BOOLEAN = enum.auto()
    NUMBER = enum.auto()
    STRING_LITERAL = enum.auto()
    URL = enum.auto()
    PATHNAME = enum.auto()

    LINE_COMMENT = enum.auto()
    SHEBANG = enum.auto()

    # operators
    ASSIGN = enum.auto()

    # special characters
    DOLLAR_SIGN_LBRACKET = enum.auto()
    LPAREN = enum.auto()
    RPAREN = enum.auto()
    LBRACKET = enum.auto()
    RBRACKET = enum.auto()
    LSQUARE = enum.auto()
    RSQUARE = enum.auto()
    COLON = enum.auto()
    ATTRIBUTE_PREFIX = enum.auto()
    BACKTICK_OPEN = enum.auto()
    BACKTICK_CLOSE = enum.auto()
    COMMA = enum.auto()
    END = enum.auto()

    # edge cases
    UNFINISHED_STRING_LITERAL = enum.auto()
    UNFINISHED_MULTILINE_STRING_LITERAL = enum.auto()
    ILLEGAL_TOKEN = enum.auto()

    def __str__(self) -> str:
        return _DISPLAY[self]


_DISPLAY = {
    TokenKind.GET: "get",
    TokenKind.POST: "post",
    TokenKind.PUT: "put",
    TokenKind.PATCH: "patch",
    TokenKind.DELETE: "delete",
    TokenKind.HEADER: "header",
    TokenKind.BODY: "body",
    TokenKind.SET: "set",
    TokenKind.LET: "let",
    TokenKind.NULL: "null",
    TokenKind.IDENT: "identifier",
    TokenKind.BOOLEAN: "boolean",
    TokenKind.NUMBER: "number",
    TokenKind.STRING_LITERAL: "string",
    TokenKind.URL: "url",
    TokenKind.PATHNAME: "pathname",
    TokenKind.LINE_COMMENT: "comment",
    TokenKind.SHEBANG: "#!...",
    TokenKind.ASSIGN: "=",
    TokenKind.DOLLAR_SIGN_LBRACKET: "${",
    TokenKind.LPAREN: "(",
    TokenKind.RPAREN: ")",
    TokenKind.LBRACKET: "{",
    TokenKind.RBRACKET: "}",
    TokenKind.LSQUARE: "[",
    TokenKind.RSQUARE: "]",
    TokenKind.COLON: ":",
    TokenKind.ATTRIBUTE_PREFIX: "@",
    TokenKind.BACKTICK_OPEN: "`",
    TokenKind.BACKTICK_CLOSE: "`",
    TokenKind.COMMA: ",",
    TokenKind.END: "Eof",
    TokenKind.UNFINISHED_STRING_LITERAL: "\"...",
    TokenKind.UNFINISHED_MULTILINE_STRING_LITERAL: "`...",
    TokenKind.ILLEGAL_TOKEN: "illegal",
}

KEYWORDS = {
    "get": TokenKind.GET,
    "post": TokenKind.POST,
    "put": TokenKind.PUT,
    "patch": TokenKind.PATCH,
    "delete": TokenKind.DELETE,
    "header": TokenKind.HEADER,
    "body": TokenKind.BODY,
    "set": TokenKind.SET,
    "let": TokenKind.LET,
    "true": TokenKind.BOOLEAN,
    "false": TokenKind.BOOLEAN,
    "null": TokenKind.NULL,
}

_SINGLE_CHAR_TOKENS = {
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    "[": TokenKind.LSQUARE,
    "]": TokenKind.RSQUARE,
    ",": TokenKind.COMMA,
    ":": TokenKind.COLON,
    "=": TokenKind.ASSIGN,
    "@": TokenKind.ATTRIBUTE_PREFIX,
}

_WHITESPACE = " \t\n\r\x0b\x0c"


@dataclass(frozen=True)
class Token:
    """A token and where it starts; `offset` indexes into the source string."""
    kind: TokenKind
    text: str
    start: Location
    offset: int

    @property
    def end(self) -> Location:
        newlines = self.text.count("\n")
        if not newlines:
            return Location(self.start.line, self.start.col + len(self.text))
        return Location(self.start.line + newlines, len(self.text) - self.text.rfind("\n") - 1)

    @property
    def end_offset(self) -> int:
        return self.offset + len(self.text)

    @property
    def span(self) -> Span:
        return Span(self.start, self.end)

    def __repr__(self) -> str:
        return f"{self.kind.name}({self.text!r}) at {self.start}"


def _is_ascii_alpha(ch: str) -> bool:
    return ch.isascii() and ch.isalpha()


def _is_ascii_digit(ch: str) -> bool:
    return ch.isascii() and ch.isdigit()


class Lexer:
    """Converts source text into tokens on demand."""

    def __init__(self, source: str):
        self.source = source
        self._pos = 0
        self._line = 0
        self._col = 0
        self._queue: Deque[Token] = deque()
        # One entry per open `${ ... }`: how many `{` are open inside it.
        self._interpolations: List[int] = []

    @property
    def template_depth(self) -> int:
        return len(self._interpolations)

    # --- cursor helpers ---

    def _current(self) -> str:
        if self._pos < len(self.source):
            return self.source[self._pos]
        return ""

    def _peek(self, n: int = 1) -> str:
        i = self._pos + n
        if i < len(self.source):
            return self.source[i]
        return ""

    def _advance(self) -> str:
        ch = self.source[self._pos]
        self._pos += 1
        if ch == "\n":
            self._line += 1
            self._col = 0
        else:
            self._col += 1
        return ch

    def _location(self) -> Location:
        return Location(self._line, self._col)

    def _skip_whitespace(self):
        while self._current() and self._current() in _WHITESPACE:
            self._advance()

    def _token_from(self, kind: TokenKind, start: Location, offset: int) -> Token:
        return Token(kind, self.source[offset:self._pos], start, offset)

    def _read_while(self, predicate) -> None:
        while self._current() and predicate(self._current()):
            self._advance()

    # --- public interface ---

    def next_token(self) -> Token:
        if self._queue:
            return self._queue.popleft()

        self._skip_whitespace()

        start, offset = self._location(), self._pos
        ch = self._current()

        if not ch:
            return Token(TokenKind.END, "", start, offset)

        if ch == '"':
            return self._string_literal()
        if ch == "`":
            self._advance()
            self._queue.append(self._token_from(TokenKind.BACKTICK_OPEN, start, offset))
            self._template_text()
            return self._queue.popleft()
        if ch == "$" and self._peek() == "{":
            self._advance()
            self._advance()
            return self._token_from(TokenKind.DOLLAR_SIGN_LBRACKET, start, offset)
        if ch == "{":
            if self._interpolations:
                self._interpolations[-1] += 1
            self._advance()
            return self._token_from(TokenKind.LBRACKET, start, offset)
        if ch == "}":
            self._advance()
            token = self._token_from(TokenKind.RBRACKET, start, offset)
            if self._interpolations:
                if self._interpolations[-1] > 0:
                    self._interpolations[-1] -= 1
                else:
                    # Closes `${ ... }`; the template text picks up right after it.
                    self._interpolations.pop()
                    self._template_text()
            return token
        if ch in _SINGLE_CHAR_TOKENS:
            self._advance()
            return self._token_from(_SINGLE_CHAR_TOKENS[ch], start, offset)
        if ch == "/" and self._peek() == "/":
            self._read_while(lambda c: c != "\n")
            return self._token_from(TokenKind.LINE_COMMENT, start, offset)
        if ch == "/":
            self._read_while(lambda c: c not in _WHITESPACE)
            return self._token_from(TokenKind.PATHNAME, start, offset)
        if ch == "#" and self._peek() == "!":
            self._read_while(lambda c: c != "\n")
            return self._token_from(TokenKind.SHEBANG, start, offset)
        if _is_ascii_alpha(ch):
            return self._keyword_or_identifier()
        if _is_ascii_digit(ch):
            return self._number()

        self._advance()
        return self._token_from(TokenKind.ILLEGAL_TOKEN, start, offset)

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self.next_token()
            if token.kind is TokenKind.END:
                return
            yield token

    # --- scanners ---

    def _string_literal(self) -> Token:
        start, offset = self._location(), self._pos
        self._advance()  # opening quote
        while True:
            ch = self._current()
            if not ch or ch == "\n":
                return self._token_from(TokenKind.UNFINISHED_STRING_LITERAL, start, offset)
            if ch == "\\" and self._peek() not in ("", "\n"):
                self._advance()
                self._advance()
                continue
            self._advance()
            if ch == '"':
                return self._token_from(TokenKind.STRING_LITERAL, start, offset)

    def _template_text(self):
        """Scan template text up to the next `${`, closing backtick or end of input.

        Queues the text segment (when not empty) and whatever token ended it.
        """
        start, offset = self._location(), self._pos
        while True:
            ch = self._current()
            if not ch:
                self._queue.append(
                    self._token_from(TokenKind.UNFINISHED_MULTILINE_STRING_LITERAL, start, offset))
                return
            if ch == "\\" and self._peek():
                self._advance()
                self._advance()
                continue
            if ch == "$" and self._peek() == "{":
                if self._pos > offset:
                    self._queue.append(self._token_from(TokenKind.STRING_LITERAL, start, offset))
                dollar_start, dollar_offset = self._location(), self._pos
                self._advance()
                self._advance()
                self._queue.append(
                    self._token_from(TokenKind.DOLLAR_SIGN_LBRACKET, dollar_start, dollar_offset))
                self._interpolations.append(0)
                return
            if ch == "`":
                if self._pos > offset:
                    self._queue.append(self._token_from(TokenKind.STRING_LITERAL, start, offset))
                tick_start, tick_offset = self._location(), self._pos
                self._advance()
                self._queue.append(self._token_from(TokenKind.BACKTICK_CLOSE, tick_start, tick_offset))
                return
            self._advance()

    def _keyword_or_identifier(self) -> Token:
        start, offset = self._location(), self._pos
        self._read_while(lambda c: _is_ascii_alpha(c) or c == "_")
        word = self.source[offset:self._pos]

        if word in ("http", "https"):
            self._read_while(lambda c: c not in _WHITESPACE)
            return self._token_from(TokenKind.URL, start, offset)

        return self._token_from(KEYWORDS.get(word, TokenKind.IDENT), start, offset)

    def _number(self) -> Token:
        start, offset = self._location(), self._pos
        self._read_while(_is_ascii_digit)
        if self._current() == "." and _is_ascii_digit(self._peek()):
            self._advance()
            self._read_while(_is_ascii_digit)
        return self._token_from(TokenKind.NUMBER, start, offset)


def tokenize(source: str) -> List[Token]:
    """Every token of `source`, ending with a single END token."""
    lexer = Lexer(source)
    tokens = list(lexer)
    tokens.append(lexer.next_token())
    return tokens
