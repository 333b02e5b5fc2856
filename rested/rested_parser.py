"""
Recursive-descent parser for rested scripts.

`Parser(source).parse()` always returns a Program. Syntax errors end up as
`Error` nodes in the smallest construct that contains them, or in the
`errors` list of the array, object or argument list whose separators were
wrong. `Program.errors()` collects them all.

Every error covers the tokens consumed while parsing the failed construct
and points (`bad_token_at`) at the token that broke it.
"""

from typing import Callable, List, Optional

from rested.rested_ast import (
    Arguments, Array, Attribute, Block, Body, Bool, Call, EmptyArray, EmptyObject,
    Error, Expr, Header, Identifier, Let, LineComment, Literal, Null, Number, Object,
    ObjectEntry, Ok, Pathname, Program, Request, RequestMethod, Set, String, StringLiteral,
    TemplateStringLiteral, Url,
)
from rested.rested_errors import (
    ContextualError, DuplicateObjectKey, ExpectedEitherOfTokens, ExpectedToken,
)
from rested.rested_lexer import Lexer, Token, TokenKind
from rested.rested_locations import Location, Span

T = TokenKind

METHODS = {
    T.GET: RequestMethod.GET,
    T.POST: RequestMethod.POST,
    T.PUT: RequestMethod.PUT,
    T.PATCH: RequestMethod.PATCH,
    T.DELETE: RequestMethod.DELETE,
}

TOP_LEVEL = frozenset({T.GET, T.POST, T.PUT, T.PATCH, T.DELETE, T.SET, T.LET, T.ATTRIBUTE_PREFIX, T.END})

VALID_AFTER_ATTRIBUTE = (T.GET, T.POST, T.PUT, T.PATCH, T.DELETE, T.ATTRIBUTE_PREFIX, T.LINE_COMMENT)

EXPRESSION_START = (
    T.IDENT, T.STRING_LITERAL, T.BOOLEAN, T.NUMBER, T.BACKTICK_OPEN, T.LBRACKET, T.LSQUARE, T.NULL,
)

_OPENERS = frozenset({T.LBRACKET, T.LSQUARE, T.LPAREN, T.DOLLAR_SIGN_LBRACKET})
_CLOSERS = frozenset({T.RBRACKET, T.RSQUARE, T.RPAREN})

# Tokens that end a list early when they show up where an element could go.
_LIST_STOP = TOP_LEVEL | _CLOSERS | {T.HEADER, T.BODY}


class Parser:
    """One token of lookahead (`_peek_token`) over a pull-based Lexer."""

    def __init__(self, source: str):
        self.source = source
        self._lexer = Lexer(source)
        self._token: Optional[Token] = None
        self._peeked: Optional[Token] = None

    # --- token plumbing ---

    def _next_token(self) -> Token:
        if self._peeked is not None:
            self._token, self._peeked = self._peeked, None
        else:
            self._token = self._lexer.next_token()
        return self._token

    def _peek_token(self) -> Token:
        if self._peeked is None:
            self._peeked = self._lexer.next_token()
        return self._peeked

    def _expected(self, start: Location, found: Token, *kinds: TokenKind) -> ContextualError:
        """Error for `found` where one of `kinds` should be.

        The span runs from `start` to the last consumed token; `found` may be
        the current token or the peeked one.
        """
        end = max(self._token.end, start)
        if len(kinds) == 1:
            kind = ExpectedToken(found, kinds[0])
        else:
            kind = ExpectedEitherOfTokens(found, tuple(dict.fromkeys(kinds)))
        return ContextualError(kind, Span(start, end), self.source, bad_token_at=found.span)

    def _expect_peek(self, start: Location, kind: TokenKind) -> Token:
        if self._peek_token().kind is kind:
            return self._next_token()
        raise self._expected(start, self._peek_token(), kind)

    def _eat_till_next_top_level_token(self):
        while self._peek_token().kind not in TOP_LEVEL:
            self._next_token()

    def _skip_to_separator(self, closer: TokenKind):
        """Drop tokens up to the next `,` or `closer` at this nesting level."""
        depth = 0
        while True:
            kind = self._peek_token().kind
            if kind in TOP_LEVEL:
                return
            if depth == 0 and (kind is T.COMMA or kind is closer or kind in _CLOSERS):
                return
            if kind in _OPENERS:
                depth += 1
            elif kind in _CLOSERS:
                depth -= 1
            self._next_token()

    # --- program & items ---

    def parse(self) -> Program:
        items = []

        self._next_token()

        while self._token.kind is not T.END:
            kind = self._token.kind
            try:
                match kind:
                    case T.GET | T.POST | T.PUT | T.PATCH | T.DELETE:
                        item = self._parse_request(METHODS[kind])
                    case T.LINE_COMMENT | T.SHEBANG:
                        item = LineComment.from_token(self._token)
                    case T.SET:
                        item = self._parse_set()
                    case T.LET:
                        item = self._parse_let()
                    case T.ATTRIBUTE_PREFIX:
                        item = self._parse_attribute()
                        following = self._peek_token()
                        if following.kind not in VALID_AFTER_ATTRIBUTE:
                            items.append(item)
                            item = Error(
                                self._expected(self._token.start, following, *VALID_AFTER_ATTRIBUTE)
                                .with_message("after attributes should come requests or more attributes"))
                            self._eat_till_next_top_level_token()
                    case _:
                        item = Expr(self._parse_expression())
            except ContextualError as err:
                item = Error(err)
                self._eat_till_next_top_level_token()

            items.append(item)
            self._next_token()

        return Program(self.source, items)

    def _parse_request(self, method: RequestMethod) -> Request:
        keyword = self._token
        found = self._peek_token()

        if found.kind is T.URL:
            endpoint = Url.from_token(self._next_token())
        elif found.kind is T.PATHNAME:
            endpoint = Pathname.from_token(self._next_token())
        else:
            endpoint = Error(
                self._expected(keyword.start, found, T.URL, T.PATHNAME)
                .with_message("expecting only a url and pathname here"))

        block = self._parse_block()
        last = block.span if block is not None else endpoint.span

        return Request(method, endpoint, block, keyword.start.to_end_of(last))

    def _parse_set(self) -> Set:
        start = self._token.start
        try:
            identifier = Ok(self._expect_peek(start, T.IDENT))
        except ContextualError as err:
            missing = Error(err)
            self._eat_till_next_top_level_token()
            return Set(missing, missing, start)

        try:
            value = self._parse_next_expression(start)
        except ContextualError as err:
            value = Error(err)
            self._eat_till_next_top_level_token()

        return Set(identifier, value, start)

    def _parse_let(self) -> Let:
        start = self._token.start
        try:
            identifier = Ok(self._expect_peek(start, T.IDENT))
        except ContextualError as err:
            missing = Error(err)
            self._eat_till_next_top_level_token()
            return Let(missing, missing, start)

        try:
            self._expect_peek(start, T.ASSIGN)
            value = self._parse_next_expression(start)
        except ContextualError as err:
            value = Error(err)
            self._eat_till_next_top_level_token()

        return Let(identifier, value, start)

    def _parse_attribute(self) -> Attribute:
        start = self._token.start
        identifier = Ok(self._expect_peek(start, T.IDENT))

        if self._peek_token().kind is not T.LPAREN:
            return Attribute(start, identifier)

        self._next_token()
        return Attribute(start, identifier, self._parse_arguments(commas_required=True))

    # --- request blocks ---

    def _parse_block(self) -> Optional[Block]:
        if self._peek_token().kind is not T.LBRACKET:
            return None

        start = self._next_token().start
        statements = []

        while True:
            found = self._peek_token()
            if found.kind is T.RBRACKET:
                self._next_token()
                break
            if found.kind in TOP_LEVEL:
                statements.append(Error(self._expected(self._token.start, found, T.RBRACKET)))
                break

            self._next_token()
            try:
                statements.append(self._parse_statement())
            except ContextualError as err:
                statements.append(Error(err))

        return Block(statements, start.to_end_of(self._token.span))

    def _parse_statement(self):
        token = self._token

        match token.kind:
            case T.HEADER:
                return self._parse_header()
            case T.BODY:
                return self._parse_body()
            case T.LINE_COMMENT | T.SHEBANG:
                return LineComment.from_token(token)
            case _:
                raise (self._expected(token.start, token, T.HEADER, T.BODY, T.LINE_COMMENT)
                       .with_message("may only declare headers or a body statement here"))

    def _parse_header(self) -> Header:
        start = self._token.start
        name = Ok(StringLiteral.from_token(self._expect_peek(start, T.STRING_LITERAL)))
        value = self._parse_next_expression(start)
        return Header(name, value, start)

    def _parse_body(self) -> Body:
        start = self._token.start
        return Body(self._parse_next_expression(start), start)

    # --- expressions ---

    def _expression_error(self, start: Location, found: Token) -> ContextualError:
        err = self._expected(start, found, *EXPRESSION_START)
        if found.kind is T.UNFINISHED_STRING_LITERAL:
            err.with_message('terminate the string with a "')
        return err

    def _parse_next_expression(self, start: Location):
        """Parse the expression starting at the peeked token.

        Nothing is consumed when the peeked token cannot start an expression.
        """
        found = self._peek_token()
        if found.kind not in EXPRESSION_START:
            raise self._expression_error(start, found)
        self._next_token()
        return self._parse_expression()

    def _parse_expression(self):
        token = self._token

        match token.kind:
            case T.IDENT if self._peek_token().kind is T.LPAREN:
                return self._parse_call()
            case T.IDENT:
                return Identifier(token)
            case T.STRING_LITERAL:
                return String(StringLiteral.from_token(token))
            case T.BOOLEAN:
                return Bool(Literal.from_token(token))
            case T.NUMBER:
                return Number(Literal.from_token(token))
            case T.NULL:
                return Null(token.span)
            case T.BACKTICK_OPEN:
                return self._parse_template()
            case T.LBRACKET:
                return self._parse_object()
            case T.LSQUARE:
                return self._parse_array()
            case _:
                raise self._expression_error(token.start, token)

    def _parse_element(self):
        return self._parse_next_expression(self._peek_token().start)

    def _parse_call(self) -> Call:
        identifier = self._token
        self._next_token()
        return Call(identifier, self._parse_arguments(commas_required=False))

    def _parse_arguments(self, commas_required: bool) -> Arguments:
        start = self._token.start
        errors: List[ContextualError] = []
        exprs = self._parse_list(T.RPAREN, self._parse_element, errors,
                                 commas_required=commas_required, comments=False)
        return Arguments(start.to_end_of(self._token.span), exprs, errors)

    def _parse_list(self, closer: TokenKind, parse_element: Callable, errors: List[ContextualError],
                    commas_required: bool = True, comments: bool = True) -> list:
        """Elements up to `closer`, with the current token being the opener.

        Separator problems go to `errors`; elements that fail to parse become
        `Error` nodes and the list carries on after them.
        """
        elements = []
        expect_comma = False

        while True:
            found = self._peek_token()

            if found.kind is closer:
                self._next_token()
                break
            if found.kind in _LIST_STOP:
                errors.append(self._expected(self._token.start, found, closer))
                break
            if found.kind is T.LINE_COMMENT and comments:
                elements.append(LineComment.from_token(self._next_token()))
                continue
            if found.kind is T.COMMA:
                self._next_token()
                if commas_required and not expect_comma:
                    errors.append(self._expected(found.start, found, closer))
                expect_comma = False
                continue

            if expect_comma and commas_required:
                errors.append(self._expected(self._token.start, found, T.COMMA))

            try:
                elements.append(parse_element())
            except ContextualError as err:
                elements.append(Error(err))
                self._skip_to_separator(closer)
            expect_comma = True

        return elements

    def _parse_array(self):
        start = self._token.start

        if self._peek_token().kind is T.RSQUARE:
            self._next_token()
            return EmptyArray(start.to_end_of(self._token.span))

        errors: List[ContextualError] = []
        elements = self._parse_list(T.RSQUARE, self._parse_element, errors)
        return Array(start.to_end_of(self._token.span), elements, errors)

    def _parse_object(self):
        start = self._token.start

        if self._peek_token().kind is T.RBRACKET:
            self._next_token()
            return EmptyObject(start.to_end_of(self._token.span))

        errors: List[ContextualError] = []
        entries = self._parse_list(T.RBRACKET, self._parse_object_entry, errors)

        seen = set()
        for entry in entries:
            if not isinstance(entry, ObjectEntry) or entry.name is None:
                continue
            if entry.name in seen:
                errors.append(ContextualError(DuplicateObjectKey(entry.name), entry.key.span, self.source))
            seen.add(entry.name)

        return Object(start.to_end_of(self._token.span), entries, errors)

    def _parse_object_entry(self) -> ObjectEntry:
        found = self._peek_token()
        if found.kind is not T.IDENT:
            raise self._expected(found.start, found, T.IDENT)

        key = self._next_token()
        try:
            self._expect_peek(key.start, T.COLON)
            value = self._parse_next_expression(key.start)
        except ContextualError as err:
            value = Error(err)

        return ObjectEntry(Ok(key), value)

    def _parse_template(self):
        """`...` with `${ expr }` interpolations; the current token is the opening backtick."""
        opening = self._token
        parts = []
        interpolated = False

        while True:
            token = self._next_token()

            match token.kind:
                case T.STRING_LITERAL:
                    parts.append(String(StringLiteral.from_template_segment(token)))
                case T.DOLLAR_SIGN_LBRACKET:
                    interpolated = True
                    parts.append(self._parse_interpolation(token))
                case T.BACKTICK_CLOSE:
                    break
                case _:
                    err = ContextualError(
                        ExpectedToken(token, T.BACKTICK_CLOSE),
                        opening.start.to_end_of(token.span),
                        self.source,
                        bad_token_at=opening.span,
                    ).with_message("terminate the string with a `")
                    return Error(err)

        span = opening.start.to_end_of(token.span)

        if not interpolated:
            value = parts[0].value if parts else ""
            raw = self.source[opening.offset:token.end_offset]
            return String(StringLiteral(raw, value, span))

        return TemplateStringLiteral(parts, span)

    def _parse_interpolation(self, dollar: Token):
        try:
            expr = self._parse_next_expression(dollar.start)
            if self._peek_token().kind is not T.RBRACKET:
                raise self._expected(dollar.start, self._peek_token(), T.RBRACKET)
        except ContextualError as err:
            expr = Error(err)
            self._skip_to_interpolation_end()

        if self._peek_token().kind is T.RBRACKET:
            self._next_token()

        return expr

    def _skip_to_interpolation_end(self):
        # Only braces count, the same way the lexer decides which `}` ends `${`.
        depth = 0
        while True:
            kind = self._peek_token().kind
            if kind in (T.END, T.BACKTICK_CLOSE, T.UNFINISHED_MULTILINE_STRING_LITERAL):
                return
            if kind is T.RBRACKET:
                if depth == 0:
                    return
                depth -= 1
            elif kind in (T.LBRACKET, T.DOLLAR_SIGN_LBRACKET):
                depth += 1
            self._next_token()


def parse(source: str) -> Program:
    return Parser(source).parse()
