from rested.rested_errors import (
    ContextualError, EnvVariableNotFound, ErrorSourceContext, EvaluationErrors, ExpectedToken,
    Other, RequiredArguments, TypeMismatch, describe_token,
)
from rested.rested_lexer import Token, TokenKind as T
from rested.rested_locations import Location, Span


SOURCE = "let a = 1\nget /users {\n  header a\n}"


def test_source_context_lines():
    ctx = ErrorSourceContext.from_source(Location(1, 0), SOURCE)
    assert ctx.above == "let a = 1"
    assert ctx.line == "get /users {"
    assert ctx.below == "  header a"


def test_source_context_at_edges():
    ctx = ErrorSourceContext.from_source(Location(0, 0), "only\r\n")
    assert ctx.above is None
    assert ctx.line == "only"
    assert ctx.below == ""


def test_render_points_at_the_bad_token():
    found = Token(T.IDENT, "a", Location(2, 9), 33)
    err = ContextualError(ExpectedToken(found, T.STRING_LITERAL), found.span, SOURCE)
    assert str(err) == (
        "get /users {\n"
        "  header a\n"
        "         ≈\n"
        "         ↳ [3:10] expected 'string' but got identifier\n"
        "}\n"
    )


def test_render_with_hint():
    span = Span(Location(0, 8), Location(0, 9))
    err = ContextualError(TypeMismatch("string", "number"), span, SOURCE, "use json(..)")
    lines = str(err).splitlines()
    assert lines[1] == "        ≈"
    assert lines[2] == "        ↳ [1:9] type mismatch: expected a string but found number"
    assert lines[3] == " " * 16 + "use json(..)"


def test_span_and_underlined_range_can_differ():
    found = Token(T.END, "", Location(0, 9), 9)
    err = ContextualError(ExpectedToken(found, T.ASSIGN), Span(Location(0, 0), Location(0, 5)),
                          SOURCE, bad_token_at=found.span)
    assert err.span.start == Location(0, 0)
    assert "↳ [1:10] expected '=' but got Eof" in str(err)


def test_describe_token_shows_text_for_some_kinds():
    assert describe_token(Token(T.URL, "http://x", Location(0, 0), 0)) == "url<http://x>"
    assert describe_token(Token(T.ILLEGAL_TOKEN, "%", Location(0, 0), 0)) == "illegal<%>"
    assert describe_token(Token(T.LET, "let", Location(0, 0), 0)) == "let"


def test_interpreter_messages():
    assert str(RequiredArguments(1, 0)) == "1 argument(s) required, recieved 0"
    assert str(EnvVariableNotFound("k")) == 'no variable found by the name "k"'
    assert str(Other("boom")) == "boom"


def test_aggregate_joins_rendered_errors():
    span = Span(Location(0, 4), Location(0, 5))
    errors = [
        ContextualError(Other("first"), span, SOURCE),
        ContextualError(Other("second"), span, SOURCE),
    ]
    aggregate = EvaluationErrors(errors)
    text = str(aggregate)
    assert text.index("first") < text.index("second")
    assert aggregate.errors == errors
