import pytest

from rested.rested_ast import (
    Array, Attribute, Body, Call, EmptyArray, EmptyObject, Error, Expr, Header, Identifier, Let,
    LineComment, Number, Object, Pathname, Program, Request, RequestMethod, Set, String,
    TemplateStringLiteral, Url,
)
from rested.rested_errors import DuplicateObjectKey, ExpectedEitherOfTokens, ExpectedToken
from rested.rested_lexer import TokenKind as T
from rested.rested_locations import Location
from rested.rested_parser import parse


SCRIPT = '''set BASE_URL "http://localhost:8080"
let token = env("token")

// users
@name("users")
get /users {
  header "Authorization" `Bearer ${token}`
  body json({name: "a", tags: ["x", "y"]})
}
'''


def first_value(source):
    """The value of the first `let` in `source`."""
    return parse(source).items[0].value


def test_full_script_parses_without_errors():
    program = parse(SCRIPT)
    assert program.errors() == []
    assert [type(i) for i in program.items] == [Set, Let, LineComment, Attribute, Request]


def test_request_parts():
    request = parse(SCRIPT).items[-1]
    assert request.method is RequestMethod.GET
    assert isinstance(request.endpoint, Pathname)
    assert request.endpoint.value == "/users"

    header, body = request.block.statements
    assert isinstance(header, Header)
    assert header.name.get().value == "Authorization"
    assert isinstance(header.value, TemplateStringLiteral)
    assert isinstance(body, Body)
    assert isinstance(body.value, Call)
    assert body.value.name == "json"


def test_request_without_block_and_with_url():
    program = parse("post https://example.com/a")
    request = program.items[0]
    assert isinstance(request.endpoint, Url)
    assert request.block is None
    assert request.span.start == Location(0, 0)
    assert request.span.end == Location(0, 26)


def test_empty_block():
    request = parse("delete /x {}").items[0]
    assert request.block.statements == []


def test_let_values():
    assert isinstance(first_value("let a = 1.5"), Number)
    assert first_value("let a = 1.5").value == 1.5
    assert isinstance(first_value("let a = b"), Identifier)
    assert isinstance(first_value("let a = []"), EmptyArray)
    assert isinstance(first_value("let a = {}"), EmptyObject)
    assert first_value('let a = "q\\"q"').value == 'q"q'


def test_template_without_interpolation_is_a_plain_string():
    value = first_value("let a = `plain text`")
    assert isinstance(value, String)
    assert value.value == "plain text"
    assert value.literal.raw == "`plain text`"


def test_template_parts():
    value = first_value("let a = `x ${b} y ${c}`")
    assert isinstance(value, TemplateStringLiteral)
    assert [type(p) for p in value.parts] == [String, Identifier, String, Identifier]
    assert value.parts[0].value == "x "


def test_stray_closer_in_interpolation_keeps_following_text():
    value = first_value("let a = `a${ ) }b`")
    assert isinstance(value, TemplateStringLiteral)
    assert [type(p) for p in value.parts] == [String, Error, String]
    assert value.parts[2].value == "b"


def test_bad_interpolation_skips_nested_braces():
    value = first_value("let a = `a${ ) {x: 1} }b`")
    assert [type(p) for p in value.parts] == [String, Error, String]
    assert value.parts[2].value == "b"


def test_object_entries_and_comments():
    obj = first_value("let a = {\n  // note\n  x: 1,\n  y: [true, null],\n}")
    assert isinstance(obj, Object)
    assert obj.keys() == ["x", "y"]
    assert isinstance(obj.entries[0], LineComment)
    assert obj.errors == []


def test_missing_comma_in_object_still_keeps_entries():
    program = parse("let a = {x: 1 y: 2}")
    obj = program.items[0].value
    assert obj.keys() == ["x", "y"]
    assert len(obj.errors) == 1
    assert isinstance(obj.errors[0].inner_error, ExpectedToken)
    assert obj.errors[0].inner_error.expected is T.COMMA


def test_repeated_comma_in_array():
    program = parse("let a = [1,,2]")
    arr = program.items[0].value
    assert isinstance(arr, Array)
    assert len(arr.values()) == 2
    assert len(program.errors()) == 1


def test_call_arguments_do_not_need_commas():
    program = parse('let a = json(1 "x")')
    call = program.items[0].value
    assert program.errors() == []
    assert len(call.arguments) == 2


def test_duplicate_object_key():
    program = parse("let a = {x: 1, x: 2}")
    errors = program.errors()
    assert len(errors) == 1
    assert errors[0].inner_error == DuplicateObjectKey("x")
    assert "duplicate key: x" in str(errors[0])


# --- recovery ---

def test_header_error_does_not_abort_the_block():
    program = parse('get /a {\n  header "a"\n  body "x"\n}\nget /b')
    request = program.items[0]
    assert isinstance(request.block.statements[0], Error)
    assert isinstance(request.block.statements[1], Body)
    assert isinstance(program.items[1], Request)
    assert len(program.errors()) == 1


def test_unknown_statement_in_block():
    program = parse("get /a {\n  foo\n}")
    statement = program.items[0].block.statements[0]
    assert isinstance(statement, Error)
    assert statement.error.message == "may only declare headers or a body statement here"


def test_unclosed_block_stops_at_next_item():
    program = parse('get /a {\n  body "x"\nget /b')
    assert [type(i) for i in program.items] == [Request, Request]
    assert isinstance(program.items[0].block.statements[-1], Error)


def test_request_without_endpoint():
    program = parse("get\nlet a = 1")
    request = program.items[0]
    assert isinstance(request.endpoint, Error)
    assert request.endpoint.error.message == "expecting only a url and pathname here"
    assert isinstance(program.items[1], Let)


def test_attribute_followed_by_let():
    program = parse('@name("a")\nlet x = 1\nget /a')
    assert [type(i) for i in program.items] == [Attribute, Error, Let, Request]
    error = program.items[1].error
    assert isinstance(error.inner_error, ExpectedEitherOfTokens)
    assert error.message == "after attributes should come requests or more attributes"


def test_let_without_value_recovers_at_next_item():
    program = parse("let a = \nget /x")
    assert isinstance(program.items[0].value, Error)
    assert isinstance(program.items[1], Request)
    assert len(program.errors()) == 1


def test_unfinished_string_hint():
    program = parse('let a = "abc')
    error = program.errors()[0]
    assert error.message == 'terminate the string with a "'


def test_unfinished_template():
    program = parse("let a = `abc ${b}")
    value = program.items[0].value
    assert isinstance(value, Error)
    assert value.error.message == "terminate the string with a `"


def test_bare_expression_item():
    program = parse('json("a")')
    assert isinstance(program.items[0], Expr)


def test_variables_before():
    program = parse("let a = 1\nlet b = 2\nlet c = 3")
    names = [t.text for t in program.variables_before(Location(1, 5))]
    assert names == ["a", "b"]


@pytest.mark.parametrize("source", [
    "",
    "}",
    "get",
    "let",
    "let x",
    "let x =",
    "set",
    "@",
    "@name(",
    "@name(\"a\" \"b\")",
    "get /a { header }",
    "get /a { body }",
    "`${",
    "`${ {",
    "[1,,2",
    "{a 1}",
    "json(",
    ")))",
    '"unterminated',
    "let a = {x: [1, {y: `z ${json(",
    "% & .",
])
def test_parser_is_total(source):
    program = parse(source)
    assert isinstance(program, Program)
    if source.strip():
        assert program.errors()
    for err in program.errors():
        assert str(err).endswith("\n")
