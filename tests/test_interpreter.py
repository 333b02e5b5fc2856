from pathlib import Path

import pytest

from rested.rested_ast import RequestMethod
from rested.rested_environment import Environment
from rested.rested_errors import (
    DuplicateAttribute, EnvVariableNotFound, EvaluationErrors, Other, ParseErrors,
    RequestWithPathnameWithoutBaseUrl, RequiredArguments, TypeMismatch, UndeclaredIdentifier,
    UndefinedCallable, UnknownConstant, UnsupportedAttribute,
)
from rested.rested_interpreter import STRINGIFY_HINT, interpret, value_tag
from rested.rested_ir import Header, LogDestination
from rested.rested_locations import Location
from rested.rested_parser import parse


def make_env(variables=None):
    return Environment("unused.env.rd.json", variables or {"default": {}})


def evaluate(source, env=None, source_dir=None):
    return interpret(parse(source), env or make_env(), source_dir)


def error_kinds(source, env=None, source_dir=None):
    with pytest.raises(EvaluationErrors) as exc:
        evaluate(source, env, source_dir)
    return [e.inner_error for e in exc.value.errors]


# --- endpoints ---

def test_pathname_is_joined_to_base_url():
    items = evaluate('set BASE_URL "http://localhost:8080"\nget /users\nget /')
    assert [i.request.url for i in items] == ["http://localhost:8080/users", "http://localhost:8080"]


def test_full_url_is_used_as_is():
    item, = evaluate("post https://example.com/a?b=c")
    assert item.request.url == "https://example.com/a?b=c"
    assert item.request.method is RequestMethod.POST


def test_pathname_without_base_url():
    assert error_kinds("get /users") == [RequestWithPathnameWithoutBaseUrl()]


def test_only_base_url_can_be_set():
    assert error_kinds('set TIMEOUT "1"') == [UnknownConstant("TIMEOUT")]


def test_request_span_covers_method_and_endpoint():
    item, = evaluate('get https://a.io {\n  body "x"\n}')
    assert item.span.start == Location(0, 0)
    assert item.span.end == Location(0, 16)


# --- statements ---

def test_headers_and_body():
    source = '''let token = "abc"
post https://a.io {
  header "Authorization" `Bearer ${token}`
  header "Content-Type" "application/json"
  body json({name: "n", tags: ["x"], ok: true, none: null})
}'''
    item, = evaluate(source)
    assert item.request.headers == [
        Header("Authorization", "Bearer abc"),
        Header("Content-Type", "application/json"),
    ]
    assert item.request.body == '{"name":"n","tags":["x"],"ok":true,"none":null}'


def test_first_body_wins():
    item, = evaluate('post https://a.io {\n  body "one"\n  body "two"\n}')
    assert item.request.body == "one"


def test_later_bodies_are_still_checked():
    kinds = error_kinds('post https://a.io {\n  body "one"\n  body nope\n}')
    assert kinds == [UndeclaredIdentifier("nope")]


def test_non_string_header_value():
    with pytest.raises(EvaluationErrors) as exc:
        evaluate('get https://a.io {\n  header "X-Count" 1\n}')
    err = exc.value.errors[0]
    assert err.inner_error == TypeMismatch("string", "number")
    assert err.message == STRINGIFY_HINT


def test_template_interpolation_must_be_string():
    assert error_kinds("let n = [1]\nlet s = `n=${n}`") == [TypeMismatch("string", "array")]


def test_errors_from_several_items_are_all_reported():
    kinds = error_kinds('let a = b\nget https://a.io {\n  header "x" c\n}')
    assert kinds == [UndeclaredIdentifier("b"), UndeclaredIdentifier("c")]


def test_syntax_errors_stop_evaluation():
    with pytest.raises(ParseErrors) as exc:
        evaluate("let a = \nget https://a.io")
    assert exc.value.program is not None
    assert len(exc.value.errors) == 1


# --- attributes ---

def test_attributes_apply_to_the_next_request_only():
    source = '@name("first")\n@dbg\n@log("out/first.json")\nget https://a.io\nget https://b.io'
    first, second = evaluate(source)
    assert first.name == "first"
    assert first.dbg is True
    assert first.log_destination == LogDestination(Path("out/first.json"))
    assert second.name is None
    assert second.dbg is False
    assert second.log_destination is None


def test_log_without_argument_goes_to_stdout():
    item, = evaluate("@log\nget https://a.io")
    assert item.log_destination.is_std


def test_skip_drops_the_request_and_its_attributes():
    items = evaluate('@skip\n@name("a")\nget https://a.io\nget https://b.io')
    assert len(items) == 1
    assert items[0].request.url == "https://b.io"
    assert items[0].name is None


def test_duplicate_attribute():
    assert error_kinds("@dbg\n@dbg\nget https://a.io") == [DuplicateAttribute("dbg")]


def test_unsupported_attribute():
    assert error_kinds("@retry\nget https://a.io") == [UnsupportedAttribute("retry")]


def test_name_needs_an_argument():
    with pytest.raises(EvaluationErrors) as exc:
        evaluate("@name\nget https://a.io")
    err = exc.value.errors[0]
    assert err.inner_error == RequiredArguments(1, 0)
    assert err.message == '@name(..) must be given an argument, like @name("req_1")'


# --- builtins ---

def test_env_reads_the_selected_namespace():
    env = make_env({"default": {"host": "local"}, "prod": {"host": "prod.io"}})
    source = 'get https://a.io {\n  header "Host" env("host")\n}'
    assert evaluate(source, env)[0].request.headers[0].value == "local"

    env.select_variables_namespace("prod")
    assert evaluate(source, env)[0].request.headers[0].value == "prod.io"


def test_env_variable_not_found():
    assert error_kinds('let a = env("missing")') == [EnvVariableNotFound("missing")]


def test_env_in_unknown_namespace():
    env = make_env({"default": {"k": "v"}})
    env.select_variables_namespace("staging")
    assert error_kinds('let a = env("k")', env) == [EnvVariableNotFound("k")]


def test_read_is_relative_to_the_script(tmp_path):
    (tmp_path / "payload.json").write_text('{"a": 1}\n', encoding="utf-8")
    source = 'post https://a.io {\n  body escape_new_lines(read("payload.json"))\n}'
    item, = evaluate(source, source_dir=tmp_path)
    assert item.request.body == '{"a": 1}\\n'


def test_read_missing_file(tmp_path):
    kinds = error_kinds('let a = read("nope.txt")', source_dir=tmp_path)
    assert len(kinds) == 1
    assert isinstance(kinds[0], Other)
    assert kinds[0].error.startswith("failed to read a file")


def test_json_of_numbers_and_nesting():
    item, = evaluate('post https://a.io {\n  body json([1.5, {}, []])\n}')
    assert item.request.body == "[1.5,{},[]]"


def test_undefined_function():
    assert error_kinds('let a = fetch("x")') == [UndefinedCallable("fetch")]


def test_wrong_argument_count():
    assert error_kinds("let a = json()") == [RequiredArguments(1, 0)]
    assert error_kinds('let a = env("a" "b")') == [RequiredArguments(1, 2)]


def test_builtin_string_parameter_is_type_checked():
    assert error_kinds("let a = env(1)") == [TypeMismatch("string", "number")]


@pytest.mark.parametrize("value,tag", [
    (None, "null"), (True, "bool"), ("s", "string"), (1.0, "number"), ([], "array"), ({}, "object"),
])
def test_value_tags(value, tag):
    assert value_tag(value) == tag
