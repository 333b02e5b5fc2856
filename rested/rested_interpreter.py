"""
Evaluates a parsed Program into RequestItems.

Values are plain Python: None, str, bool, float, list and dict. Errors are
collected per item (and per statement inside a request) so one bad line
doesn't hide the next; if anything failed, `evaluate()` raises all of them
together and returns no requests.
"""

import inspect
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from rested import rested_log as log
from rested.rested_ast import (
    Arguments, Array, Attribute, Body, Bool, Call, EmptyArray, EmptyObject, Error, Expr,
    Header, Identifier, Let, LineComment, Null, Number, Object, Pathname, Program, Request,
    Set, String, TemplateStringLiteral, Url,
)
from rested.rested_builtins import BuiltinError, Builtins
from rested.rested_environment import Environment
from rested.rested_errors import (
    ContextualError, DuplicateAttribute, EvaluationErrors, Other, ParseErrors,
    RequestWithPathnameWithoutBaseUrl, RequiredArguments, TypeMismatch, UndeclaredIdentifier,
    UndefinedCallable, UnknownConstant, UnsupportedAttribute,
)
from rested.rested_ir import Header as IrHeader
from rested.rested_ir import LogDestination, RequestItem
from rested.rested_ir import Request as IrRequest
from rested.rested_lexer import Token

SUPPORTED_ATTRIBUTES = ("name", "log", "dbg", "skip")

STRINGIFY_HINT = "wrap the value in json(..) to use it as a string"


def value_tag(value: Any) -> str:
    """The script-level type name of a value."""
    match value:
        case None:
            return "null"
        case bool():
            return "bool"
        case str():
            return "string"
        case int() | float():
            return "number"
        case list():
            return "array"
        case dict():
            return "object"
        case _:
            raise TypeError(f"not a script value: {type(value).__name__}")


class AttributeStore:
    """Attributes waiting for the next request."""

    def __init__(self):
        self._attributes: List[Tuple[Token, Optional[Arguments]]] = []

    def add(self, identifier: Token, arguments: Optional[Arguments]):
        if not self.has(identifier.text):
            self._attributes.append((identifier, arguments))

    def get(self, name: str) -> Optional[Tuple[Token, Optional[Arguments]]]:
        for identifier, arguments in self._attributes:
            if identifier.text == name:
                return identifier, arguments
        return None

    def has(self, name: str) -> bool:
        return self.get(name) is not None

    def clear(self):
        self._attributes.clear()


class Evaluator:
    def __init__(self, program: Program, env: Environment, source_dir: Optional[Path] = None):
        self.program = program
        self.env = env
        self.base_url: Optional[str] = None
        self.let_bindings: Dict[str, Any] = {}
        self.errors: List[ContextualError] = []

        self._builtins = Builtins(env, source_dir).callables()
        self._signatures = {
            name: list(inspect.signature(fn).parameters.values())
            for name, fn in self._builtins.items()
        }

    def _error(self, kind, span, message: Optional[str] = None) -> ContextualError:
        return ContextualError(kind, span, self.program.source, message)

    def evaluate(self) -> List[RequestItem]:
        attributes = AttributeStore()
        requests: List[RequestItem] = []

        for item in self.program.items:
            try:
                match item:
                    case Request():
                        request_item = self._evaluate_request(item, attributes)
                        if request_item is not None:
                            requests.append(request_item)
                    case Set():
                        self._evaluate_set(item)
                    case Let():
                        self.let_bindings[item.identifier.get().text] = self._evaluate_expression(item.value)
                    case Attribute():
                        self._evaluate_attribute(item, attributes)
                    case Expr():
                        self._evaluate_expression(item.expression)
                    case LineComment():
                        pass
                    case Error():
                        raise AssertionError(f"all syntax errors should have been caught, but found {item.error}")
            except ContextualError as err:
                self.errors.append(err)

        if self.errors:
            raise EvaluationErrors(self.errors)

        return requests

    # --- items ---

    def _evaluate_set(self, item: Set):
        identifier = item.identifier.get()
        if identifier.text != "BASE_URL":
            raise self._error(UnknownConstant(identifier.text), identifier.span)
        self.base_url = self._expect_string(item.value)
        log.dbg("BASE_URL =", self.base_url)

    def _evaluate_attribute(self, item: Attribute, attributes: AttributeStore):
        identifier = item.identifier.get()
        name = identifier.text

        if name not in SUPPORTED_ATTRIBUTES:
            raise self._error(
                UnsupportedAttribute(name), identifier.span,
                "@name, @log, @skip and @dbg are the only supported attributes")

        if attributes.has(name):
            raise self._error(DuplicateAttribute(name), identifier.span)

        attributes.add(identifier, item.arguments)

    def _evaluate_request(self, item: Request, attributes: AttributeStore) -> Optional[RequestItem]:
        if attributes.has("skip"):
            attributes.clear()
            log.dbg("skipping request at", item.span.start)
            return None

        errors_before = len(self.errors)

        try:
            url = self._collect(self._evaluate_endpoint, item.endpoint)
            headers: List[IrHeader] = []
            body: Optional[str] = None
            seen_body = False

            statements = item.block.statements if item.block is not None else []
            for statement in statements:
                match statement:
                    case Header():
                        value = self._collect(self._expect_string, statement.value)
                        if value is not None:
                            headers.append(IrHeader(statement.name.get().value, value))
                    case Body():
                        # Later bodies are still checked, but the first one is kept.
                        value = self._collect(self._expect_string, statement.value)
                        if not seen_body:
                            body = value
                            seen_body = True
                    case LineComment():
                        pass
                    case Error():
                        raise AssertionError(
                            f"all syntax errors should have been caught, but found {statement.error}")

            name = self._collect(self._request_name, attributes)
            log_destination = self._collect(self._log_destination, attributes)
            dbg = attributes.has("dbg")
        finally:
            attributes.clear()

        if len(self.errors) > errors_before:
            return None

        return RequestItem(
            request=IrRequest(item.method, url, headers, body),
            span=item.span.start.to_end_of(item.endpoint.span),
            name=name,
            dbg=dbg,
            log_destination=log_destination,
        )

    def _collect(self, fn, *args):
        """Run `fn`, recording a ContextualError instead of raising it."""
        try:
            return fn(*args)
        except ContextualError as err:
            self.errors.append(err)
            return None

    def _evaluate_endpoint(self, endpoint) -> str:
        match endpoint:
            case Url():
                return endpoint.value
            case Pathname():
                if self.base_url is None:
                    raise self._error(RequestWithPathnameWithoutBaseUrl(), endpoint.span)
                if len(endpoint.value) > 1:
                    return self.base_url + endpoint.value
                return self.base_url
            case Error():
                raise AssertionError(f"all syntax errors should have been caught, but found {endpoint.error}")

    def _attribute_arguments(self, attributes: AttributeStore, name: str):
        identifier, arguments = attributes.get(name)
        exprs = list(arguments) if arguments is not None else []
        span = arguments.span if arguments is not None else identifier.span
        return exprs, span

    def _request_name(self, attributes: AttributeStore) -> Optional[str]:
        if not attributes.has("name"):
            return None

        exprs, span = self._attribute_arguments(attributes, "name")
        if len(exprs) != 1:
            raise self._error(
                RequiredArguments(1, len(exprs)), span,
                '@name(..) must be given an argument, like @name("req_1")')

        return self._expect_string(exprs[0])

    def _log_destination(self, attributes: AttributeStore) -> Optional[LogDestination]:
        if not attributes.has("log"):
            return None

        exprs, span = self._attribute_arguments(attributes, "log")
        if not exprs:
            return LogDestination()
        if len(exprs) > 1:
            raise self._error(RequiredArguments(1, len(exprs)), span)

        return LogDestination(Path(self._expect_string(exprs[0])))

    # --- expressions ---

    def _expect_string(self, expr) -> str:
        value = self._evaluate_expression(expr)
        if not isinstance(value, str):
            raise self._error(TypeMismatch("string", value_tag(value)), expr.span, STRINGIFY_HINT)
        return value

    def _evaluate_expression(self, expr) -> Any:
        match expr:
            case Identifier():
                if expr.name not in self.let_bindings:
                    raise self._error(UndeclaredIdentifier(expr.name), expr.span)
                return self.let_bindings[expr.name]
            case String() | Bool() | Number():
                return expr.value
            case Null():
                return None
            case EmptyArray():
                return []
            case EmptyObject():
                return {}
            case Array():
                return [self._evaluate_expression(value) for value in expr.values()]
            case Object():
                return {
                    entry.key.get().text: self._evaluate_expression(entry.value)
                    for entry in expr.fields()
                }
            case TemplateStringLiteral():
                return "".join(self._expect_string(part) for part in expr.parts)
            case Call():
                return self._evaluate_call(expr)
            case Error():
                raise AssertionError(f"all syntax errors should have been caught, but found {expr.error}")
            case _:
                raise AssertionError(f"not an expression: {expr!r}")

    def _evaluate_call(self, call: Call) -> Any:
        fn = self._builtins.get(call.name)
        if fn is None:
            raise self._error(
                UndefinedCallable(call.name), call.identifier.span,
                "env(..), read(..), json(..), and escape_new_lines(..) are the only calls supported")

        params = self._signatures[call.name]
        args = list(call.arguments)
        if len(args) != len(params):
            raise self._error(RequiredArguments(len(params), len(args)), call.arguments.span)

        values = [
            self._expect_string(arg) if param.annotation is str else self._evaluate_expression(arg)
            for param, arg in zip(params, args)
        ]

        try:
            return fn(*values)
        except BuiltinError as e:
            raise self._error(e.kind, args[0].span) from e
        except OSError as e:
            raise self._error(Other(f"failed to read a file: {e}"), call.span) from e


def interpret(program: Program, env: Environment, source_dir: Optional[Path] = None) -> List[RequestItem]:
    """Evaluate `program`, refusing to start if it has syntax errors."""
    errors = program.errors()
    if errors:
        raise ParseErrors(errors, program)
    return Evaluator(program, env, source_dir).evaluate()
