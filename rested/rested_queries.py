"""
Read-only questions an editor asks about a parsed script: which nodes sit
under the cursor, what could be completed there, what a builtin does, and
which `env(..)` variables are missing from some namespaces.
"""

import enum
from typing import List, Optional

from rested import rested_log as log
from rested.rested_ast import (
    Array, Attribute, Block, Body, Call, EmptyArray, EmptyObject, Error, Header, Identifier,
    Let, Node, Object, Ok, Program, Request, Set, String, walk,
)
from rested.rested_builtins import builtin_docs
from rested.rested_environment import Environment
from rested.rested_errors import ExpectedEitherOfTokens
from rested.rested_lexer import Token, TokenKind
from rested.rested_locations import Location


class SuggestionKind(enum.Enum):
    NOTHING = "nothing"
    IDENTIFIERS = "identifiers"
    SET_IDENTIFIERS = "set_identifiers"
    FUNCTIONS = "functions"
    STATEMENT_KEYWORDS = "statement_keywords"
    ITEM_KEYWORDS = "item_keywords"
    ATTRIBUTES = "attributes"
    ENV_VARS = "env_vars"
    HEADERS = "headers"


ITEM_KEYWORDS = ("let", "set", "get", "post", "put", "patch", "delete")
STATEMENT_KEYWORDS = ("header", "body")
ATTRIBUTE_NAMES = ("name", "log", "dbg", "skip")
SET_IDENTIFIERS = ("BASE_URL",)

HTTP_HEADERS = (
    "Accept", "Accept-Charset", "Accept-Encoding", "Accept-Language", "Authorization",
    "Cache-Control", "Connection", "Content-Disposition", "Content-Encoding",
    "Content-Length", "Content-Type", "Cookie", "Date", "ETag", "Host", "If-Match",
    "If-Modified-Since", "If-None-Match", "Origin", "Pragma", "Range", "Referer",
    "User-Agent", "X-Api-Key", "X-Requested-With",
)


def nodes_at(program: Program, location: Location) -> List[Node]:
    """Every node whose span contains `location`, outermost first."""
    found = []
    node: Optional[Node] = program
    while node is not None:
        found.append(node)
        node = next((c for c in node.children() if c.span.contains(location)), None)
    return found[1:]


def variables_before(program: Program, location: Location) -> List[Token]:
    return program.variables_before(location)


# ===================================================================
# Completions
# ===================================================================

class _SuggestionCollector:
    """
    Walks the items under a location, children before parents, so the
    first suggestion recorded comes from the deepest node that had one.
    """

    def __init__(self, location: Location):
        self.location = location
        self.kinds: List[SuggestionKind] = []

    def suggest(self, kind: SuggestionKind):
        if kind not in self.kinds:
            self.kinds.append(kind)

    def visit_item(self, item):
        if not item.span.contains(self.location):
            return

        match item:
            case Set():
                if item.identifier.span.is_on_or_after(self.location):
                    return self.suggest(SuggestionKind.SET_IDENTIFIERS)
                self.visit_expr(item.value)
                self.suggest(SuggestionKind.IDENTIFIERS)
            case Let():
                if item.identifier.span.is_on_or_after(self.location):
                    return
                self.visit_expr(item.value)
                self.suggest(SuggestionKind.IDENTIFIERS)
            case Request(block=Block() as block):
                if not block.span.contains(self.location):
                    return
                for statement in block.statements:
                    self.visit_statement(statement)
                self.suggest(SuggestionKind.STATEMENT_KEYWORDS)
            case Attribute():
                if item.identifier.span.is_on_or_after(self.location):
                    return self.suggest(SuggestionKind.ATTRIBUTES)
                if item.arguments is not None:
                    for expr in item.arguments:
                        self.visit_expr(expr)
                    if item.arguments.span.contains(self.location):
                        self.suggest(SuggestionKind.IDENTIFIERS)

    def visit_statement(self, statement):
        if not statement.span.contains(self.location):
            return

        match statement:
            case Header():
                if statement.name.span.is_on_or_after(self.location):
                    return self.suggest(SuggestionKind.HEADERS)
                if statement.value.span.is_after(self.location):
                    return self.suggest(SuggestionKind.IDENTIFIERS)
                self.visit_expr(statement.value)
            case Body():
                self.visit_expr(statement.value)
                self.suggest(SuggestionKind.IDENTIFIERS)

    def visit_expr(self, expr):
        if not expr.span.contains(self.location):
            return

        for child in expr.children():
            if not isinstance(child, Ok):
                self.visit_expr(child)

        match expr:
            case Call():
                self._visit_call(expr)
            case Array() | EmptyArray() | Identifier():
                self.suggest(SuggestionKind.IDENTIFIERS)
            case EmptyObject():
                self.suggest(SuggestionKind.NOTHING)
            case Object():
                if any(isinstance(e.value, Error) for e in expr.fields()):
                    self.suggest(SuggestionKind.IDENTIFIERS)
                self.suggest(SuggestionKind.NOTHING)

    def _visit_call(self, call: Call):
        if not call.arguments.span.contains(self.location):
            if call.name not in builtin_docs():
                self.suggest(SuggestionKind.FUNCTIONS)
            return

        if call.name != "env":
            return self.suggest(SuggestionKind.IDENTIFIERS)

        argument = next((a for a in call.arguments if a.span.contains(self.location)), None)
        match argument:
            case None:
                self.suggest(SuggestionKind.IDENTIFIERS)
            case String():
                self.suggest(SuggestionKind.ENV_VARS)
            case Error(error=err) if _is_unfinished_string(err):
                self.suggest(SuggestionKind.ENV_VARS)


def _is_unfinished_string(err) -> bool:
    inner = err.inner_error
    return (isinstance(inner, ExpectedEitherOfTokens)
            and inner.found.kind == TokenKind.UNFINISHED_STRING_LITERAL)


def suggestions_at(program: Program, location: Location) -> List[SuggestionKind]:
    """
    What could be completed at `location`, most specific first.

    Outside every item only item keywords make sense; inside an item that
    offers nothing the result is `[NOTHING]`.
    """
    collector = _SuggestionCollector(location)
    inside_item = False
    for item in program.items:
        if item.span.contains(location):
            inside_item = True
            collector.visit_item(item)

    if collector.kinds:
        log.dbg("suggestions at", location, [k.value for k in collector.kinds])
        return collector.kinds
    if not inside_item:
        return [SuggestionKind.ITEM_KEYWORDS]
    return [SuggestionKind.NOTHING]


def completions_for(kind: SuggestionKind, program: Program, location: Location,
                    env: Optional[Environment] = None) -> List[str]:
    """The candidate words for one suggestion kind."""
    match kind:
        case SuggestionKind.IDENTIFIERS:
            names = [f"{name}(..)" for name in builtin_docs()]
            return names + [token.text for token in variables_before(program, location)]
        case SuggestionKind.FUNCTIONS:
            return [f"{name}(..)" for name in builtin_docs()]
        case SuggestionKind.SET_IDENTIFIERS:
            return list(SET_IDENTIFIERS)
        case SuggestionKind.STATEMENT_KEYWORDS:
            return list(STATEMENT_KEYWORDS)
        case SuggestionKind.ITEM_KEYWORDS:
            return list(ITEM_KEYWORDS)
        case SuggestionKind.ATTRIBUTES:
            return list(ATTRIBUTE_NAMES)
        case SuggestionKind.HEADERS:
            return list(HTTP_HEADERS)
        case SuggestionKind.ENV_VARS:
            if env is None:
                return []
            return sorted({name for variables in env.namespaced_variables.values() for name in variables})
        case _:
            return []


# ===================================================================
# Hover & warnings
# ===================================================================

def hover_docs(program: Program, location: Location) -> Optional[str]:
    """Documentation for the builtin whose name is under `location`."""
    docs = builtin_docs()
    for node in reversed(nodes_at(program, location)):
        if isinstance(node, Call) and node.identifier.span.contains(location):
            return docs.get(node.name)
    return None


def env_warnings(program: Program, env: Environment) -> List[str]:
    """One message per `env("x")` whose variable is missing from some namespaces."""
    warnings = []
    for node in walk(program):
        if not (isinstance(node, Call) and node.name == "env"):
            continue
        first = next(iter(node.arguments), None)
        if not isinstance(first, String):
            continue

        missing = [
            ns for ns, value in env.get_variable_value_per_namespace(first.value).items()
            if value is None
        ]
        if missing:
            warnings.append(
                f"{first.span.start} variable '{first.value}' missing from some namespaces: "
                f"{', '.join(missing)}")
    return warnings
