"""
Running evaluated requests.

`Runner` walks RequestItems, hands each to a `RunStrategy` and logs the
responses. `ScriptRunner` is the one-stop entry point: source text in,
`ExecutionResult` out.
"""

import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Literal, Optional, Sequence

from rested import rested_log as log
from rested.rested_ast import Program
from rested.rested_environment import Environment
from rested.rested_errors import ContextualError, InterpreterError, Other
from rested.rested_interpreter import interpret
from rested.rested_ir import LogDestination, Request, RequestItem
from rested.rested_locations import Span
from rested.rested_parser import parse


# ===================================================================
# 1. Strategies & errors
# ===================================================================

class RunStrategy(ABC):
    """How a single request is actually performed."""

    @abstractmethod
    async def run_request(self, request: Request) -> str:
        """Send `request`, returning the response body."""


class RunError(Exception):
    def __init__(self, span: Span, error: BaseException):
        super().__init__(str(error))
        self.span = span
        self.error = error

    def __str__(self) -> str:
        return f"RunError: {self.error}"


# ===================================================================
# 2. Helpers
# ===================================================================

def indent_lines(text: str, indent: int) -> str:
    return "\n".join(" " * indent + line for line in text.splitlines())


def write_log(content: str, path: Path):
    """Write `content` to `path`, creating parent directories, replacing any old file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def describe_request(request: Request) -> str:
    lines = [f"method: {request.method}", f"url: {request.url}", "headers:"]
    lines += [f"  {h.name}: {h.value}" for h in request.headers] or ["  (none)"]
    lines.append(f"Body: {request.body if request.body is not None else '(no body)'}")
    return "\n".join(lines)


# ===================================================================
# 3. Runner
# ===================================================================

class Runner:
    def __init__(self, items: Sequence[RequestItem], strategy: RunStrategy):
        self.items = list(items)
        self.strategy = strategy

    def selected(self, request_names: Optional[Sequence[str]] = None) -> List[RequestItem]:
        if request_names is None:
            return list(self.items)
        return [item for item in self.items if item.name is not None and item.name in request_names]

    async def run(self, request_names: Optional[Sequence[str]] = None) -> List[str]:
        """Send the selected requests in order; stops at the first failure."""
        responses = []

        for item in self.selected(request_names):
            request = item.request
            log.info(f"sending {request.method} request to {request.url}")

            if item.dbg:
                log.info(" ↳ with request data:")
                log.info(indent_lines(describe_request(request), 6))

            try:
                response = await self.strategy.run_request(request)
            except Exception as e:
                raise RunError(item.span, e) from e

            responses.append(response)
            self._log_response(item, response)

        return responses

    def _log_response(self, item: RequestItem, response: str):
        destination: Optional[LogDestination] = item.log_destination
        if destination is None:
            return

        if destination.is_std:
            print(indent_lines(response, 4))
            return

        try:
            write_log(response, destination.path)
        except OSError as e:
            raise RunError(item.span, e) from e
        log.info(f"saved response to {destination.path}")


# ===================================================================
# 4. Script execution
# ===================================================================

@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    value: Any = None
    error_message: Optional[str] = None
    errors: List[ContextualError] = field(default_factory=list)

    def format_error(self) -> str:
        if self.status != 'error':
            return ""
        return str(self.error_message or "Unknown error")


class ScriptRunner:
    """Parses, evaluates and runs rested scripts."""

    def __init__(self, env: Environment, strategy: Optional[RunStrategy] = None, source_dir=None):
        if strategy is None:
            from rested.rested_http import HttpxRunner
            strategy = HttpxRunner()
        self.env = env
        self.strategy = strategy
        self.source_dir = Path(source_dir) if source_dir else None

    def parse(self, source: str) -> Program:
        return parse(source)

    def interpret(self, source: str) -> List[RequestItem]:
        """Source to requests; raises ParseErrors or EvaluationErrors."""
        return interpret(self.parse(source), self.env, self.source_dir)

    async def handle_script(self, source: str,
                            request_names: Optional[Sequence[str]] = None) -> ExecutionResult:
        """The main entry point to execute a script."""
        try:
            items = self.interpret(source)
        except InterpreterError as e:
            return ExecutionResult(status='error', error_message=str(e), errors=e.errors)

        log.dbg(f"{len(items)} request(s) evaluated")

        try:
            responses = await Runner(items, self.strategy).run(request_names)
        except RunError as e:
            err = ContextualError(Other(str(e)), e.span, source)
            return ExecutionResult(status='error', error_message=str(err), errors=[err])

        sys.stdout.flush()
        return ExecutionResult(status='success', value=responses)
