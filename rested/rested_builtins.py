"""
The calls a script can make: env(..), read(..), json(..) and escape_new_lines(..).

Every `_name` method of `Builtins` is exposed to scripts as `name`. Parameter
annotations drive the evaluator's type checks: a `str` parameter needs a
string value, an `Any` parameter takes whatever it is given. Docstrings
double as hover documentation in editors.
"""

import inspect
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from rested.rested_environment import Environment
from rested.rested_errors import EnvVariableNotFound, InterpreterErrorKind
from rested.rested_serialize import to_json


class BuiltinError(Exception):
    """Raised by a builtin to report a specific interpreter error kind."""

    def __init__(self, kind: InterpreterErrorKind):
        super().__init__(str(kind))
        self.kind = kind


class Builtins:
    def __init__(self, env: Environment, source_dir: Optional[Path] = None):
        self.env = env
        self.source_dir = Path(source_dir) if source_dir else None

    def callables(self) -> Dict[str, Callable]:
        found = {}
        for name, member in inspect.getmembers(self):
            if name.startswith('_') and not name.startswith('__') and callable(member):
                found[name[1:]] = member
        return found

    def _env(self, name: str) -> str:
        """env(name: string) -> string

        Looks up `name` in the selected namespace of the `.env.rd.json` file.
        """
        value = self.env.get_variable_value(name)
        if value is None:
            raise BuiltinError(EnvVariableNotFound(name))
        return value

    def _read(self, path: str) -> str:
        """read(path: string) -> string

        Reads a whole file. Relative paths resolve against the script's directory.
        """
        file_path = Path(path)
        if not file_path.is_absolute() and self.source_dir is not None:
            file_path = self.source_dir / file_path
        return file_path.read_text(encoding="utf-8")

    def _json(self, value: Any) -> str:
        """json(value: any) -> string

        Serializes any value to JSON text, for use where a string is required.
        """
        return to_json(value)

    def _escape_new_lines(self, value: str) -> str:
        """escape_new_lines(value: string) -> string

        Replaces every newline with the two characters \\n.
        """
        return value.replace("\n", "\\n")


BUILTIN_NAMES = ("env", "read", "json", "escape_new_lines")


def builtin_docs() -> Dict[str, str]:
    """Hover text for each builtin, keyed by its script name."""
    return {
        name[1:]: inspect.cleandoc(member.__doc__ or "")
        for name, member in inspect.getmembers(Builtins, inspect.isfunction)
        if name.startswith('_') and not name.startswith('__')
    }
