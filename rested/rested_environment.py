"""
Namespaced variables read by `env(..)` calls.

The backing file is a JSON object of namespace -> {name: value}. It always
ends up with a "default" namespace, and the selected namespace is "default"
until another one is picked.
"""

import json
from pathlib import Path
from typing import Dict, Optional

from rested import rested_log as log

DEFAULT_NAMESPACE = "default"

Namespaces = Dict[str, Dict[str, str]]


class Environment:
    def __init__(self, env_file_name, namespaced_variables: Optional[Namespaces] = None):
        self.env_file_name = Path(env_file_name)
        self.namespaced_variables: Namespaces = namespaced_variables or {DEFAULT_NAMESPACE: {}}
        self.namespaced_variables.setdefault(DEFAULT_NAMESPACE, {})
        self._selected_namespace: Optional[str] = None

    @classmethod
    def load(cls, path) -> 'Environment':
        """Read `path`; a missing or malformed file just gives an empty default namespace."""
        path = Path(path)
        variables = None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            log.dbg("env file not found:", path)
        except (OSError, ValueError) as e:
            log.warn(f"could not read env file {path}: {e}")
        else:
            if isinstance(data, dict) and all(isinstance(v, dict) for v in data.values()):
                variables = {ns: {str(k): str(v) for k, v in vars_.items()} for ns, vars_ in data.items()}
            else:
                log.warn(f"ignoring env file {path}: expected an object of namespaces")
        return cls(path, variables)

    def select_variables_namespace(self, namespace: str):
        self._selected_namespace = namespace

    @property
    def selected_namespace(self) -> str:
        return self._selected_namespace or DEFAULT_NAMESPACE

    def get_variable_value(self, name: str) -> Optional[str]:
        """Value of `name` in the selected namespace; None when either is missing."""
        return self.namespaced_variables.get(self.selected_namespace, {}).get(name)

    def get_variable_value_per_namespace(self, name: str) -> Dict[str, Optional[str]]:
        return {ns: variables.get(name) for ns, variables in self.namespaced_variables.items()}

    def set_variable(self, name: str, value: str):
        namespace = self.selected_namespace
        if namespace not in self.namespaced_variables:
            raise KeyError(f"can't set variable '{name}': undefined namespace '{namespace}'")
        self.namespaced_variables[namespace][name] = value
        self.save_to_file()

    def add_namespace(self, namespace: str):
        self.namespaced_variables.setdefault(namespace, {})
        self.save_to_file()

    def remove_namespace(self, namespace: str):
        if namespace == DEFAULT_NAMESPACE:
            raise ValueError("the default namespace can't be removed")
        if namespace not in self.namespaced_variables:
            raise KeyError(f"undefined namespace '{namespace}'")
        del self.namespaced_variables[namespace]
        self.save_to_file()

    def save_to_file(self):
        self.env_file_name.parent.mkdir(parents=True, exist_ok=True)
        self.env_file_name.write_text(json.dumps(self.namespaced_variables, indent=2), encoding="utf-8")
