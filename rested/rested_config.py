"""
User configuration and env-file discovery.

Config lives in `$XDG_CONFIG_HOME/rested/config.yaml` (`~/.config` when the
variable is unset). Env files are always named `.env.rd.json`, either in a
workspace directory or in the home directory.
"""

import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from rested import rested_log as log
from rested.rested_environment import Environment

ENV_FILE_NAME = ".env.rd.json"
SCRATCH_DIR_NAME = "rested-scratch"


class ConfigError(Exception):
    pass


def get_home_dir() -> Path:
    home = os.environ.get("HOME")
    if not home:
        raise ConfigError("failed to read the user's home directory, using the HOME environment variable")
    return Path(home)


def config_file_path() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else get_home_dir() / ".config"
    return root / "rested" / "config.yaml"


def _default_scratch_dir() -> Path:
    return get_home_dir() / SCRATCH_DIR_NAME


@dataclass
class Config:
    scratch_dir: Path = field(default_factory=_default_scratch_dir)
    timeout: float = 30.0
    retries: int = 0

    @classmethod
    def load(cls, path: Optional[Path] = None) -> 'Config':
        path = Path(path) if path else config_file_path()
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except FileNotFoundError:
            return cls()
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"failed to load config from {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"failed to load config from {path}: expected a mapping")

        config = cls()
        if data.get("scratch_dir"):
            config.scratch_dir = Path(data["scratch_dir"])
        if data.get("timeout") is not None:
            config.timeout = float(data["timeout"])
        if data.get("retries") is not None:
            config.retries = int(data["retries"])
        return config

    def save(self, path: Optional[Path] = None):
        path = Path(path) if path else config_file_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        data = asdict(self)
        data["scratch_dir"] = str(self.scratch_dir)
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")


# ===================================================================
# Env file lookup
# ===================================================================

def get_env_from_home_dir() -> Environment:
    return Environment.load(get_home_dir() / ENV_FILE_NAME)


def get_env_from_dir_path(path) -> Environment:
    path = Path(path)
    if not path.is_dir():
        raise ConfigError(f"path given needs to be a directory: '{path}'")

    env_file = path / ENV_FILE_NAME
    if not env_file.exists():
        raise ConfigError(f"couldn't find a `{ENV_FILE_NAME}` in the current workspace '{path}'")

    return Environment.load(env_file)


def get_env_from_dir_path_or_from_home_dir(path=None) -> Environment:
    if path is None:
        return get_env_from_home_dir()

    try:
        return get_env_from_dir_path(path)
    except ConfigError as e:
        log.warn(f"failed to get env from path: {path}: {e}")
        log.warn(f"falling back to `{ENV_FILE_NAME}` in home dir")
        return get_env_from_home_dir()
