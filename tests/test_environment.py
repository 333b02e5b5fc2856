import json

import pytest
import yaml

from rested.rested_config import (
    ENV_FILE_NAME, Config, ConfigError, config_file_path, get_env_from_dir_path,
    get_env_from_dir_path_or_from_home_dir, get_env_from_home_dir,
)
from rested.rested_environment import DEFAULT_NAMESPACE, Environment


@pytest.fixture
def home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    return home


def write_env(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


# --- Environment ---

def test_missing_file_gives_default_namespace(tmp_path):
    env = Environment.load(tmp_path / ENV_FILE_NAME)
    assert env.namespaced_variables == {DEFAULT_NAMESPACE: {}}
    assert env.selected_namespace == DEFAULT_NAMESPACE
    assert not (tmp_path / ENV_FILE_NAME).exists()


def test_malformed_file_gives_default_namespace(tmp_path, capsys):
    path = tmp_path / ENV_FILE_NAME
    path.write_text("{not json", encoding="utf-8")
    env = Environment.load(path)
    assert env.namespaced_variables == {DEFAULT_NAMESPACE: {}}
    assert "warning:" in capsys.readouterr().err


def test_lookup_per_namespace(tmp_path):
    path = write_env(tmp_path / ENV_FILE_NAME, {"default": {"k": "d"}, "prod": {"k": "p", "x": "1"}})
    env = Environment.load(path)

    assert env.get_variable_value("k") == "d"
    assert env.get_variable_value("x") is None
    env.select_variables_namespace("prod")
    assert env.selected_namespace == "prod"
    assert env.get_variable_value("x") == "1"
    assert env.get_variable_value_per_namespace("x") == {"default": None, "prod": "1"}


def test_set_variable_persists(tmp_path):
    path = tmp_path / ENV_FILE_NAME
    env = Environment.load(path)
    env.set_variable("token", "abc")

    assert json.loads(path.read_text(encoding="utf-8")) == {"default": {"token": "abc"}}
    assert Environment.load(path).get_variable_value("token") == "abc"


def test_set_variable_in_unknown_namespace(tmp_path):
    env = Environment.load(tmp_path / ENV_FILE_NAME)
    env.select_variables_namespace("nope")
    with pytest.raises(KeyError):
        env.set_variable("a", "b")


def test_namespaces_can_be_added_and_removed(tmp_path):
    path = tmp_path / ENV_FILE_NAME
    env = Environment.load(path)
    env.add_namespace("staging")
    assert set(Environment.load(path).namespaced_variables) == {"default", "staging"}

    env.remove_namespace("staging")
    assert set(Environment.load(path).namespaced_variables) == {"default"}

    with pytest.raises(ValueError):
        env.remove_namespace(DEFAULT_NAMESPACE)
    with pytest.raises(KeyError):
        env.remove_namespace("staging")


# --- env file lookup ---

def test_env_from_home_dir(home):
    write_env(home / ENV_FILE_NAME, {"default": {"a": "home"}})
    assert get_env_from_home_dir().get_variable_value("a") == "home"


def test_env_from_dir_path(tmp_path):
    write_env(tmp_path / ENV_FILE_NAME, {"default": {"a": "workspace"}})
    assert get_env_from_dir_path(tmp_path).get_variable_value("a") == "workspace"


def test_env_from_dir_path_requires_the_file(tmp_path):
    with pytest.raises(ConfigError):
        get_env_from_dir_path(tmp_path)
    with pytest.raises(ConfigError):
        get_env_from_dir_path(tmp_path / "missing-dir")


def test_env_falls_back_to_home(home, tmp_path, capsys):
    write_env(home / ENV_FILE_NAME, {"default": {"a": "home"}})
    workspace = tmp_path / "ws"
    workspace.mkdir()

    env = get_env_from_dir_path_or_from_home_dir(workspace)
    assert env.get_variable_value("a") == "home"
    assert "falling back" in capsys.readouterr().err


# --- Config ---

def test_config_path_honours_xdg(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    assert config_file_path() == tmp_path / "cfg" / "rested" / "config.yaml"


def test_config_defaults_when_missing(home):
    config = Config.load()
    assert config.scratch_dir == home / "rested-scratch"
    assert config.timeout == 30.0
    assert config.retries == 0


def test_config_save_and_load(home, tmp_path):
    Config(scratch_dir=tmp_path / "scratch", timeout=5, retries=2).save()

    path = home / ".config" / "rested" / "config.yaml"
    assert yaml.safe_load(path.read_text(encoding="utf-8"))["retries"] == 2

    config = Config.load()
    assert config.scratch_dir == tmp_path / "scratch"
    assert config.timeout == 5.0
    assert config.retries == 2


def test_bad_config_file(home):
    path = home / ".config" / "rested" / "config.yaml"
    path.parent.mkdir(parents=True)
    path.write_text("timeout: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError):
        Config.load()
