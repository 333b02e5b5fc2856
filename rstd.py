import argparse
import asyncio
import json
import sys
from pathlib import Path

from rested import rested_log as log
from rested.rested_config import (
    ENV_FILE_NAME, Config, ConfigError, config_file_path, get_env_from_dir_path,
    get_env_from_dir_path_or_from_home_dir, get_env_from_home_dir,
)
from rested.rested_environment import Environment
from rested.rested_errors import ContextualError, InterpreterError
from rested.rested_http import HttpxRunner
from rested.rested_printer import format_source
from rested.rested_runtime import ScriptRunner
from rested.rested_snapshot import snapshot


def read_script(file_path):
    """Source text and its directory; stdin when no file is given."""
    if file_path is None:
        return sys.stdin.read(), Path.cwd()
    p = Path(file_path)
    try:
        return p.read_text(encoding="utf-8"), p.parent.resolve()
    except FileNotFoundError:
        log.error(f"file not found: {file_path}")
        raise SystemExit(1)


def load_script_env(args, source_dir):
    """The script's directory is its workspace; stdin scripts use the cwd only with --cwd."""
    if args.file is not None:
        workspace = source_dir
    elif args.cwd:
        workspace = Path.cwd()
    else:
        workspace = None
    if workspace is not None:
        log.dbg("identified workspace:", workspace)
    env = get_env_from_dir_path_or_from_home_dir(workspace)
    if args.namespace:
        env.select_variables_namespace(args.namespace)
    return env


async def run_command(args):
    source, source_dir = read_script(args.file)
    env = load_script_env(args, source_dir)
    runner = ScriptRunner(env, HttpxRunner(Config.load()), source_dir=source_dir)
    result = await runner.handle_script(source, args.request or None)
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        raise SystemExit(1)


def fmt_command(args):
    source, _ = read_script(args.file)
    try:
        formatted = format_source(source)
    except ContextualError as e:
        print(e, file=sys.stderr)
        raise SystemExit(1)
    sys.stdout.write(formatted)


def snap_command(args):
    source, source_dir = read_script(args.file)
    runner = ScriptRunner(load_script_env(args, source_dir), source_dir=source_dir)
    try:
        items = runner.interpret(source)
    except InterpreterError as e:
        print(e, file=sys.stderr)
        raise SystemExit(1)
    sys.stdout.write(snapshot(items))


def env_command(args):
    if args.cwd:
        try:
            env = get_env_from_dir_path(Path.cwd())
        except ConfigError:
            env = Environment.load(Path.cwd() / ENV_FILE_NAME)
    else:
        env = get_env_from_home_dir()
    if args.namespace:
        env.select_variables_namespace(args.namespace)

    match args.env_command:
        case "show":
            print(json.dumps(env.namespaced_variables, indent=2))
        case "set":
            env.set_variable(args.name, args.value)
        case "ns":
            if args.ns_command == "add":
                env.add_namespace(args.namespace_name)
            else:
                env.remove_namespace(args.namespace_name)


def config_command(args):
    match args.config_command:
        case "path":
            print(config_file_path())
        case "scratch-dir":
            config = Config.load()
            if args.scratch_command == "show":
                print(config.scratch_dir)
                return
            path = Path(args.path)
            if not path.exists():
                raise ConfigError(f"'{path}' does not exist")
            if not path.is_dir():
                raise ConfigError(f"'{path}' is not a folder")
            config.scratch_dir = path.resolve()
            config.save()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rstd", description="Run .rd request scripts")
    parser.add_argument("-v", "--verbose", action="store_true", help="print debug output")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="run the requests in a script")
    run.add_argument("-n", "--namespace", help="env namespace to read variables from")
    run.add_argument("-r", "--request", action="append", help="only run the request with this @name(..); repeatable")
    run.add_argument("--cwd", action="store_true", help="use the env file in the current directory")
    run.add_argument("file", nargs="?")

    fmt = sub.add_parser("fmt", help="format a script")
    fmt.add_argument("file", nargs="?")

    snap = sub.add_parser("snap", help="print a script's requests in another form")
    snap.add_argument("format", choices=["curl"])
    snap.add_argument("-n", "--namespace")
    snap.add_argument("--cwd", action="store_true")
    snap.add_argument("file", nargs="?")

    env = sub.add_parser("env", help="inspect or edit env variables")
    env.add_argument("--cwd", action="store_true")
    env.add_argument("-n", "--namespace")
    env_sub = env.add_subparsers(dest="env_command", required=True)
    env_sub.add_parser("show")
    env_set = env_sub.add_parser("set")
    env_set.add_argument("name")
    env_set.add_argument("value")
    ns = env_sub.add_parser("ns")
    ns_sub = ns.add_subparsers(dest="ns_command", required=True)
    ns_sub.add_parser("add").add_argument("namespace_name")
    ns_sub.add_parser("rm").add_argument("namespace_name")

    config = sub.add_parser("config", help="inspect or edit the user config")
    config_sub = config.add_subparsers(dest="config_command", required=True)
    config_sub.add_parser("path", help="where the config file is kept")
    scratch = config_sub.add_parser("scratch-dir", help="the folder scratch files are saved in")
    scratch_sub = scratch.add_subparsers(dest="scratch_command", required=True)
    scratch_sub.add_parser("show")
    scratch_sub.add_parser("set").add_argument("path")

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    if args.verbose:
        log.enable_debug()

    try:
        match args.command:
            case "run":
                asyncio.run(run_command(args))
            case "fmt":
                fmt_command(args)
            case "snap":
                snap_command(args)
            case "env":
                env_command(args)
            case "config":
                config_command(args)
    except (ConfigError, KeyError, ValueError) as e:
        log.error(e)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
