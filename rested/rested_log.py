"""User-facing progress lines and an opt-in debug channel, all on stderr."""

import os
import sys

DEBUG_ENV_VAR = "RESTED_DEBUG"


def debug_enabled() -> bool:
    return bool(os.environ.get(DEBUG_ENV_VAR))


def enable_debug():
    os.environ[DEBUG_ENV_VAR] = "1"


def info(*parts):
    print(*parts, file=sys.stderr)


def warn(*parts):
    print("warning:", *parts, file=sys.stderr)


def error(*parts):
    print("error:", *parts, file=sys.stderr)


def dbg(*parts):
    if debug_enabled():
        print("[DBG]", *parts, file=sys.stderr)
