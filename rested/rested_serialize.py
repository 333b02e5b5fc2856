from __future__ import annotations

import json
import re
from typing import Any, Optional

import yaml


# --------------------------
# Helpers
# --------------------------

def _norm_text(data: bytes | bytearray | str, *, encoding: Optional[str] = None) -> str:
    if isinstance(data, (bytes, bytearray)):
        try:
            return data.decode(encoding or 'utf-8', errors='replace')
        except LookupError:
            return data.decode('utf-8', errors='replace')
    return data


def _encoding_from_content_type(content_type: Optional[str]) -> Optional[str]:
    if not content_type:
        return None
    m = re.search(r'charset\s*=\s*([^\s;]+)', content_type, re.IGNORECASE)
    if m:
        return m.group(1).strip('"').strip("'")
    return None


def detect_format(content_type: Optional[str] = None, data_hint: Optional[str] = None) -> Optional[str]:
    """
    Returns 'json', 'yaml' or None.
    Uses Content-Type first; falls back to simple data sniffing if provided.
    """
    ct = (content_type or "").lower()
    if 'json' in ct:
        return 'json'
    if 'yaml' in ct:
        return 'yaml'

    if data_hint is not None:
        s = data_hint.lstrip()
        if s.startswith('{') or s.startswith('['):
            return 'json'
    return None


# --------------------------
# Public API
# --------------------------

def to_json(value: Any) -> str:
    """Compact JSON text for a script value, as produced by json(..)."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def prettify(data: bytes | bytearray | str, *, content_type: Optional[str] = None) -> str:
    """
    Response body as text for logging. JSON and YAML bodies are re-indented;
    anything else, or anything that fails to parse, comes back verbatim.
    """
    text = _norm_text(data, encoding=_encoding_from_content_type(content_type))
    fmt = detect_format(content_type, text)
    if fmt == 'json':
        try:
            return json.dumps(json.loads(text), indent=2, ensure_ascii=False)
        except ValueError:
            return text
    if fmt == 'yaml':
        try:
            return yaml.safe_dump(yaml.safe_load(text), sort_keys=False, allow_unicode=True).rstrip("\n")
        except yaml.YAMLError:
            return text
    return text
