"""Renders evaluated requests as equivalent curl commands."""

from typing import Iterable

import pystache

from rested.rested_ir import RequestItem

CURL_TEMPLATE = (
    "{{#dbg}}set -xe\n{{/dbg}}"
    "{{#has_name}}echo {{name}}\n{{/has_name}}"
    "curl -X {{method}} "
    "{{#headers}}-H \"{{header_name}}: {{header_value}}\" {{/headers}}"
    "{{#has_body}}-d '{{body}}' {{/has_body}}"
    "{{url}}"
    "{{#has_log_file}} 1> {{log_file}}{{/has_log_file}}"
    "{{#dbg}}\nset +xe{{/dbg}}"
)

_renderer = pystache.Renderer(escape=lambda u: u)


def _context(item: RequestItem) -> dict:
    request = item.request
    destination = item.log_destination
    log_file = str(destination.path) if destination is not None and not destination.is_std else None
    return {
        "dbg": item.dbg,
        "has_name": item.name is not None,
        "name": item.name,
        "method": str(request.method),
        "headers": [{"header_name": h.name, "header_value": h.value} for h in request.headers],
        "has_body": request.body is not None,
        "body": request.body,
        "url": request.url,
        "has_log_file": log_file is not None,
        "log_file": log_file,
    }


def to_curl_string(item: RequestItem) -> str:
    return _renderer.render(CURL_TEMPLATE, _context(item))


def snapshot(items: Iterable[RequestItem]) -> str:
    """One curl command per request, separated by blank lines."""
    return "".join(f"{to_curl_string(item)}\n\n" for item in items)
