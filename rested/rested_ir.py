"""Fully evaluated requests, ready to be sent, printed or snapshotted."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from rested.rested_ast import RequestMethod
from rested.rested_locations import Span


@dataclass(frozen=True)
class Header:
    name: str
    value: str


@dataclass(frozen=True)
class Request:
    method: RequestMethod
    url: str
    headers: List[Header] = field(default_factory=list)
    body: Optional[str] = None


@dataclass(frozen=True)
class LogDestination:
    """Where a response gets written: a file when `path` is set, stdout otherwise."""
    path: Optional[Path] = None

    @property
    def is_std(self) -> bool:
        return self.path is None


@dataclass(frozen=True)
class RequestItem:
    request: Request
    span: Span
    name: Optional[str] = None
    dbg: bool = False
    log_destination: Optional[LogDestination] = None
