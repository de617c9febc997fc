"""Lightweight event model used by GameSession to decouple game logic from I/O.

Subscribers (the CLI logger, tests) receive strongly-typed events instead of
scraping log lines.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict


class Category(Enum):
    """High-level event categories."""

    PLACEMENT = auto()  # boat placed, placement finished
    TURN = auto()  # shot fired / received, result, phase change
    SYSTEM = auto()  # handshake progress, timeouts, dropped datagrams


@dataclass(slots=True)
class Event:
    """Immutable event emitted by GameSession."""

    category: Category
    type: str  # finer-grained identifier, e.g. "fired", "result", "handshake_timeout"
    payload: Dict[str, Any] = field(default_factory=dict)
