"""Protocol messages exchanged between the two nodes.

Every datagram is one line of text, decoded once at the boundary into a
tagged variant so the rest of the engine never re-parses strings:

READY:<ts>[,<nonce>]   sender finished placement at local time <ts> (bare READY = 0)
AIM:<x>,<y>            sender's aim cursor, advisory
SHOT:<x>,<y>[#<turn>]  sender fires at the receiver's board
RESULT:<O>[#<turn>]    outcome (MISS, HIT, SINK) of the receiver's last SHOT

The optional ``#<turn>`` suffix numbers SHOT/RESULT pairs; peers that omit it
are still understood.
"""

import enum
import re
from dataclasses import dataclass
from typing import Optional, Union

from .errors import MalformedMessage

UINT32_MASK = 0xFFFFFFFF

_INT_RE = re.compile(r"^-?\d+$")
_UINT_RE = re.compile(r"^\d+$")


class Outcome(enum.Enum):
    MISS = "MISS"
    HIT = "HIT"
    SINK = "SINK"


@dataclass(frozen=True)
class Ready:
    timestamp: int
    nonce: Optional[int] = None


@dataclass(frozen=True)
class Aim:
    x: int
    y: int


@dataclass(frozen=True)
class Shot:
    x: int
    y: int
    turn: Optional[int] = None


@dataclass(frozen=True)
class Result:
    outcome: Outcome
    turn: Optional[int] = None


@dataclass(frozen=True)
class Unrecognized:
    raw: str


Message = Union[Ready, Aim, Shot, Result, Unrecognized]


def _split_turn(body: str) -> tuple[str, Optional[int]]:
    if "#" not in body:
        return body, None
    body, _, turn = body.partition("#")
    if not _UINT_RE.match(turn):
        raise MalformedMessage(f"Invalid turn counter: {turn!r}")
    return body, int(turn)


def _parse_xy(body: str) -> tuple[int, int]:
    parts = body.split(",")
    if len(parts) != 2 or not all(_INT_RE.match(p.strip()) for p in parts):
        raise MalformedMessage(f"Invalid coordinates: {body!r}")
    return int(parts[0]), int(parts[1])


def parse_message(line: str) -> Message:
    """Parse one datagram; raise MalformedMessage if it cannot be understood."""
    if line is None:
        raise MalformedMessage("No message to parse")
    raw = line.strip()
    if not raw:
        raise MalformedMessage("Empty message")
    verb, sep, body = raw.partition(":")
    verb = verb.upper()
    body = body.strip()

    if verb == "READY":
        if not sep or not body:
            return Ready(timestamp=0)
        ts, _, nonce = body.partition(",")
        if not _UINT_RE.match(ts) or (nonce and not _UINT_RE.match(nonce)):
            raise MalformedMessage(f"Invalid READY payload: {body!r}")
        return Ready(
            timestamp=int(ts) & UINT32_MASK,
            nonce=int(nonce) & UINT32_MASK if nonce else None,
        )
    elif verb == "AIM":
        x, y = _parse_xy(body)
        return Aim(x, y)
    elif verb == "SHOT":
        coords, turn = _split_turn(body)
        x, y = _parse_xy(coords)
        return Shot(x, y, turn)
    elif verb == "RESULT":
        word, turn = _split_turn(body)
        try:
            outcome = Outcome(word.upper())
        except ValueError:
            raise MalformedMessage(f"Unknown result: {word!r}") from None
        return Result(outcome, turn)
    else:
        raise MalformedMessage(f"Unknown message: {raw!r}")


def decode(data: Union[bytes, str, None]) -> Message:
    """Boundary decoder: never raises, returns Unrecognized for junk."""
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")
    try:
        return parse_message(data)  # type: ignore[arg-type]
    except MalformedMessage:
        return Unrecognized(raw=data or "")


def encode(msg: Message) -> str:
    """Render *msg* in its wire form."""
    if isinstance(msg, Ready):
        ts = msg.timestamp & UINT32_MASK
        if msg.nonce is None:
            return f"READY:{ts}"
        return f"READY:{ts},{msg.nonce & UINT32_MASK}"
    if isinstance(msg, Aim):
        return f"AIM:{msg.x},{msg.y}"
    if isinstance(msg, Shot):
        suffix = f"#{msg.turn}" if msg.turn is not None else ""
        return f"SHOT:{msg.x},{msg.y}{suffix}"
    if isinstance(msg, Result):
        suffix = f"#{msg.turn}" if msg.turn is not None else ""
        return f"RESULT:{msg.outcome.value}{suffix}"
    raise TypeError(f"Cannot encode {msg!r}")
