"""Run one game node from a terminal.

Keyboard lines stand in for the joystick:

    w a s d   move one cell per letter (``ddd`` moves three cells)
    tap / f   short button press (rotate a boat, or fire)
    hold / h  long button press (confirm a boat)
    quit      leave

The frame is printed as ASCII every time it changes.
"""

from __future__ import annotations

import argparse
import logging
import os
import queue
import sys
import threading
import time
from collections import deque
from typing import Callable, Deque, Optional, Union

import numpy as np

from . import config as _cfg
from .config import SessionSettings
from .errors import CapacityExceeded
from .events import Category, Event
from .link import UdpLink
from .render import frame_rows
from .session import GameSession, InputSample, Phase

logger = logging.getLogger(__name__)

_MOVES = {"w": (0, -1), "s": (0, 1), "a": (-1, 0), "d": (1, 0)}

_Step = Union[InputSample, str]


class KeyboardInput:
    """Turn typed commands into one InputSample per tick."""

    def __init__(self, clock: Callable[[], int], long_press_ms: int) -> None:
        self.clock = clock
        self.long_press_ms = long_press_ms
        self.lines: "queue.Queue[str]" = queue.Queue()
        self.quit = threading.Event()
        self._steps: Deque[_Step] = deque()
        self._hold_until: Optional[int] = None

    def feed(self, line: str) -> None:
        self.lines.put(line)

    def _expand(self, line: str) -> None:
        word = line.strip().lower()
        if word in {"quit", "q", "exit"}:
            self.quit.set()
        elif word in {"tap", "f", "fire", "t"}:
            self._steps.extend([InputSample(button_down=True), InputSample()])
        elif word in {"hold", "h"}:
            self._steps.append("hold")
        elif word and all(ch in _MOVES for ch in word):
            self._steps.extend(InputSample(*_MOVES[ch]) for ch in word)
        elif word:
            print(f"?? unknown command {word!r}")

    def __call__(self) -> InputSample:
        now = self.clock()
        if self._hold_until is not None:
            if now < self._hold_until:
                return InputSample(button_down=True)
            self._hold_until = None
            return InputSample()
        while not self._steps:
            try:
                self._expand(self.lines.get_nowait())
            except queue.Empty:
                return InputSample()
        step = self._steps.popleft()
        if step == "hold":
            self._hold_until = now + self.long_press_ms
            return InputSample(button_down=True)
        return step  # type: ignore[return-value]


def _stdin_loop(kb: KeyboardInput) -> None:  # pragma: no cover
    for line in sys.stdin:
        kb.feed(line)
        if kb.quit.is_set():
            return
    kb.quit.set()


def _print_frame(session: GameSession) -> None:
    print(f"\n[{session.phase.value}]")
    for row in frame_rows(session.frame):
        print(row)


def _log_event(ev: Event) -> None:
    if ev.category is Category.SYSTEM and ev.type == "handshake_timeout":
        logger.warning("Opponent never confirmed READY – proceeding as first shooter")
    logger.debug("event %s/%s %s", ev.category.name, ev.type, ev.payload)


def main(argv: Optional[list[str]] = None) -> int:  # pragma: no cover – side-effect entrypoint
    parser = argparse.ArgumentParser(description="Salvo game node")
    parser.add_argument("--port", type=int, default=_cfg.LOCAL_PORT, help="Local UDP port.")
    parser.add_argument("--peer", default=_cfg.PEER_HOST, help="Opponent host.")
    parser.add_argument("--peer-port", type=int, default=_cfg.PEER_PORT, help="Opponent UDP port.")
    parser.add_argument("--tick", type=int, default=_cfg.TICK_MS, help="Tick period in ms.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity.")
    parser.add_argument("-q", "--quiet", dest="silent", action="store_true", help="Only log errors.")
    args = parser.parse_args(argv)

    if args.debug:
        os.environ["SALVO_DEBUG"] = "1"
    if args.silent:
        level = logging.ERROR
    elif args.debug or _cfg.DEBUG:
        level = logging.DEBUG
    elif args.verbose >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    t0 = time.monotonic()

    def clock() -> int:
        return int((time.monotonic() - t0) * 1000)

    settings = SessionSettings()
    kb = KeyboardInput(clock, settings.long_press_ms)
    threading.Thread(target=_stdin_loop, args=(kb,), daemon=True).start()

    with UdpLink(args.port, args.peer, args.peer_port) as link:
        session = GameSession(link, clock, kb, settings=settings)
        session.subscribe(_log_event)
        try:
            session.start()
        except CapacityExceeded as e:
            logger.error("Cannot start placement: %s", e)
            return 2

        last: Optional[np.ndarray] = None
        last_phase: Optional[Phase] = None
        try:
            while not kb.quit.is_set():
                session.tick()
                if last is None or session.phase is not last_phase or not np.array_equal(last, session.frame):
                    _print_frame(session)
                    last, last_phase = session.frame.copy(), session.phase
                time.sleep(args.tick / 1000)
        except KeyboardInterrupt:
            sys.stderr.write("\n")
            logger.info("Interrupted, shutting down")
        if session.ctx.winner is not None:
            print("YOU WON" if session.ctx.winner else "YOU LOST")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
