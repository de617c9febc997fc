import logging
from collections import deque
from typing import Callable, Deque, List, Optional

import pytest

from salvo.config import SessionSettings
from salvo.events import Event
from salvo.session import GameSession, InputSample, Phase

# Suppress INFO & DEBUG logs from the engine during tests
logging.basicConfig(level=logging.WARNING)


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: int = 0) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class MemoryLink:
    """In-memory datagram link; one end of a pair built by link_pair()."""

    def __init__(self) -> None:
        self.inbox: Deque[str] = deque()
        self.sent: List[str] = []
        self.peer: Optional["MemoryLink"] = None
        self.drop: Callable[[str], bool] = lambda text: False
        self.duplicate = False

    def send(self, text: str) -> None:
        self.sent.append(text)
        if self.peer is None or self.drop(text):
            return
        self.peer.inbox.append(text)
        if self.duplicate:
            self.peer.inbox.append(text)

    def receive(self) -> Optional[str]:
        return self.inbox.popleft() if self.inbox else None

    def sent_kinds(self, prefix: str) -> List[str]:
        return [t for t in self.sent if t.startswith(prefix)]


def link_pair() -> tuple:
    a, b = MemoryLink(), MemoryLink()
    a.peer, b.peer = b, a
    return a, b


class ScriptedInput:
    """Returns queued samples, then an idle sample once the script runs dry."""

    def __init__(self) -> None:
        self.script: Deque[InputSample] = deque()

    def __call__(self) -> InputSample:
        return self.script.popleft() if self.script else InputSample()


class Node:
    """A GameSession wired to a fake clock, scripted input and a memory link."""

    def __init__(self, link: MemoryLink, settings: SessionSettings, *, nonce: int, start: int = 0) -> None:
        self.link = link
        self.clock = FakeClock(start)
        self.input = ScriptedInput()
        self.settings = settings
        self.session = GameSession(link, self.clock, self.input, settings=settings, nonce=nonce)
        self.phases: List[Phase] = []
        self.session.subscribe(self._on_event)
        self.session.start()

    def _on_event(self, ev: Event) -> None:
        if ev.type == "phase":
            self.phases.append(ev.payload["to"])

    @property
    def phase(self):
        return self.session.phase

    def tick(self, sample: Optional[InputSample] = None, ms: int = 10) -> None:
        if sample is not None:
            self.input.script.append(sample)
        self.session.tick()
        self.clock.advance(ms)

    def drain(self, ticks: int = 5, ms: int = 10) -> None:
        for _ in range(ticks):
            self.tick(ms=ms)

    def long_press(self) -> None:
        self.tick(InputSample(button_down=True), ms=self.settings.long_press_ms)
        self.tick(InputSample())

    def tap(self) -> None:
        self.tick(InputSample(button_down=True))
        self.tick(InputSample())

    def place_fleet(self) -> None:
        """Stack every boat horizontally on rows 0, 2, 4, ... and confirm it."""
        for i in range(len(self.session.board.boats)):
            for _ in range(self.settings.height):
                self.tick(InputSample(0, -1))
            for _ in range(2 * i):
                self.tick(InputSample(0, 1))
            self.long_press()

    def aim_at(self, x: int, y: int) -> None:
        for _ in range(self.settings.width + self.settings.height):
            if self.session.ctx.aim == (x, y):
                return
            ax, ay = self.session.ctx.aim
            dx = (x > ax) - (x < ax)
            dy = (y > ay) - (y < ay)
            self.tick(InputSample(dx, dy))
        assert self.session.ctx.aim == (x, y), f"aim stuck at {self.session.ctx.aim} in {self.phase}"


@pytest.fixture
def settings() -> SessionSettings:
    return SessionSettings(
        width=16,
        height=16,
        fleet=[(3, 1)],
        max_boats=10,
        long_press_ms=500,
        display_timeout_ms=1000,
        aim_interval_ms=150,
        aim_fresh_ms=1500,
        aim_broadcast=True,
        ready_timeout_ms=10000,
        ready_resend_ms=500,
        result_retry_ms=1000,
    )


@pytest.fixture
def node_pair(settings: SessionSettings) -> Callable[..., tuple]:
    """Factory that builds two connected nodes, both already in placement."""

    def _factory(**overrides):
        for key, value in overrides.items():
            setattr(settings, key, value)
        la, lb = link_pair()
        a = Node(la, settings, nonce=1)
        b = Node(lb, settings, nonce=2)
        return a, b

    return _factory


def exchange(a: Node, b: Node, rounds: int = 10, ms: int = 10) -> None:
    """Tick both nodes alternately so datagrams flow in both directions."""
    for _ in range(rounds):
        a.tick(ms=ms)
        b.tick(ms=ms)
