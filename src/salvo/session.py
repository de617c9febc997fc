"""Turn-synchronisation engine for one node of a two-node match.

The session is driven by a single cooperative polling loop. Every call to
``GameSession.tick()`` performs, in this order:

1. at most one non-blocking ``link.receive()``, handled immediately
2. one ``sample_input()`` call
3. phase timeouts, handshake progress and SHOT retransmission
4. a fresh render into ``session.frame``

so a message and a timeout landing in the same tick always resolve
message-first. All state lives on the session object; nothing is global.

Phases
------
PLACEMENT          boats are being laid out
READY_WAIT         placement done, READY handshake in progress
MY_TURN            aim with the stick, press to fire
WAIT_FOR_OPPONENT  our SHOT is out, or the opponent is aiming
SHOW_RESULT        outcome of our shot on screen (display timeout)
OPPONENT_SHOT      incoming shot on screen (display timeout)
GAME_OVER          one fleet is gone

SHOT and RESULT are processed whatever the in-game phase is; the engine only
reacts. During PLACEMENT a SHOT is ignored and during READY_WAIT it syncs us
as second shooter; a RESULT in either phase is dropped, as nothing was fired.

Each node adjudicates shots against its own board and answers with a RESULT,
which is the only source of truth the shooter ever sees.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional, Protocol, Tuple

import numpy as np

from .board import Board, Knowledge, OpponentGrid
from .config import SessionSettings
from .events import Category, Event
from .handshake import ReadyHandshake, ReadyState
from .messages import Aim, Message, Outcome, Ready, Result, Shot, Unrecognized, decode, encode
from .placement import PlacementEngine
from .render import draw_opponent_grid, draw_own_board, draw_placement, new_frame
from .resolver import propagate_sunk, resolve_shot
from .sequencing import AnswerCache, ShotRetransmitter, ShotVerdict

logger = logging.getLogger(__name__)


class Link(Protocol):
    def receive(self) -> Optional[str]: ...

    def send(self, text: str) -> None: ...


class InputSample(NamedTuple):
    dx: int = 0
    dy: int = 0
    button_down: bool = False


class Phase(enum.Enum):
    PLACEMENT = "placement"
    READY_WAIT = "ready_wait"
    MY_TURN = "my_turn"
    WAIT_FOR_OPPONENT = "wait_for_opponent"
    SHOW_RESULT = "show_result"
    OPPONENT_SHOT = "opponent_shot"
    GAME_OVER = "game_over"


@dataclass
class TurnContext:
    """Session-scoped turn state, recreated when placement starts."""

    phase: Phase = Phase.PLACEMENT
    phase_entered_at: int = 0
    aim: Tuple[int, int] = (0, 0)
    opponent_aim: Optional[Tuple[int, int]] = None
    opponent_aim_received_at: int = 0
    my_ready_ts: Optional[int] = None
    opponent_ready_ts: Optional[int] = None
    ready_state: ReadyState = ReadyState.PLACEMENT
    last_shot: Optional[Tuple[int, int]] = None
    last_outcome: Optional[Outcome] = None
    last_incoming: Optional[Tuple[int, int]] = None
    opponent_boats_sunk: int = 0
    winner: Optional[bool] = None


class GameSession:
    """State machine for a single match, seen from one node."""

    def __init__(
        self,
        link: Link,
        clock: Callable[[], int],
        sample_input: Callable[[], InputSample],
        *,
        settings: Optional[SessionSettings] = None,
        nonce: Optional[int] = None,
    ) -> None:
        """Create a session bound to its collaborators.

        Args:
            link: datagram transport; ``receive()`` returns one message or None.
            clock: monotonically increasing milliseconds.
            sample_input: returns the current stick direction and button level.
            settings: tunables; defaults come from ``salvo.config``.
            nonce: tie-break nonce announced in READY; random when omitted.
        """
        self.link = link
        self.clock = clock
        self.sample_input = sample_input
        self.settings = settings or SessionSettings()
        s = self.settings

        self.board = Board(s.width, s.height)
        self.opponent = OpponentGrid(s.width, s.height)
        self.placement = PlacementEngine(self.board, max_boats=s.max_boats, long_press_ms=s.long_press_ms)
        self.handshake = ReadyHandshake(timeout_ms=s.ready_timeout_ms, resend_ms=s.ready_resend_ms, nonce=nonce)
        self.shots = ShotRetransmitter(s.result_retry_ms)
        self.answers = AnswerCache()
        self.ctx = TurnContext()
        self.frame: np.ndarray = new_frame(s.width, s.height)

        self._fleet_size = 0
        self._button_was_down = False
        self._aim_dirty = False
        self._aim_sent_at: Optional[int] = None
        self._subs: List[Callable[[Event], None]] = []

    # -------------------- lifecycle --------------------
    def start(self) -> None:
        """Begin placement with the configured fleet.

        Raises CapacityExceeded when the fleet is larger than the boat list.
        """
        s = self.settings
        self.placement.begin(s.fleet)
        self.opponent.reset()
        self._fleet_size = len(self.board.boats)
        now = self.clock()
        self.ctx = TurnContext(phase_entered_at=now, aim=(s.width // 2, s.height // 2))
        self._emit(Event(Category.PLACEMENT, "start", {"boats": self._fleet_size}))
        if self.placement.finished:
            # empty fleet: nothing to lay out
            self._finish_placement(now)
        self.render(now)

    def tick(self) -> None:
        """Run one cycle of the polling loop."""
        now = self.clock()
        raw = self.link.receive()
        if raw:
            self.handle_message(raw, now)
        self.handle_input(self.sample_input(), now)
        self.check_timeouts(now)
        self.render(now)

    @property
    def phase(self) -> Phase:
        return self.ctx.phase

    # -------------------- event bus --------------------
    def subscribe(self, cb: Callable[[Event], None]) -> None:
        """Allow external components (CLI, tests) to receive game events."""
        self._subs.append(cb)

    def _emit(self, ev: Event) -> None:
        for cb in tuple(self._subs):
            try:
                cb(ev)
            except Exception:
                # a broken subscriber must not stall the tick loop
                logger.exception("Event subscriber failed for %s", ev)

    # -------------------- helpers --------------------
    def _send(self, msg: Message) -> None:
        text = encode(msg)
        logger.debug("send %s", text)
        self.link.send(text)

    def _set_phase(self, phase: Phase, now: int) -> None:
        old = self.ctx.phase
        self.ctx.phase = phase
        self.ctx.phase_entered_at = now
        if old is not phase:
            logger.info("Phase %s -> %s", old.value, phase.value)
        self._emit(Event(Category.TURN, "phase", {"from": old, "to": phase}))

    def _in_bounds(self, x: int, y: int) -> bool:
        return self.board.in_bounds(x, y)

    def opponent_aim_visible(self, now: int) -> Optional[Tuple[int, int]]:
        """Opponent cursor while it is fresh; stale cursors simply stop showing."""
        if self.ctx.opponent_aim is None:
            return None
        if now - self.ctx.opponent_aim_received_at >= self.settings.aim_fresh_ms:
            return None
        return self.ctx.opponent_aim

    # -------------------- inbound --------------------
    def handle_message(self, raw: str, now: int) -> None:
        """Decode one datagram and react to it; junk is dropped silently."""
        msg = decode(raw)
        if isinstance(msg, Unrecognized):
            logger.debug("Ignoring unrecognized datagram %r", msg.raw)
            self._emit(Event(Category.SYSTEM, "dropped", {"raw": msg.raw}))
            return
        if isinstance(msg, Ready):
            self._on_ready(msg, now)
            return

        if not isinstance(msg, Result) and not self._in_bounds(msg.x, msg.y):
            logger.debug("Discarding out-of-bounds %s", raw)
            self._emit(Event(Category.SYSTEM, "dropped", {"raw": raw}))
            return
        self.handshake.note_peer_in_game()
        if isinstance(msg, Aim):
            self.ctx.opponent_aim = (msg.x, msg.y)
            self.ctx.opponent_aim_received_at = now
        elif isinstance(msg, Shot):
            self._on_shot(msg, now)
        elif isinstance(msg, Result):
            self._on_result(msg, now)

    def _on_ready(self, msg: Ready, now: int) -> None:
        self.ctx.opponent_ready_ts = msg.timestamp
        if self.handshake.receive(msg, now):
            logger.debug("Answering late READY from opponent")
            self._send(self.handshake.announcement())

    def _on_shot(self, msg: Shot, now: int) -> None:
        if self.ctx.phase is Phase.PLACEMENT:
            # board incomplete; the shooter retransmits until we can answer
            logger.debug("Ignoring %s during placement", msg)
            return
        if self.ctx.phase is Phase.READY_WAIT:
            self.handshake.yield_first_shot(now)
            self._enter_game(now)

        verdict = self.answers.classify(msg)
        if verdict is ShotVerdict.DUPLICATE:
            logger.debug("Duplicate %s – repeating %s", msg, self.answers.last_result)
            self._send(self.answers.last_result)  # type: ignore[arg-type]
            return
        if verdict is ShotVerdict.STALE:
            logger.debug("Dropping stale %s", msg)
            return

        outcome = resolve_shot(msg.x, msg.y, self.board)
        if outcome.sunk:
            word = Outcome.SINK
        elif outcome.was_hit:
            word = Outcome.HIT
        else:
            word = Outcome.MISS
        result = Result(word, msg.turn)

        # show the incoming shot locally before the reply goes out
        self.ctx.last_incoming = (msg.x, msg.y)
        if self.ctx.phase is not Phase.GAME_OVER:
            self._set_phase(Phase.OPPONENT_SHOT, now)
        self.answers.record(result)
        self._send(result)
        logger.info("Opponent fired at (%d,%d): %s", msg.x, msg.y, word.value)
        self._emit(
            Event(
                Category.TURN,
                "shot_received",
                {"x": msg.x, "y": msg.y, "result": word, "sunk_boat": outcome.sunk_boat_index},
            )
        )

    def _on_result(self, msg: Result, now: int) -> None:
        if self.ctx.phase in (Phase.PLACEMENT, Phase.READY_WAIT):
            # we have not fired yet; a RESULT here answers nothing of ours
            logger.debug("Ignoring %s during %s", msg, self.ctx.phase.value)
            self._emit(Event(Category.SYSTEM, "dropped", {"raw": encode(msg)}))
            return
        if not self.shots.accept(msg):
            return
        x, y = self.ctx.last_shot if self.ctx.last_shot is not None else self.ctx.aim
        if msg.outcome is Outcome.MISS:
            self.opponent.mark(x, y, Knowledge.MISS)
        elif msg.outcome is Outcome.HIT:
            self.opponent.mark(x, y, Knowledge.HIT)
        else:
            if propagate_sunk(self.opponent, x, y):
                self.ctx.opponent_boats_sunk += 1
        self.ctx.last_outcome = msg.outcome
        if self.ctx.phase is not Phase.GAME_OVER:
            self._set_phase(Phase.SHOW_RESULT, now)
        logger.info("Shot at (%d,%d): %s", x, y, msg.outcome.value)
        self._emit(Event(Category.TURN, "result", {"x": x, "y": y, "result": msg.outcome}))

    # -------------------- local input --------------------
    def handle_input(self, sample: InputSample, now: int) -> None:
        pressed = sample.button_down and not self._button_was_down
        self._button_was_down = sample.button_down
        phase = self.ctx.phase

        if phase is Phase.PLACEMENT:
            done = self.placement.advance(sample.dx, sample.dy, sample.button_down, now)
            if done:
                self._finish_placement(now)
            return

        if phase is not Phase.MY_TURN:
            return

        if sample.dx or sample.dy:
            x, y = self.ctx.aim
            nx = max(0, min(self.settings.width - 1, x + sample.dx))
            ny = max(0, min(self.settings.height - 1, y + sample.dy))
            if (nx, ny) != (x, y):
                self.ctx.aim = (nx, ny)
                self._aim_dirty = True
        if pressed:
            self._fire(now)
            return
        self._flush_aim(now)

    def _flush_aim(self, now: int) -> None:
        if not self._aim_dirty or not self.settings.aim_broadcast:
            return
        if self._aim_sent_at is not None and now - self._aim_sent_at < self.settings.aim_interval_ms:
            return
        self._aim_dirty = False
        self._aim_sent_at = now
        self._send(Aim(*self.ctx.aim))

    def _fire(self, now: int) -> None:
        x, y = self.ctx.aim
        if self.opponent.get(x, y) is not Knowledge.UNKNOWN:
            logger.debug("Already fired at (%d,%d)", x, y)
            return
        shot = self.shots.fire(x, y, now)
        self.ctx.last_shot = (x, y)
        self._aim_dirty = False
        self._set_phase(Phase.WAIT_FOR_OPPONENT, now)
        self._send(shot)
        logger.info("Fired at (%d,%d), turn %d", x, y, shot.turn)
        self._emit(Event(Category.TURN, "fired", {"x": x, "y": y, "turn": shot.turn}))

    def _finish_placement(self, now: int) -> None:
        self._emit(Event(Category.PLACEMENT, "finished", {"boats": len(self.board.boats)}))
        ready = self.handshake.finish(now)
        self.ctx.my_ready_ts = ready.timestamp
        self.ctx.ready_state = self.handshake.state
        self._set_phase(Phase.READY_WAIT, now)
        self._send(ready)

    def _enter_game(self, now: int) -> None:
        self.ctx.ready_state = self.handshake.state
        if self.handshake.timed_out:
            self._emit(Event(Category.SYSTEM, "handshake_timeout", {"waited_ms": self.settings.ready_timeout_ms}))
        self._emit(Event(Category.SYSTEM, "synced", {"local_first": self.handshake.local_first}))
        self._set_phase(Phase.MY_TURN if self.handshake.local_first else Phase.WAIT_FOR_OPPONENT, now)

    # -------------------- timeouts --------------------
    def check_timeouts(self, now: int) -> None:
        phase = self.ctx.phase
        elapsed = now - self.ctx.phase_entered_at

        if phase is Phase.READY_WAIT:
            out = self.handshake.poll(now)
            if out is not None:
                self._send(out)
            if self.handshake.synced:
                self._enter_game(now)
        elif phase is Phase.SHOW_RESULT and elapsed >= self.settings.display_timeout_ms:
            if self._fleet_size and self.ctx.opponent_boats_sunk >= self._fleet_size:
                self.ctx.winner = True
                self._set_phase(Phase.GAME_OVER, now)
                logger.info("Opponent fleet destroyed – you win")
            else:
                self._set_phase(Phase.WAIT_FOR_OPPONENT, now)
        elif phase is Phase.OPPONENT_SHOT and elapsed >= self.settings.display_timeout_ms:
            if self.board.all_sunk():
                self.ctx.winner = False
                self._set_phase(Phase.GAME_OVER, now)
                logger.info("Fleet destroyed – you lose")
            else:
                self._set_phase(Phase.MY_TURN, now)

        again = self.shots.due(now)
        if again is not None:
            self._send(again)

    # -------------------- render --------------------
    def render(self, now: int) -> np.ndarray:
        """Rebuild ``self.frame`` for the current phase."""
        frame = new_frame(self.settings.width, self.settings.height)
        phase = self.ctx.phase
        if phase is Phase.PLACEMENT:
            draw_placement(frame, self.placement)
        elif phase is Phase.MY_TURN:
            draw_opponent_grid(frame, self.opponent, cursor=self.ctx.aim)
        elif phase is Phase.SHOW_RESULT:
            draw_opponent_grid(frame, self.opponent)
        elif phase is Phase.OPPONENT_SHOT:
            draw_own_board(frame, self.board, highlight=self.ctx.last_incoming)
        elif phase is Phase.GAME_OVER and self.ctx.winner:
            draw_opponent_grid(frame, self.opponent)
        else:
            draw_own_board(frame, self.board, opponent_aim=self.opponent_aim_visible(now))
        self.frame = frame
        return frame
