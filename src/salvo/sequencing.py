# Turn-counter bookkeeping for SHOT/RESULT pairs

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from .messages import Result, Shot

logger = logging.getLogger(__name__)


@dataclass
class _Pending:
    shot: Shot
    sent_at: int


class ShotRetransmitter:
    """Number outgoing SHOTs and re-send the unanswered one until its RESULT arrives"""

    def __init__(self, retry_ms: int):
        self.retry_ms = retry_ms
        self.last_turn = 0
        self._pending: Optional[_Pending] = None

    @property
    def pending(self) -> Optional[Shot]:
        return self._pending.shot if self._pending else None

    def fire(self, x: int, y: int, now: int) -> Shot:
        """Open a new turn and return the SHOT to send"""
        self.last_turn += 1
        shot = Shot(x, y, self.last_turn)
        self._pending = _Pending(shot, now)
        return shot

    def due(self, now: int) -> Optional[Shot]:
        """Return the pending SHOT if it is time to send it again"""
        if self._pending is None or self.retry_ms <= 0:
            return None
        if now - self._pending.sent_at < self.retry_ms:
            return None
        self._pending.sent_at = now
        logger.debug("Retransmitting %s", self._pending.shot)
        return self._pending.shot

    def accept(self, result: Result) -> bool:
        """Return True if *result* answers the pending SHOT (and close it)"""
        if self._pending is None:
            if self.last_turn == 0:
                logger.debug("Dropping %s, no SHOT fired yet", result)
                return False
            # numbered results with nothing pending are late duplicates
            return result.turn is None
        if result.turn is not None and result.turn != self._pending.shot.turn:
            logger.debug("Dropping stale %s (pending turn %d)", result, self._pending.shot.turn)
            return False
        self._pending = None
        return True


class ShotVerdict(enum.Enum):
    NEW = "new"
    DUPLICATE = "duplicate"
    STALE = "stale"


class AnswerCache:
    """Remember the last answered incoming turn so repeats are not re-resolved"""

    def __init__(self) -> None:
        self.last_turn = -1
        self.last_result: Optional[Result] = None

    def classify(self, shot: Shot) -> ShotVerdict:
        if shot.turn is None or shot.turn > self.last_turn:
            return ShotVerdict.NEW
        if shot.turn == self.last_turn and self.last_result is not None:
            return ShotVerdict.DUPLICATE
        return ShotVerdict.STALE

    def record(self, result: Result) -> None:
        if result.turn is not None:
            self.last_turn = result.turn
        self.last_result = result
