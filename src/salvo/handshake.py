"""Ready handshake: decide which node fires first without a shared clock.

Each node stamps the moment it finished placement with its own clock and
announces it in a READY datagram. Once both stamps are known every node runs
the same comparison from its own side, and the earlier finisher fires first.
If the opponent stays silent past the timeout, the local node fires first so
the match never deadlocks on a lost READY.
"""

from __future__ import annotations

import enum
import logging
import random
from typing import Optional

from .messages import UINT32_MASK, Ready

logger = logging.getLogger(__name__)

UNSET_TIMESTAMP = UINT32_MASK


class ReadyState(enum.Enum):
    PLACEMENT = "placement"
    WAITING_FOR_OPPONENT = "waiting_for_opponent"
    SYNCED = "synced"


def local_fires_first(
    mine: Optional[int],
    theirs: Optional[int],
    my_nonce: Optional[int] = None,
    their_nonce: Optional[int] = None,
) -> bool:
    """Tie-break rule evaluated independently on each node.

    A missing timestamp counts as the largest representable one, so a node
    that has not finished loses. The smaller timestamp fires first. Equal
    timestamps fall back to the nonces when both are known, otherwise the
    local side wins.
    """
    a = UNSET_TIMESTAMP if mine is None else mine & UINT32_MASK
    b = UNSET_TIMESTAMP if theirs is None else theirs & UINT32_MASK
    if a != b:
        return a < b
    if my_nonce is not None and their_nonce is not None and my_nonce != their_nonce:
        return my_nonce < their_nonce
    return True


class ReadyHandshake:
    """Tracks the READY exchange for one match."""

    def __init__(
        self,
        *,
        timeout_ms: int,
        resend_ms: int,
        nonce: Optional[int] = None,
    ) -> None:
        self.timeout_ms = timeout_ms
        self.resend_ms = resend_ms
        self.nonce = nonce if nonce is not None else random.getrandbits(32)
        self.state = ReadyState.PLACEMENT
        self.my_timestamp: Optional[int] = None
        self.opponent_timestamp: Optional[int] = None
        self.opponent_nonce: Optional[int] = None
        self.opponent_ready = False
        self.local_first: Optional[bool] = None
        self.timed_out = False
        self.peer_in_game = False
        self._synced_at: Optional[int] = None
        self._finished_at: Optional[int] = None
        self._last_sent_at: Optional[int] = None

    @property
    def synced(self) -> bool:
        return self.state is ReadyState.SYNCED

    def announcement(self) -> Ready:
        """The READY datagram describing our own completion."""
        ts = self.my_timestamp if self.my_timestamp is not None else 0
        return Ready(timestamp=ts, nonce=self.nonce)

    def finish(self, now: int) -> Ready:
        """Record local completion at *now* and return the READY to send."""
        if self.state is ReadyState.PLACEMENT:
            self.my_timestamp = now & UINT32_MASK
            self._finished_at = now
            self.state = ReadyState.WAITING_FOR_OPPONENT
            logger.info("Placement finished at %d – waiting for opponent", self.my_timestamp)
        self._last_sent_at = now
        return self.announcement()

    def receive(self, msg: Ready, now: int) -> bool:
        """Store the opponent's READY.

        Returns True when the caller should answer with our announcement:
        the handshake is already synced here, so a peer still sending READY
        has not heard ours. Answers stop once the peer shows in-game traffic
        or the timeout window after syncing has passed, and are spaced at
        least one resend interval apart.
        """
        self.opponent_timestamp = msg.timestamp
        if msg.nonce is not None:
            self.opponent_nonce = msg.nonce
        if not self.opponent_ready:
            logger.info("Opponent ready at %d", msg.timestamp)
        self.opponent_ready = True
        if not self.synced or self.peer_in_game or self._synced_at is None:
            return False
        if now - self._synced_at >= self.timeout_ms:
            return False
        if self._last_sent_at is not None and now - self._last_sent_at < self.resend_ms:
            return False
        self._last_sent_at = now
        return True

    def note_peer_in_game(self) -> None:
        """The peer sent AIM/SHOT/RESULT traffic, so it has finished its handshake."""
        self.peer_in_game = True

    def poll(self, now: int) -> Optional[Ready]:
        """Advance the handshake; return a READY to (re)send, if any."""
        if self.state is not ReadyState.WAITING_FOR_OPPONENT:
            return None
        if self.opponent_ready:
            self._decide(
                local_fires_first(self.my_timestamp, self.opponent_timestamp, self.nonce, self.opponent_nonce),
                now,
            )
            return None
        if self._finished_at is None:
            raise RuntimeError("handshake is waiting but placement never finished")
        if now - self._finished_at >= self.timeout_ms:
            self.timed_out = True
            logger.warning(
                "No READY from opponent within %d ms – firing first", self.timeout_ms
            )
            self._decide(True, now)
            return None
        if self._last_sent_at is None or now - self._last_sent_at >= self.resend_ms:
            self._last_sent_at = now
            return self.announcement()
        return None

    def yield_first_shot(self, now: int) -> None:
        """Sync with the opponent firing first (its SHOT arrived before its READY)."""
        if self.state is ReadyState.WAITING_FOR_OPPONENT:
            logger.info("Opponent fired before READY arrived – opponent goes first")
            self.opponent_ready = True
            self._decide(False, now)

    def _decide(self, local_first: bool, now: int) -> None:
        self.local_first = local_first
        self._synced_at = now
        self.state = ReadyState.SYNCED
        logger.info("Handshake synced – %s fires first", "local" if local_first else "opponent")
