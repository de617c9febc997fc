"""Central configuration for runtime-tunable parameters.

Every constant can be overridden via an environment variable so that a node
runs with sensible defaults while a test-suite or a slow link can stretch
specific timings without touching code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

# ===========================================================================
# Board Geometry
# ===========================================================================
# SALVO_BOARD_WIDTH / SALVO_BOARD_HEIGHT: size of the grid in cells.
#   Defaults to 16x16 (one cell per LED of the display matrix).
#   Example: export SALVO_BOARD_WIDTH=10
BOARD_WIDTH: int = int(os.getenv("SALVO_BOARD_WIDTH", "16"))
BOARD_HEIGHT: int = int(os.getenv("SALVO_BOARD_HEIGHT", "16"))


# ===========================================================================
# Fleet
# ===========================================================================
# SALVO_FLEET: comma-separated "<length>x<count>" entries, placed in order.
#   Defaults to one 4-boat, two 3-boats and two 2-boats.
#   Example: export SALVO_FLEET="5x1,3x1"
FLEET_SPEC: str = os.getenv("SALVO_FLEET", "4x1,3x2,2x2")

# SALVO_MAX_BOATS: capacity of the boat list; larger fleets are refused.
MAX_BOATS: int = int(os.getenv("SALVO_MAX_BOATS", "10"))


def parse_fleet(spec: str) -> list[tuple[int, int]]:
    """Turn ``"4x1,3x2"`` into ``[(4, 1), (3, 2)]``."""
    fleet: list[tuple[int, int]] = []
    for chunk in spec.split(","):
        chunk = chunk.strip().lower()
        if not chunk:
            continue
        length, _, count = chunk.partition("x")
        fleet.append((int(length), int(count or "1")))
    return fleet


FLEET: list[tuple[int, int]] = parse_fleet(FLEET_SPEC)


# ===========================================================================
# Input Timing
# ===========================================================================
# SALVO_LONG_PRESS_MS: button presses at least this long confirm a boat,
#   shorter ones rotate it.
LONG_PRESS_MS: int = int(os.getenv("SALVO_LONG_PRESS_MS", "500"))


# ===========================================================================
# Turn Timing
# ===========================================================================
# SALVO_DISPLAY_TIMEOUT_MS: how long SHOW_RESULT / OPPONENT_SHOT stay on screen.
DISPLAY_TIMEOUT_MS: int = int(os.getenv("SALVO_DISPLAY_TIMEOUT_MS", "1000"))

# SALVO_AIM_INTERVAL_MS: minimum gap between two outbound AIM datagrams.
AIM_INTERVAL_MS: int = int(os.getenv("SALVO_AIM_INTERVAL_MS", "150"))

# SALVO_AIM_FRESH_MS: a received AIM is drawn for this long, then ignored.
AIM_FRESH_MS: int = int(os.getenv("SALVO_AIM_FRESH_MS", "1500"))

# SALVO_AIM_BROADCAST: "0" disables outbound AIM datagrams entirely.
AIM_BROADCAST: bool = os.getenv("SALVO_AIM_BROADCAST", "1") != "0"


# ===========================================================================
# Handshake & Retransmission
# ===========================================================================
# SALVO_READY_TIMEOUT_MS: after finishing placement, wait this long for the
#   opponent's READY before firing first unilaterally.
READY_TIMEOUT_MS: int = int(os.getenv("SALVO_READY_TIMEOUT_MS", "10000"))

# SALVO_READY_RESEND_MS: READY is repeated at this interval while waiting.
READY_RESEND_MS: int = int(os.getenv("SALVO_READY_RESEND_MS", "500"))

# SALVO_RESULT_RETRY_MS: an unanswered SHOT is re-sent at this interval.
#   "0" disables retransmission (single-shot legacy behaviour).
RESULT_RETRY_MS: int = int(os.getenv("SALVO_RESULT_RETRY_MS", "1000"))


# ===========================================================================
# Network Defaults
# ===========================================================================
# SALVO_LOCAL_PORT: UDP port this node listens on.
LOCAL_PORT: int = int(os.getenv("SALVO_LOCAL_PORT", "8888"))

# SALVO_PEER_HOST / SALVO_PEER_PORT: where the opposing node listens.
PEER_HOST: str = os.getenv("SALVO_PEER_HOST", "127.0.0.1")
PEER_PORT: int = int(os.getenv("SALVO_PEER_PORT", "8888"))

# SALVO_TICK_MS: polling loop period.
TICK_MS: int = int(os.getenv("SALVO_TICK_MS", "50"))


# ===========================================================================
# Debugging and Logging
# ===========================================================================
# SALVO_DEBUG: If "1", enables detailed debug logging across modules.
DEBUG: bool = os.getenv("SALVO_DEBUG", "0") == "1"


@dataclass
class SessionSettings:
    """Per-session copy of the tunables above."""

    width: int = BOARD_WIDTH
    height: int = BOARD_HEIGHT
    fleet: list[tuple[int, int]] = field(default_factory=lambda: list(FLEET))
    max_boats: int = MAX_BOATS
    long_press_ms: int = LONG_PRESS_MS
    display_timeout_ms: int = DISPLAY_TIMEOUT_MS
    aim_interval_ms: int = AIM_INTERVAL_MS
    aim_fresh_ms: int = AIM_FRESH_MS
    aim_broadcast: bool = AIM_BROADCAST
    ready_timeout_ms: int = READY_TIMEOUT_MS
    ready_resend_ms: int = READY_RESEND_MS
    result_retry_ms: int = RESULT_RETRY_MS
