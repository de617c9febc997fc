# render.py
"""
Per-tick render surface handed to the display collaborator.
–––––––––––––––––––––––––––––––––––––––––––––––––––––––––––
• Color           – palette index stored in every frame cell
• new_frame()     – blank (width, height) uint8 buffer
• draw_placement() / draw_own_board() / draw_opponent_grid() – layer helpers
• frame_rows()    – frame → ASCII rows for terminals and logs
"""

from __future__ import annotations

import enum
import logging
from typing import List, Optional, Tuple

import numpy as np

from .board import Board, Knowledge, OpponentGrid
from .placement import PlacementEngine

logger = logging.getLogger(__name__)


class Color(enum.IntEnum):
    OFF = 0
    BOAT = 1
    CANDIDATE = 2
    BLOCKED = 3
    MISS = 4
    HIT = 5
    SUNK = 6
    CURSOR = 7
    OPPONENT_CURSOR = 8


GLYPHS = {
    Color.OFF: ".",
    Color.BOAT: "B",
    Color.CANDIDATE: "+",
    Color.BLOCKED: "!",
    Color.MISS: "o",
    Color.HIT: "X",
    Color.SUNK: "#",
    Color.CURSOR: "@",
    Color.OPPONENT_CURSOR: "?",
}

_KNOWLEDGE_COLORS = {
    Knowledge.UNKNOWN: Color.OFF,
    Knowledge.MISS: Color.MISS,
    Knowledge.HIT: Color.HIT,
    Knowledge.SUNK: Color.SUNK,
}


def new_frame(width: int, height: int) -> np.ndarray:
    return np.zeros((width, height), dtype=np.uint8)


def draw_placement(frame: np.ndarray, engine: PlacementEngine) -> None:
    """Placed boats plus the candidate, flagged when it cannot be confirmed."""
    board = engine.board
    frame[board.occupied] = Color.BOAT
    boat = engine.current
    if boat is None:
        return
    color = Color.CANDIDATE if engine.candidate_valid else Color.BLOCKED
    for x, y in boat.cells():
        if board.in_bounds(x, y):
            frame[x, y] = color


def draw_own_board(
    frame: np.ndarray,
    board: Board,
    *,
    opponent_aim: Optional[Tuple[int, int]] = None,
    highlight: Optional[Tuple[int, int]] = None,
) -> None:
    """Our fleet with the opponent's hits; optionally where they are aiming."""
    frame[board.occupied] = Color.BOAT
    frame[board.hit_received] = Color.HIT
    if opponent_aim is not None:
        frame[opponent_aim] = Color.OPPONENT_CURSOR
    if highlight is not None:
        x, y = highlight
        frame[x, y] = Color.HIT if board.occupied[x, y] else Color.MISS


def draw_opponent_grid(
    frame: np.ndarray, grid: OpponentGrid, *, cursor: Optional[Tuple[int, int]] = None
) -> None:
    for knowledge, color in _KNOWLEDGE_COLORS.items():
        frame[grid.cells == knowledge] = color
    if cursor is not None:
        frame[cursor] = Color.CURSOR


def frame_rows(frame: np.ndarray) -> List[str]:
    """Frame → one string per display row (y), cells in x order."""
    width, height = frame.shape
    rows: list[str] = []
    for y in range(height):
        rows.append(" ".join(GLYPHS[Color(int(frame[x, y]))] for x in range(width)))
    logger.debug("frame_rows() result – rows_count=%d", len(rows))
    return rows
