"""Shot adjudication and sunk-region inference.

``resolve_shot`` runs on the node that *receives* a SHOT: it is the only
place where a shot's outcome is decided. ``propagate_sunk`` runs on the
shooter, which never learns boat shapes and infers the sunk boat from the
hits it has accumulated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from .board import Board, Cell, Knowledge, OpponentGrid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShotOutcome:
    was_hit: bool
    sunk_boat_index: Optional[int] = None

    @property
    def sunk(self) -> bool:
        return self.sunk_boat_index is not None


def resolve_shot(x: int, y: int, board: Board) -> ShotOutcome:
    """Process a shot at (*x*, *y*) against our own *board*.

    A repeated shot at a cell that was already hit reports the same outcome
    again without changing any state.
    """
    if not board.in_bounds(x, y):
        raise ValueError(f"shot ({x},{y}) is outside the board")
    if not board.occupied[x, y]:
        logger.debug("resolve_shot(%d,%d) – miss", x, y)
        return ShotOutcome(was_hit=False)
    board.hit_received[x, y] = True
    idx = board.boat_at(x, y)
    if idx is not None and board.is_sunk(idx):
        logger.debug("resolve_shot(%d,%d) – sank boat %d", x, y, idx)
        return ShotOutcome(was_hit=True, sunk_boat_index=idx)
    logger.debug("resolve_shot(%d,%d) – hit", x, y)
    return ShotOutcome(was_hit=True)


def _hit_run(grid: OpponentGrid, x: int, y: int, dx: int, dy: int) -> List[Cell]:
    """Contiguous HIT cells through (*x*, *y*) along (*dx*, *dy*)."""
    run: List[Cell] = [(x, y)]
    for step in (-1, 1):
        cx, cy = x + dx * step, y + dy * step
        while grid.in_bounds(cx, cy) and grid.get(cx, cy) is Knowledge.HIT:
            run.append((cx, cy))
            cx, cy = cx + dx * step, cy + dy * step
    return run


def propagate_sunk(grid: OpponentGrid, x: int, y: int) -> List[Cell]:
    """Promote the boat that a SINK result at (*x*, *y*) just finished.

    Boats are straight runs, so the sunk boat is the horizontal run of hits
    through the cell when that run is longer than one, else the vertical run.
    Returns the promoted cells.
    """
    if grid.get(x, y) is Knowledge.SUNK:
        return []
    grid.mark(x, y, Knowledge.HIT)
    run = _hit_run(grid, x, y, 1, 0)
    if len(run) <= 1:
        run = _hit_run(grid, x, y, 0, 1)
    for cx, cy in run:
        grid.mark(cx, cy, Knowledge.SUNK)
    logger.debug("propagate_sunk(%d,%d) – %d cells", x, y, len(run))
    return run
