# placement.py
"""
Tick-driven boat layout builder.

Usage:
    engine = PlacementEngine(board, max_boats=10, long_press_ms=500)
    engine.begin([(4, 1), (3, 2)])
    while not engine.finished:
        engine.advance(dx, dy, button_down, now)

Direction input moves the current boat one cell per tick and clamps it to the
board. A short button press rotates it, a long press confirms it.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from .board import Boat, Board, Orientation
from .errors import CapacityExceeded, InvalidPlacement

logger = logging.getLogger(__name__)


class PlacementEngine:
    def __init__(self, board: Board, *, max_boats: int, long_press_ms: int) -> None:
        self.board = board
        self.max_boats = max_boats
        self.long_press_ms = long_press_ms
        self.current_index = 0
        self.finished = False
        self._pressed_at: Optional[int] = None
        self._button_was_down = False

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------
    def begin(self, fleet: Sequence[Tuple[int, int]]) -> None:
        """Reset the board and create one unplaced boat per fleet entry."""
        total = sum(count for _, count in fleet)
        if total > self.max_boats:
            raise CapacityExceeded(f"fleet needs {total} boats, capacity is {self.max_boats}")
        longest = max(self.board.width, self.board.height)
        for length, count in fleet:
            if length <= 0 or count < 0:
                raise ValueError(f"invalid fleet entry ({length}, {count})")
            if length > longest:
                raise ValueError(f"boat of length {length} cannot fit a {self.board.width}x{self.board.height} board")

        self.board.reset()
        for length, count in fleet:
            for _ in range(count):
                self.board.boats.append(Boat(length=length))
        self.current_index = 0
        self.finished = not self.board.boats
        self._pressed_at = None
        self._button_was_down = False
        if self.board.boats:
            self._center(self.board.boats[0])
        logger.info("Placement started – %d boats", total)

    @property
    def boats(self) -> List[Boat]:
        return self.board.boats

    @property
    def current(self) -> Optional[Boat]:
        """The boat being positioned, or None once every boat is placed."""
        if self.finished:
            return None
        return self.board.boats[self.current_index]

    @property
    def candidate_valid(self) -> bool:
        boat = self.current
        return boat is not None and self.board.can_place(boat)

    # ------------------------------------------------------------------
    # Per-tick update
    # ------------------------------------------------------------------
    def advance(self, dx: int, dy: int, button_down: bool, now: int) -> bool:
        """Apply one tick of input; return True when placement just finished."""
        boat = self.current
        if boat is None:
            return False

        if dx or dy:
            boat.x += dx
            boat.y += dy
            self.board.clamp_to_board(boat)

        just_finished = False
        if button_down and not self._button_was_down:
            self._pressed_at = now
        elif not button_down and self._button_was_down and self._pressed_at is not None:
            held = now - self._pressed_at
            self._pressed_at = None
            if held < self.long_press_ms:
                self._rotate(boat)
            else:
                just_finished = self._confirm(boat)
        self._button_was_down = button_down
        return just_finished

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _center(self, boat: Boat) -> None:
        boat.orientation = Orientation.HORIZONTAL
        w, h = boat.span
        boat.x = (self.board.width - w) // 2
        boat.y = (self.board.height - h) // 2
        self.board.clamp_to_board(boat)

    def _rotate(self, boat: Boat) -> None:
        boat.orientation = boat.orientation.flipped()
        self.board.clamp_to_board(boat)
        logger.debug("Boat %d rotated to %s", self.current_index, boat.orientation.name)

    def _confirm(self, boat: Boat) -> bool:
        try:
            self.board.place(boat)
        except InvalidPlacement as e:
            # user must move the boat and try again
            logger.debug("Boat %d rejected: %s", self.current_index, e)
            return False
        logger.info(
            "Boat %d placed at (%d,%d) %s", self.current_index, boat.x, boat.y, boat.orientation.name
        )
        self.current_index += 1
        if self.current_index >= len(self.board.boats):
            self.finished = True
            logger.info("All boats placed")
            return True
        self._center(self.board.boats[self.current_index])
        return False
