"""
board.py

Core data structures for one player's side of the game:
 - Boat: a straight run of cells anchored at its top-left cell
 - Board: the local fleet plus the occupancy and incoming-hit grids
 - OpponentGrid: what this player has learned about the opponent's board,
   built only from RESULT messages about its own shots

Grids are numpy arrays indexed ``[x, y]`` with shape ``(width, height)``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np

from .errors import InvalidPlacement

Cell = Tuple[int, int]


class Orientation(enum.Enum):
    HORIZONTAL = 0
    VERTICAL = 1

    def flipped(self) -> "Orientation":
        return Orientation.VERTICAL if self is Orientation.HORIZONTAL else Orientation.HORIZONTAL


@dataclass
class Boat:
    """A boat of *length* cells whose anchor is its top-left cell."""

    length: int
    x: int = 0
    y: int = 0
    orientation: Orientation = Orientation.HORIZONTAL
    placed: bool = False

    @property
    def span(self) -> Tuple[int, int]:
        """Extent of the boat as (cells along x, cells along y)."""
        if self.orientation is Orientation.HORIZONTAL:
            return self.length, 1
        return 1, self.length

    def cells(self) -> Iterator[Cell]:
        dx, dy = (1, 0) if self.orientation is Orientation.HORIZONTAL else (0, 1)
        for i in range(self.length):
            yield self.x + dx * i, self.y + dy * i


class Board:
    """
    Represents the local player's board.

    We store:
      - self.boats: every boat of the fleet, in placement order; unplaced
        boats are still being positioned by the placement engine
      - self.occupied: True where a *placed* boat sits (cache of self.boats)
      - self.hit_received: True where the opponent has struck one of our boats

    Each node adjudicates shots against its own Board only; the opponent never
    sees it.
    """

    def __init__(self, width: int, height: int):
        """Initialise an empty *width*×*height* board with no boats."""
        self.width = width
        self.height = height
        self.boats: list[Boat] = []
        self.occupied = np.zeros((width, height), dtype=bool)
        self.hit_received = np.zeros((width, height), dtype=bool)

    def reset(self) -> None:
        """Forget every boat and clear both grids."""
        self.boats.clear()
        self.occupied[:] = False
        self.hit_received[:] = False

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def fits(self, boat: Boat) -> bool:
        """Return True if every cell of *boat* lies on the board."""
        return all(self.in_bounds(x, y) for x, y in boat.cells())

    def can_place(self, boat: Boat) -> bool:
        """Return True if *boat* fits and overlaps no placed boat."""
        if not self.fits(boat):
            return False
        return not any(self.occupied[x, y] for x, y in boat.cells())

    def place(self, boat: Boat) -> None:
        """Commit *boat*: mark its cells occupied and freeze it.

        Raises InvalidPlacement when the boat leaves the board or overlaps
        a boat that is already placed.
        """
        if boat.placed:
            raise InvalidPlacement("boat is already placed")
        if not self.fits(boat):
            raise InvalidPlacement(f"boat at ({boat.x},{boat.y}) leaves the board")
        if not self.can_place(boat):
            raise InvalidPlacement(f"boat at ({boat.x},{boat.y}) overlaps a placed boat")
        for x, y in boat.cells():
            self.occupied[x, y] = True
        boat.placed = True

    def clamp_to_board(self, boat: Boat) -> None:
        """Pull *boat* back onto the board for its current orientation.

        Movement never fails; confirmation (place) is where invalid
        positions are rejected.
        """
        w, h = boat.span
        boat.x = max(0, min(boat.x, self.width - w))
        boat.y = max(0, min(boat.y, self.height - h))

    def boat_at(self, x: int, y: int) -> int | None:
        """Index of the placed boat covering (*x*, *y*), if any."""
        for idx, boat in enumerate(self.boats):
            if boat.placed and (x, y) in set(boat.cells()):
                return idx
        return None

    def is_sunk(self, index: int) -> bool:
        boat = self.boats[index]
        return boat.placed and all(self.hit_received[x, y] for x, y in boat.cells())

    def all_sunk(self) -> bool:
        """Return True if every placed boat has been sunk."""
        placed = [i for i, b in enumerate(self.boats) if b.placed]
        return bool(placed) and all(self.is_sunk(i) for i in placed)


class Knowledge(enum.IntEnum):
    UNKNOWN = 0
    MISS = 1
    HIT = 2
    SUNK = 3


class OpponentGrid:
    """Outcomes of our own shots against the opponent's board."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.cells = np.full((width, height), Knowledge.UNKNOWN, dtype=np.int8)

    def reset(self) -> None:
        self.cells[:] = Knowledge.UNKNOWN

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get(self, x: int, y: int) -> Knowledge:
        return Knowledge(int(self.cells[x, y]))

    def mark(self, x: int, y: int, value: Knowledge) -> None:
        """Record *value* at (*x*, *y*); SUNK cells never change again."""
        if self.get(x, y) is Knowledge.SUNK:
            return
        self.cells[x, y] = value

    def count(self, value: Knowledge) -> int:
        return int(np.count_nonzero(self.cells == value))
