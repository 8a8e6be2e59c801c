from __future__ import annotations

import logging
from enum import IntEnum
from typing import Iterable, List, Set, Tuple

from ..dungeon.tiles import Grid, Position
from .fov import compute_grid_fov

logger = logging.getLogger(__name__)


class Visibility(IntEnum):
    HIDDEN = 0      # never seen
    EXPLORED = 1    # seen before but not currently visible
    VISIBLE = 2     # currently visible


class VisibilityMap:
    """
    Per-tile visibility memory over a Grid.

    Responsibilities:
    - Marks the tiles currently in the player's field of view as VISIBLE.
    - Demotes previously visible tiles to EXPLORED; EXPLORED never reverts to HIDDEN.
    - Supports a reveal-all override for debugging.

    The state matrix always has the same dimensions as the grid.
    """

    def __init__(self, grid: Grid) -> None:
        self.grid = grid
        self._states: List[List[Visibility]] = [
            [Visibility.HIDDEN for _ in range(grid.width)] for _ in range(grid.height)
        ]
        self._visible: Set[Position] = set()

    @property
    def width(self) -> int:
        return self.grid.width

    @property
    def height(self) -> int:
        return self.grid.height

    def apply(self, visible: Iterable[Tuple[int, int]]) -> None:
        """Replace the current VISIBLE set; everything visible before becomes EXPLORED."""
        for x, y in self._visible:
            self._states[y][x] = Visibility.EXPLORED
        self._visible = set()
        for x, y in visible:
            if self.grid.in_bounds(x, y):
                self._states[y][x] = Visibility.VISIBLE
                self._visible.add(Position(x, y))

    def update(self, viewer: Tuple[int, int], radius: int) -> Set[Position]:
        """Recompute visibility from ``viewer`` and return the newly visible tiles."""
        visible = compute_grid_fov(self.grid, viewer, radius)
        self.apply(visible)
        logger.debug("Visibility updated at %s radius %d; %d visible tiles", viewer, radius, len(self._visible))
        return set(self._visible)

    def reveal_all(self) -> None:
        """Debug: mark the whole map VISIBLE."""
        self._visible = {Position(x, y) for y in range(self.height) for x in range(self.width)}
        for row in self._states:
            for x in range(len(row)):
                row[x] = Visibility.VISIBLE
        logger.debug("VisibilityMap revealed all tiles")

    def get(self, x: int, y: int) -> Visibility:
        if not self.grid.in_bounds(x, y):
            return Visibility.HIDDEN
        return self._states[y][x]

    def visible_tiles(self) -> Set[Position]:
        return set(self._visible)

    def explored_tiles(self) -> Set[Position]:
        return {
            Position(x, y)
            for y in range(self.height)
            for x in range(self.width)
            if self._states[y][x] != Visibility.HIDDEN
        }

    def states(self) -> List[List[Visibility]]:
        return [row[:] for row in self._states]
