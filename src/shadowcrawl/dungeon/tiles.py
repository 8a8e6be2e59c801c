from __future__ import annotations

import logging
from enum import IntEnum
from typing import Iterable, Iterator, List, NamedTuple, Sequence

logger = logging.getLogger(__name__)


class Tile(IntEnum):
    FLOOR = 0
    WALL = 1


class Position(NamedTuple):
    """Integer tile coordinate. (0,0) is top-left; x grows right, y grows down."""

    x: int
    y: int


WALL_CHARS = ("#",)


class Grid:
    """
    Fixed-size tile map shared by generation, vision and pathfinding.

    Tiles are stored row-major as ``tiles[y][x]``. Every query treats
    out-of-bounds coordinates as WALL instead of failing, so callers never need
    to bounds-check before asking.
    """

    def __init__(self, width: int, height: int, fill: Tile = Tile.WALL) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("Grid width/height must be > 0")
        self.width = width
        self.height = height
        self.tiles: List[List[Tile]] = [[fill for _ in range(width)] for _ in range(height)]

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get(self, x: int, y: int) -> Tile:
        if not self.in_bounds(x, y):
            return Tile.WALL
        return self.tiles[y][x]

    def is_floor(self, x: int, y: int) -> bool:
        return self.get(x, y) == Tile.FLOOR

    def is_wall(self, x: int, y: int) -> bool:
        return self.get(x, y) == Tile.WALL

    def set(self, x: int, y: int, tile: Tile) -> None:
        """Set a tile; writes outside the map are ignored."""
        if self.in_bounds(x, y):
            self.tiles[y][x] = tile

    def neighbors4(self, x: int, y: int) -> Iterator[Position]:
        for dx, dy in ((0, 1), (0, -1), (1, 0), (-1, 0)):
            nx, ny = x + dx, y + dy
            if self.in_bounds(nx, ny):
                yield Position(nx, ny)

    def count_walls_around(self, x: int, y: int) -> int:
        """Number of WALL tiles among the 8 cells surrounding (x, y)."""
        count = 0
        for ny in (y - 1, y, y + 1):
            for nx in (x - 1, x, x + 1):
                if nx == x and ny == y:
                    continue
                if self.is_wall(nx, ny):
                    count += 1
        return count

    def positions(self, tile: Tile) -> List[Position]:
        return [Position(x, y) for y in range(self.height) for x in range(self.width) if self.tiles[y][x] == tile]

    def copy(self) -> "Grid":
        clone = Grid(self.width, self.height)
        clone.tiles = [row[:] for row in self.tiles]
        return clone

    @classmethod
    def from_ascii(cls, rows: Sequence[str], wall_chars: Iterable[str] = WALL_CHARS) -> "Grid":
        """
        Build a Grid from ASCII rows for tests/tools.
        Any char in wall_chars is WALL; everything else is FLOOR.
        """
        if not rows:
            raise ValueError("rows must not be empty")
        width = len(rows[0])
        for r in rows:
            if len(r) != width:
                raise ValueError("All rows must be same width")
        grid = cls(width, len(rows))
        wall_set = set(wall_chars)
        for y, row in enumerate(rows):
            for x, ch in enumerate(row):
                grid.tiles[y][x] = Tile.WALL if ch in wall_set else Tile.FLOOR
        return grid

    def to_ascii(self) -> List[str]:
        return ["".join("#" if t == Tile.WALL else "." for t in row) for row in self.tiles]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grid):
            return NotImplemented
        return self.width == other.width and self.height == other.height and self.tiles == other.tiles

    def __repr__(self) -> str:
        return f"Grid({self.width}x{self.height})"
