from __future__ import annotations

import logging
import math
from typing import Iterator, Tuple

from ..dungeon.tiles import Grid, Position

logger = logging.getLogger(__name__)


def traverse(start: Tuple[int, int], end: Tuple[int, int]) -> Iterator[Position]:
    """
    Yield every cell a ray from the center of ``start`` to the center of ``end``
    passes through, excluding ``start`` and including ``end``.

    Amanatides & Woo grid traversal: unlike Bresenham it never skips a cell the
    ray touches, so it cannot slip between two walls that share a corner.
    When both axes cross a boundary at the same time, the y axis is stepped.
    """
    x, y = start
    ex, ey = end
    dx = ex - x
    dy = ey - y
    if dx == 0 and dy == 0:
        return

    step_x = (dx > 0) - (dx < 0)
    step_y = (dy > 0) - (dy < 0)
    t_delta_x = abs(1.0 / dx) if dx != 0 else math.inf
    t_delta_y = abs(1.0 / dy) if dy != 0 else math.inf
    # Rays start at tile centers, so the first boundary is half a cell away.
    t_max_x = 0.5 * t_delta_x
    t_max_y = 0.5 * t_delta_y

    while x != ex or y != ey:
        if t_max_x < t_max_y:
            t_max_x += t_delta_x
            x += step_x
        else:
            t_max_y += t_delta_y
            y += step_y
        yield Position(x, y)


def has_line_of_sight(start: Tuple[int, int], end: Tuple[int, int], grid: Grid) -> bool:
    """True when no intermediate cell between ``start`` and ``end`` is a wall.

    The endpoints themselves are not checked; off-map cells count as walls.
    """
    end = Position(*end)
    for cell in traverse(start, end):
        if cell == end:
            break
        if grid.is_wall(cell.x, cell.y):
            logger.debug("LoS blocked at %s between %s -> %s", cell, start, end)
            return False
    return True


__all__ = ["has_line_of_sight", "traverse"]
