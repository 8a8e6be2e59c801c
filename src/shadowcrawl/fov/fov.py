from __future__ import annotations

import logging
import math
from typing import Callable, Optional, Set, Tuple

from ..dungeon.tiles import Grid, Position

logger = logging.getLogger(__name__)

BlockingFn = Callable[[Position], bool]
BoundsFn = Callable[[Position], bool]

# Octant transforms: (xx, xy, yx, yy) map a local (column j, depth d) pair to
# map offsets dx = j*xx + d*xy, dy = j*yx + d*yy.
# Order: N, NE, E, SE, S, SW, W, NW.
OCTANTS: Tuple[Tuple[int, int, int, int], ...] = (
    (1, 0, 0, -1),
    (0, 1, -1, 0),
    (0, 1, 1, 0),
    (1, 0, 0, 1),
    (-1, 0, 0, 1),
    (0, -1, 1, 0),
    (0, -1, -1, 0),
    (-1, 0, 0, -1),
)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def compute_fov(
    origin: Tuple[int, int],
    radius: int,
    is_blocking: BlockingFn,
    in_bounds: Optional[BoundsFn] = None,
) -> Set[Position]:
    """
    Recursive shadow-casting field of view.

    Each of the 8 octants is scanned row by row (depth 1..radius), narrowing the
    visible slope interval around blockers. A scanned tile counts as visible when
    its Euclidean distance from the origin is within ``radius``, even if it turns
    out to be a blocker; blockers only decide which rows are scanned further.

    When ``in_bounds`` is given, tiles it rejects are skipped entirely.
    The origin is always visible.
    """
    if radius < 0:
        raise ValueError("radius must be >= 0")
    ox, oy = origin
    visible: Set[Position] = {Position(ox, oy)}

    def scan(depth: int, octant: Tuple[int, int, int, int], start_slope: float, end_slope: float) -> None:
        if start_slope < end_slope or depth > radius:
            return
        xx, xy, yx, yy = octant
        prev_blocking: Optional[bool] = None
        max_j = _round_half_up(depth * start_slope)
        min_j = _round_half_up(depth * end_slope)
        for j in range(max_j, min_j - 1, -1):
            pos = Position(ox + j * xx + depth * xy, oy + j * yx + depth * yy)
            if in_bounds is not None and not in_bounds(pos):
                continue
            if math.sqrt(j * j + depth * depth) <= radius:
                visible.add(pos)
            blocking = is_blocking(pos)
            if prev_blocking is False and blocking:
                scan(depth + 1, octant, start_slope, (j + 0.5) / (depth - 0.5))
            if prev_blocking is True and not blocking:
                start_slope = (j + 0.5) / (depth + 0.5)
            prev_blocking = blocking
        if prev_blocking is False:
            scan(depth + 1, octant, start_slope, end_slope)

    for octant in OCTANTS:
        scan(1, octant, 1.0, 0.0)

    logger.debug("FOV from (%d,%d) radius %d -> %d visible tiles", ox, oy, radius, len(visible))
    return visible


def compute_grid_fov(grid: Grid, origin: Tuple[int, int], radius: int) -> Set[Position]:
    """Field of view on a tile grid: walls block, off-map tiles are skipped."""
    return compute_fov(
        origin,
        radius,
        lambda p: grid.is_wall(p.x, p.y),
        lambda p: grid.in_bounds(p.x, p.y),
    )


__all__ = ["OCTANTS", "compute_fov", "compute_grid_fov"]
