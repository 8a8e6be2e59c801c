from __future__ import annotations

import heapq
import logging
from itertools import count
from typing import Dict, List, Optional, Tuple

from .tiles import Grid, Position

logger = logging.getLogger(__name__)

# Row-major neighbour order; kept fixed so equal-cost searches stay reproducible.
_DIRECTIONS = tuple((dx, dy) for dy in (-1, 0, 1) for dx in (-1, 0, 1) if (dx, dy) != (0, 0))


def chebyshev_distance(a: Tuple[int, int], b: Tuple[int, int]) -> int:
    return max(abs(a[0] - b[0]), abs(a[1] - b[1]))


def can_step(grid: Grid, x: int, y: int, dx: int, dy: int) -> bool:
    """Whether a single 8-directional step from (x, y) by (dx, dy) is legal.

    The destination must be floor. A diagonal step is refused when both
    orthogonal cells flanking it are walls (no squeezing through a corner).
    """
    if not grid.is_floor(x + dx, y + dy):
        return False
    if dx != 0 and dy != 0:
        if grid.is_wall(x + dx, y) and grid.is_wall(x, y + dy):
            return False
    return True


def find_path(start: Tuple[int, int], end: Tuple[int, int], grid: Grid) -> Optional[List[Position]]:
    """A* search over the 8-connected grid.

    Every move costs 1 and the heuristic is Chebyshev distance. Among open nodes
    with equal f-score the one discovered first is expanded first.

    Returns the steps from (excluding) ``start`` to (including) ``end``, an empty
    list when ``start == end``, or None when ``end`` is not floor or unreachable.
    """
    start = Position(*start)
    end = Position(*end)
    if not grid.is_floor(*end):
        return None

    order = count()
    # Heap entries: (f, discovery order, g, position). A node keeps its discovery
    # order when its g improves, matching an insertion-ordered open list.
    first_seen: Dict[Position, int] = {start: next(order)}
    best_g: Dict[Position, int] = {start: 0}
    parents: Dict[Position, Position] = {}
    open_heap: List[Tuple[int, int, int, Position]] = [
        (chebyshev_distance(start, end), first_seen[start], 0, start)
    ]
    closed = set()

    while open_heap:
        _, _, g, current = heapq.heappop(open_heap)
        if current in closed or g != best_g[current]:
            continue
        closed.add(current)

        if current == end:
            path: List[Position] = []
            while current in parents:
                path.append(current)
                current = parents[current]
            path.reverse()
            logger.debug("Path %s -> %s found: %d steps, %d nodes closed", start, end, len(path), len(closed))
            return path

        x, y = current
        for dx, dy in _DIRECTIONS:
            if not can_step(grid, x, y, dx, dy):
                continue
            neighbor = Position(x + dx, y + dy)
            if neighbor in closed:
                continue
            ng = g + 1
            if neighbor in best_g and ng >= best_g[neighbor]:
                continue
            best_g[neighbor] = ng
            parents[neighbor] = current
            if neighbor not in first_seen:
                first_seen[neighbor] = next(order)
            heapq.heappush(open_heap, (ng + chebyshev_distance(neighbor, end), first_seen[neighbor], ng, neighbor))

    logger.debug("No path %s -> %s (%d nodes closed)", start, end, len(closed))
    return None


__all__ = ["can_step", "chebyshev_distance", "find_path"]
