from __future__ import annotations

from collections import deque
from typing import List, Optional

from .tiles import Grid, Position, Tile

Region = List[Position]


def find_regions(grid: Grid, tile: Tile = Tile.FLOOR) -> List[Region]:
    """Partition every ``tile`` cell into maximal 4-connected regions.

    Regions are returned in scan order (row by row) and each region lists its
    cells in flood-fill order, so results are stable for identical grids.
    """
    visited = [[False] * grid.width for _ in range(grid.height)]
    regions: List[Region] = []
    for y in range(grid.height):
        for x in range(grid.width):
            if visited[y][x] or grid.tiles[y][x] != tile:
                continue
            region: Region = []
            q = deque([Position(x, y)])
            visited[y][x] = True
            while q:
                current = q.popleft()
                region.append(current)
                for nx, ny in grid.neighbors4(*current):
                    if not visited[ny][nx] and grid.tiles[ny][nx] == tile:
                        visited[ny][nx] = True
                        q.append(Position(nx, ny))
            regions.append(region)
    return regions


def largest_region(grid: Grid, tile: Tile = Tile.FLOOR) -> Optional[Region]:
    """Return the biggest region of ``tile`` cells (first found wins ties), or None."""
    best: Optional[Region] = None
    for region in find_regions(grid, tile):
        if best is None or len(region) > len(best):
            best = region
    return best
