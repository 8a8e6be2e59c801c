from .tiles import Grid, Position, Tile
from .pathfinding import chebyshev_distance, find_path

__all__ = ["Grid", "Position", "Tile", "chebyshev_distance", "find_path"]
