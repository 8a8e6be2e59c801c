from .fov import compute_fov, compute_grid_fov
from .los import has_line_of_sight
from .visibility import Visibility, VisibilityMap

__all__ = ["Visibility", "VisibilityMap", "compute_fov", "compute_grid_fov", "has_line_of_sight"]
