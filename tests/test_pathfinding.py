from shadowcrawl.dungeon.pathfinding import can_step, chebyshev_distance, find_path
from shadowcrawl.dungeon.tiles import Grid, Position, Tile


def assert_contiguous(start, path):
    prev = Position(*start)
    for step in path:
        assert chebyshev_distance(prev, step) == 1
        prev = step


def test_open_grid_takes_pure_diagonal(open_grid):
    path = find_path((0, 0), (4, 4), open_grid(5, 5))
    assert path == [Position(1, 1), Position(2, 2), Position(3, 3), Position(4, 4)]


def test_open_grid_length_matches_chebyshev(open_grid):
    grid = open_grid(9, 6)
    for start, end in [((0, 0), (8, 2)), ((7, 5), (1, 0)), ((3, 3), (3, 0))]:
        path = find_path(start, end, grid)
        assert len(path) == chebyshev_distance(start, end)
        assert path[-1] == Position(*end)
        assert_contiguous(start, path)


def test_same_tile_gives_empty_path(open_grid):
    assert find_path((2, 2), (2, 2), open_grid()) == []


def test_wall_target_or_unreachable_gives_none():
    grid = Grid.from_ascii(
        [
            "..#..",
            "..#..",
            "..#..",
        ]
    )
    assert find_path((0, 0), (2, 1), grid) is None
    assert find_path((0, 0), (4, 2), grid) is None
    assert find_path((0, 0), (9, 9), grid) is None


def test_no_squeezing_between_two_corner_walls():
    grid = Grid.from_ascii(
        [
            ".#",
            "#.",
        ]
    )
    assert not can_step(grid, 0, 0, 1, 1)
    assert find_path((0, 0), (1, 1), grid) is None


def test_diagonal_allowed_with_one_open_flank():
    grid = Grid.from_ascii(
        [
            "..",
            "#.",
        ]
    )
    assert can_step(grid, 0, 0, 1, 1)
    assert find_path((0, 0), (1, 1), grid) == [Position(1, 1)]


def test_path_routes_around_walls_without_cutting_corners():
    rows = [
        "......",
        ".####.",
        ".#..#.",
        ".#..#.",
        "...##.",
    ]
    grid = Grid.from_ascii(rows)
    path = find_path((0, 0), (3, 3), grid)
    assert path is not None
    assert path[-1] == Position(3, 3)
    assert_contiguous((0, 0), path)
    prev = Position(0, 0)
    for step in path:
        assert grid.is_floor(*step)
        dx, dy = step.x - prev.x, step.y - prev.y
        if dx and dy:
            assert grid.is_floor(prev.x + dx, prev.y) or grid.is_floor(prev.x, prev.y + dy)
        prev = step


def test_search_is_deterministic(open_grid):
    grid = open_grid(8, 8)
    grid.set(3, 3, Tile.WALL)
    grid.set(4, 3, Tile.WALL)
    assert find_path((0, 0), (7, 5), grid) == find_path((0, 0), (7, 5), grid)
