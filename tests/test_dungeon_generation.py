import math

import pytest

from shadowcrawl.config import GameplaySettings, Settings
from shadowcrawl.dungeon.generator import DungeonGenerator, Room
from shadowcrawl.dungeon.regions import find_regions
from shadowcrawl.dungeon.tiles import Grid, Position, Tile
from shadowcrawl.game.entities import EnemyState
from shadowcrawl.rng import RNGManager


def make_generator(seed, width=40, height=40):
    rng = RNGManager(seed).context_rng("dungeon_layout")
    return DungeonGenerator(width, height, rng)


def region_of(grid, pos):
    for region in find_regions(grid, Tile.FLOOR):
        if pos in region:
            return set(region)
    return set()


@pytest.mark.parametrize("seed", [1, 7, 42, "crypt", 2024])
def test_generated_dungeon_invariants(seed):
    gen = make_generator(seed)
    data = gen.run()
    grid = data.map
    vision = GameplaySettings().player_vision_radius

    assert grid.is_floor(*data.player_start)
    main = region_of(grid, data.player_start)
    ids = [e.id for e in data.enemies_start]
    assert ids == list(range(len(ids)))
    for enemy in data.enemies_start:
        assert grid.is_floor(*enemy.pos)
        assert enemy.pos in main
        assert math.hypot(enemy.pos.x - data.player_start.x, enemy.pos.y - data.player_start.y) > vision + 2
        assert enemy.state is EnemyState.PATROLLING
        assert enemy.patrol_center == enemy.pos
        assert enemy.path is None and enemy.last_known_player_pos is None
        assert enemy.health == GameplaySettings().enemy_initial_health
    assert len(data.enemies_start) <= GameplaySettings().max_enemies
    assert len({e.pos for e in data.enemies_start}) == len(data.enemies_start)

    # Border stays solid
    for x in range(grid.width):
        assert grid.is_wall(x, 0) and grid.is_wall(x, grid.height - 1)
    for y in range(grid.height):
        assert grid.is_wall(0, y) and grid.is_wall(grid.width - 1, y)


def test_progress_checkpoints_are_ordered_and_only_last_has_result():
    gen = make_generator(5)
    events = list(gen.generate())
    assert [e.percent for e in events] == [5, 15, 30, 70, 90, 95, 100]
    assert events[0].message == "Planning rooms..."
    assert events[-1].message == "Done!"
    assert all(e.result is None for e in events[:-1])
    assert events[-1].done
    assert events[-1].result is gen.result


def test_generation_run_is_step_wise_and_not_restartable():
    gen = make_generator(9)
    run = gen.generate()
    first = run.step()
    assert first.percent == 5
    # Announcing a stage does not run it yet
    assert gen.rooms == []
    run.step()
    assert gen.rooms
    while run.step() is not None:
        pass
    assert run.finished
    assert run.step() is None
    with pytest.raises(RuntimeError):
        gen.generate()


def test_same_seed_same_dungeon():
    a = make_generator("same").run()
    b = make_generator("same").run()
    assert a.map == b.map
    assert a.player_start == b.player_start
    assert a.enemies_start == b.enemies_start


def test_fixed_zero_rng_never_seeds_floor(fixed_rng):
    gen = DungeonGenerator(10, 10, fixed_rng(0.0))
    gen.seed_caves()
    assert gen.grid.positions(Tile.FLOOR) == []


def test_high_draws_open_every_interior_tile(fixed_rng):
    gen = DungeonGenerator(10, 10, fixed_rng(0.99))
    gen.seed_caves()
    floors = set(gen.grid.positions(Tile.FLOOR))
    assert floors == {Position(x, y) for y in range(1, 9) for x in range(1, 9)}


def test_smoothing_fills_isolated_floor_and_opens_isolated_wall(fixed_rng):
    gen = DungeonGenerator(5, 5, fixed_rng(0.0))
    gen.grid.set(2, 2, Tile.FLOOR)
    gen.smooth_caves()
    assert gen.grid.positions(Tile.FLOOR) == []

    gen = DungeonGenerator(7, 7, fixed_rng(0.0))
    gen.grid = Grid(7, 7, Tile.FLOOR)
    gen.grid.set(3, 3, Tile.WALL)
    gen.smooth_caves()
    assert gen.grid.positions(Tile.WALL) == []


def test_large_room_is_split_with_a_single_door(fixed_rng):
    gen = DungeonGenerator(12, 12, fixed_rng(0.0))
    gen.rooms = [Room(1, 1, 10, 10)]
    gen.build_rooms()
    # Split line at room.y + 2 with its door at the first column
    row = [gen.grid.get(x, 3) for x in range(1, 11)]
    assert row[0] == Tile.FLOOR
    assert all(t == Tile.WALL for t in row[1:])
    # Halves are below the subdivision size, so no further splits
    assert all(gen.grid.is_floor(x, y) for y in (1, 2) for x in range(1, 11))
    assert all(gen.grid.is_floor(x, y) for y in range(4, 11) for x in range(1, 11))


def test_rooms_respect_margin_and_spacing():
    gen = make_generator(11, 64, 64)
    rooms = gen.place_rooms()
    assert 1 <= len(rooms) <= gen.generation.max_rooms
    for i, room in enumerate(rooms):
        assert room.x >= 1 and room.y >= 1
        assert room.x + room.width <= gen.width - 2
        assert room.y + room.height <= gen.height - 2
        for other in rooms[i + 1:]:
            assert not room.intersects(other, padding=1)


def test_tiny_map_without_rooms_still_completes():
    gen = make_generator(3, 4, 4)
    data = gen.run()
    assert gen.rooms == []
    assert data.map.is_floor(*data.player_start)


def test_no_floor_falls_back_to_fixed_spawn(fixed_rng):
    gen = DungeonGenerator(6, 6, fixed_rng(0.0))
    data = gen.place_entities()
    assert data.player_start == Position(1, 1)
    assert data.enemies_start == ()
    assert data.map.is_floor(1, 1)


def test_tunnel_walks_x_first_when_coin_favours_x(fixed_rng):
    gen = DungeonGenerator(6, 6, fixed_rng(0.0))
    gen.carve_tunnel(Position(1, 1), Position(4, 3))
    assert set(gen.grid.positions(Tile.FLOOR)) == {
        Position(2, 1),
        Position(3, 1),
        Position(4, 1),
        Position(4, 2),
        Position(4, 3),
    }


def test_connect_regions_joins_separate_caves():
    gen = make_generator(21, 12, 5)
    gen.grid = Grid.from_ascii(
        [
            "############",
            "#....##....#",
            "#....##....#",
            "#....##....#",
            "############",
        ]
    )
    assert gen.connect_regions() == 1
    assert len(find_regions(gen.grid)) == 1


def test_small_regions_are_left_alone():
    gen = make_generator(21, 8, 4)
    gen.grid = Grid.from_ascii(
        [
            "########",
            "#..##..#",
            "#..##..#",
            "########",
        ]
    )
    assert gen.connect_regions() == 0
    assert len(find_regions(gen.grid)) == 2


def test_diagonal_checkerboard_is_opened(fixed_rng):
    gen = DungeonGenerator(4, 4, fixed_rng(0.0))
    gen.grid = Grid.from_ascii(
        [
            "####",
            "#.##",
            "##.#",
            "####",
        ]
    )
    assert gen.remove_diagonal_passages() == 1
    assert gen.grid.is_floor(2, 1)
    assert len(find_regions(gen.grid)) == 1


def test_generator_from_settings_uses_map_size():
    settings = Settings.from_dict({"map": {"width": 30, "height": 20}})
    gen = DungeonGenerator.from_settings(settings, RNGManager(1).context_rng("dungeon_layout"))
    data = gen.run()
    assert (data.map.width, data.map.height) == (30, 20)
