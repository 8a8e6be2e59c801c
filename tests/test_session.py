import pytest

from shadowcrawl.config import DebugOptions, Settings
from shadowcrawl.dungeon.generator import DungeonData
from shadowcrawl.dungeon.tiles import Grid, Position
from shadowcrawl.fov.los import has_line_of_sight
from shadowcrawl.fov.visibility import Visibility, VisibilityMap
from shadowcrawl.game.actions import Action
from shadowcrawl.game.entities import Enemy
from shadowcrawl.game.events import GameEvent
from shadowcrawl.game.session import WELCOME_MESSAGE, GameSession
from shadowcrawl.rng import RandomSource


@pytest.fixture
def small_settings():
    return Settings.from_dict({"map": {"width": 32, "height": 32}})


def test_new_session_starts_with_welcome_and_visible_player(small_settings):
    session = GameSession.new(small_settings, seed=5)
    first = session.log.entries()[0]
    assert (first.turn, first.text, first.tags) == (0, WELCOME_MESSAGE, ("info",))
    assert session.turn == 1
    assert session.player.health == 100
    assert session.visibility.get(*session.player.pos) == Visibility.VISIBLE
    assert not session.game_over


def test_same_seed_gives_same_session(small_settings):
    a = GameSession.new(small_settings, seed="abc")
    b = GameSession.new(small_settings, seed="abc")
    assert a.state == b.state
    for action in (Action.WAIT, Action.WAIT, Action.WAIT):
        a.act(action)
        b.act(action)
    assert a.state == b.state


def test_wait_adds_turn_separator_and_notifies_listeners(small_settings):
    session = GameSession.new(small_settings, seed=5)
    events = []
    session.add_listener(lambda event, s: events.append(event))

    outcome = session.act(Action.WAIT)
    assert outcome.accepted
    entries = session.log.entries()
    assert entries[1].text == "--- Turn 1 ---"
    assert entries[1].is_separator
    assert entries[2].text == "You wait a turn."
    assert session.turn == 2
    assert GameEvent.TURN_RESOLVED in events
    assert GameEvent.PLAYER_MOVED not in events


def test_reveal_map_marks_everything_visible(small_settings):
    session = GameSession.new(small_settings, seed=5)
    session.set_debug_options(DebugOptions(reveal_map=True))
    assert all(v == Visibility.VISIBLE for row in session.visibility.states() for v in row)


def test_overlay_only_exposes_enabled_layers(small_settings):
    session = GameSession.new(small_settings, seed=5)
    overlay = session.overlay()
    assert overlay.enemy_states == {} and overlay.enemy_paths == {} and overlay.enemy_vision == frozenset()

    session.set_debug_options(DebugOptions(show_enemy_states=True, show_enemy_vision=True))
    session.act(Action.WAIT)
    overlay = session.overlay()
    assert set(overlay.enemy_states) == {e.id for e in session.state.enemies}
    if session.state.enemies:
        assert overlay.enemy_vision
    assert overlay.enemy_paths == {}


def test_visibility_map_demotes_to_explored():
    grid = Grid.from_ascii(
        [
            "##########",
            "#........#",
            "######.###",
            "#........#",
            "##########",
        ]
    )
    vis = VisibilityMap(grid)
    assert vis.get(1, 1) == Visibility.HIDDEN
    vis.update((1, 1), 3)
    assert vis.get(1, 1) == Visibility.VISIBLE
    assert vis.get(8, 1) == Visibility.HIDDEN

    vis.update((6, 3), 3)
    assert vis.get(6, 3) == Visibility.VISIBLE
    assert vis.get(1, 1) == Visibility.EXPLORED
    # explored tiles never fall back to hidden
    vis.update((8, 3), 1)
    assert vis.get(1, 1) == Visibility.EXPLORED
    assert vis.get(-1, 0) == Visibility.HIDDEN
    assert len(vis.states()) == grid.height and len(vis.states()[0]) == grid.width


def test_visibility_apply_ignores_off_map_tiles():
    vis = VisibilityMap(Grid(3, 3))
    vis.apply([(0, 0), (5, 5)])
    assert vis.visible_tiles() == {(0, 0)}
    assert vis.explored_tiles() == {(0, 0)}


def session_on(rows, player, enemies, debug=None):
    grid = Grid.from_ascii(rows)
    dungeon = DungeonData(grid, Position(*player), tuple(Enemy.spawn(i, Position(*p), 20) for i, p in enumerate(enemies)))
    settings = Settings.from_dict({"map": {"width": grid.width, "height": grid.height}})
    session = GameSession(settings, dungeon, RandomSource(1))
    if debug is not None:
        session.set_debug_options(debug)
    return session


def test_visible_enemies_need_a_visible_tile_and_a_clear_ray():
    rows = [
        "#########",
        "#.......#",
        "#########",
        "#.......#",
        "#########",
    ]
    session = session_on(rows, (1, 1), [(5, 1), (4, 3)])
    assert [e.id for e in session.visible_enemies()] == [0]

    session.set_debug_options(DebugOptions(reveal_map=True))
    assert [e.id for e in session.visible_enemies()] == [0, 1]


def test_adjacent_enemy_is_seen_across_a_wall_corner():
    rows = [
        ".#.",
        "#..",
        "...",
    ]
    session = session_on(rows, (0, 0), [(1, 1)])
    assert not has_line_of_sight((0, 0), (1, 1), session.state.grid)
    assert [e.id for e in session.visible_enemies()] == [0]


def test_enemy_beyond_vision_radius_is_not_seen():
    rows = [
        "############",
        "#..........#",
        "############",
    ]
    session = session_on(rows, (1, 1), [(9, 1)])
    # radius 6 from x=1 stops short of x=9
    assert session.visibility.get(9, 1) == Visibility.HIDDEN
    assert session.visible_enemies() == []


def test_generated_seed_reproduces_the_session(small_settings):
    first = GameSession.new(small_settings)
    assert isinstance(first.seed, str) and first.seed.startswith("0x")

    again = GameSession.new(small_settings, seed=first.seed)
    assert again.seed == first.seed
    assert again.state == first.state


def test_given_seed_is_reported_unchanged(small_settings):
    assert GameSession.new(small_settings, seed=5).seed == 5
