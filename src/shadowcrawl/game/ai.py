from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Optional, Set, Tuple

from ..config import GameplaySettings
from ..dungeon.pathfinding import chebyshev_distance, find_path
from ..dungeon.tiles import Grid, Position
from ..fov.fov import compute_grid_fov
from ..fov.los import has_line_of_sight
from ..rng import RandomSource
from .entities import Enemy, EnemyState, Path

logger = logging.getLogger(__name__)


def plan_path(start: Position, goal: Position, grid: Grid) -> Optional[Path]:
    path = find_path(start, goal, grid)
    return tuple(path) if path is not None else None


def can_see_player(enemy_pos: Position, player_pos: Position, vision: Set[Position], grid: Grid) -> bool:
    """Adjacent enemies always notice the player; otherwise the player must be
    inside the enemy's field of view *and* on an unobstructed ray."""
    if chebyshev_distance(enemy_pos, player_pos) == 1:
        return True
    return player_pos in vision and has_line_of_sight(enemy_pos, player_pos, grid)


def sample_patrol_target(
    center: Position,
    radius: int,
    grid: Grid,
    rng: RandomSource,
    attempts: int = 10,
) -> Optional[Position]:
    """Pick a uniformly distributed floor tile within ``radius`` of ``center``.

    Uses polar sampling with a square-rooted radius so points are uniform by
    area. Gives up after ``attempts`` misses.
    """
    for _ in range(attempts):
        angle = rng.random() * 2 * math.pi
        r = math.sqrt(rng.random()) * radius
        x = math.floor(center.x + r * math.cos(angle) + 0.5)
        y = math.floor(center.y + r * math.sin(angle) + 0.5)
        if grid.is_floor(x, y):
            return Position(x, y)
    return None


def _path_exhausted(enemy: Enemy) -> bool:
    return not enemy.path


def think(
    enemy: Enemy,
    player_pos: Position,
    grid: Grid,
    rng: RandomSource,
    gameplay: GameplaySettings,
) -> Tuple[Enemy, Set[Position]]:
    """Run one perception + state-machine update for ``enemy``.

    Returns the updated enemy and the field of view it perceived with.
    """
    vision = compute_grid_fov(grid, enemy.pos, gameplay.enemy_vision_radius)

    if can_see_player(enemy.pos, player_pos, vision, grid):
        if enemy.state is not EnemyState.HUNTING:
            logger.debug("%s spotted the player at %s", enemy.label, player_pos)
        updated = replace(
            enemy,
            state=EnemyState.HUNTING,
            last_known_player_pos=player_pos,
            path=plan_path(enemy.pos, player_pos, grid),
            patrol_target=None,
        )
        return updated, vision

    if enemy.state is EnemyState.HUNTING:
        path = enemy.path
        if enemy.last_known_player_pos is not None:
            path = plan_path(enemy.pos, enemy.last_known_player_pos, grid)
        logger.debug("%s lost sight of the player; searching", enemy.label)
        return replace(enemy, state=EnemyState.SEARCHING, path=path), vision

    if enemy.state is EnemyState.SEARCHING:
        arrived = enemy.last_known_player_pos is not None and enemy.pos == enemy.last_known_player_pos
        if arrived or _path_exhausted(enemy):
            logger.debug("%s gave up searching at %s", enemy.label, enemy.pos)
            return (
                replace(
                    enemy,
                    state=EnemyState.PATROLLING,
                    patrol_center=enemy.pos,
                    last_known_player_pos=None,
                    path=None,
                    patrol_target=None,
                ),
                vision,
            )
        return enemy, vision

    at_target = enemy.patrol_target is not None and enemy.pos == enemy.patrol_target
    if at_target or _path_exhausted(enemy):
        center = enemy.patrol_center if enemy.patrol_center is not None else enemy.pos
        target = sample_patrol_target(center, gameplay.enemy_patrol_radius, grid, rng, gameplay.patrol_attempts)
        if target is not None:
            return replace(enemy, patrol_target=target, path=plan_path(enemy.pos, target, grid)), vision
    return enemy, vision


__all__ = ["can_see_player", "plan_path", "sample_patrol_target", "think"]
