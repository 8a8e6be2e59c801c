from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

from ..dungeon.tiles import Position

Path = Tuple[Position, ...]


class EnemyState(str, Enum):
    PATROLLING = "patrolling"
    HUNTING = "hunting"
    SEARCHING = "searching"


@dataclass(frozen=True)
class Player:
    pos: Position
    health: int

    @property
    def display_health(self) -> int:
        return max(0, self.health)

    @property
    def defeated(self) -> bool:
        return self.health <= 0

    def moved_to(self, pos: Position) -> "Player":
        return replace(self, pos=pos)

    def damaged(self, amount: int) -> "Player":
        return replace(self, health=self.health - amount)


@dataclass(frozen=True)
class Enemy:
    """An enemy record. ``id`` is assigned once at spawn and never reused."""

    id: int
    pos: Position
    health: int
    state: EnemyState = EnemyState.PATROLLING
    last_known_player_pos: Optional[Position] = None
    path: Optional[Path] = None
    patrol_center: Optional[Position] = None
    patrol_target: Optional[Position] = None

    @classmethod
    def spawn(cls, enemy_id: int, pos: Position, health: int) -> "Enemy":
        return cls(id=enemy_id, pos=pos, health=health, patrol_center=pos)

    @property
    def alive(self) -> bool:
        return self.health > 0

    @property
    def display_health(self) -> int:
        return max(0, self.health)

    @property
    def label(self) -> str:
        return f"enemy#{self.id}"

    def damaged(self, amount: int) -> "Enemy":
        return replace(self, health=self.health - amount)

    def __repr__(self) -> str:
        return f"Enemy(#{self.id}@{self.pos.x},{self.pos.y} hp={self.health} {self.state.value})"


__all__ = ["Enemy", "EnemyState", "Path", "Player"]
