from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Tuple

from ..config import DebugOptions
from ..dungeon.tiles import Position
from .entities import Enemy


@dataclass(frozen=True)
class DebugOverlay:
    """Data a renderer may draw on top of the map when debug flags are set.

    Each field stays empty unless its flag is enabled.
    """

    enemy_vision: FrozenSet[Position] = field(default_factory=frozenset)
    enemy_paths: Dict[int, Tuple[Position, ...]] = field(default_factory=dict)
    enemy_states: Dict[int, str] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        options: DebugOptions,
        enemies: Iterable[Enemy],
        vision: Iterable[Position] = (),
    ) -> "DebugOverlay":
        enemies = list(enemies)
        return cls(
            enemy_vision=frozenset(vision) if options.show_enemy_vision else frozenset(),
            enemy_paths={e.id: tuple(e.path or ()) for e in enemies} if options.show_enemy_paths else {},
            enemy_states={e.id: e.state.value for e in enemies} if options.show_enemy_states else {},
        )


__all__ = ["DebugOverlay"]
