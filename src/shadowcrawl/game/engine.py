from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from ..config import DebugOptions, GameplaySettings
from ..dungeon.pathfinding import chebyshev_distance
from ..dungeon.tiles import Grid, Position
from ..rng import RandomSource
from .actions import Action
from .ai import think
from .entities import Enemy, EnemyState, Player
from .log import LogEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorldState:
    """Immutable snapshot of one session's simulation state.

    ``enemies`` is always ordered by ascending id; that order is the enemy
    processing order. ``turn`` is the number of the next turn to resolve.
    """

    grid: Grid
    player: Player
    enemies: Tuple[Enemy, ...]
    turn: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "enemies", tuple(sorted(self.enemies, key=lambda e: e.id)))

    def enemy_at(self, pos: Position) -> Optional[Enemy]:
        for enemy in self.enemies:
            if enemy.pos == pos:
                return enemy
        return None

    def enemy_by_id(self, enemy_id: int) -> Optional[Enemy]:
        for enemy in self.enemies:
            if enemy.id == enemy_id:
                return enemy
        return None


@dataclass(frozen=True)
class TurnOutcome:
    """Result of resolving one player action.

    Attributes:
        state: The state after the turn (the unchanged input state when rejected).
        accepted: False when the action was refused (wall bump, defeated player).
        messages: Log entries produced during the turn, in order.
        player_moved: Whether the player changed tile.
        killed: Ids of enemies removed this turn.
        enemy_vision: Union of all enemy fields of view; only filled when the
            enemy-vision debug flag is set.
    """

    state: WorldState
    accepted: bool
    messages: Tuple[LogEntry, ...] = ()
    player_moved: bool = False
    killed: Tuple[int, ...] = ()
    enemy_vision: FrozenSet[Position] = field(default_factory=frozenset)


class TurnEngine:
    """Resolves a single discrete turn.

    Order within a turn:
    1. The player's action: wait, attack an enemy on the destination tile, or move.
       Moving into a wall rejects the whole turn.
    2. Every enemy perceives the player (field of view + line of sight) and updates
       its AI state, path and patrol target.
    3. Enemies in ascending id order either strike an adjacent player (when hunting)
       or take one step along their path, never onto a wall, the player or
       another enemy.
    4. The turn counter advances if anything was logged or the player moved.
    """

    def __init__(
        self,
        rng: RandomSource,
        gameplay: Optional[GameplaySettings] = None,
        debug: Optional[DebugOptions] = None,
    ) -> None:
        self.rng = rng
        self.gameplay = gameplay or GameplaySettings()
        self.debug = debug or DebugOptions()

    def resolve(self, state: WorldState, action: Action) -> TurnOutcome:
        if state.player.defeated:
            logger.debug("Ignoring %s: player is defeated", action.name)
            return TurnOutcome(state=state, accepted=False)

        grid = state.grid
        player = state.player
        dx, dy = action.delta
        destination = Position(player.pos.x + dx, player.pos.y + dy)
        if not action.is_wait and grid.is_wall(*destination):
            logger.debug("Rejected %s: %s is a wall", action.name, destination)
            return TurnOutcome(state=state, accepted=False)

        turn = state.turn
        messages: List[LogEntry] = []
        enemies: Dict[int, Enemy] = {e.id: e for e in state.enemies}
        killed: List[int] = []
        moved = False

        # 1. player
        victim = None if action.is_wait else state.enemy_at(destination)
        if victim is not None:
            power = self.gameplay.player_attack_power
            hit = victim.damaged(power)
            messages.append(LogEntry(turn, f"You hit {victim.label} for {power} damage!", ("attack",)))
            if hit.alive:
                enemies[hit.id] = hit
            else:
                del enemies[hit.id]
                killed.append(hit.id)
                messages.append(LogEntry(turn, f"You defeated {victim.label}!", ("kill",)))
                logger.info("Player killed %s on turn %d", victim.label, turn)
        elif action.is_wait:
            messages.append(LogEntry(turn, "You wait a turn.", ("wait",)))
        else:
            player = player.moved_to(destination)
            moved = True

        # 2. perception and AI state
        order = sorted(enemies)
        vision_union: Set[Position] = set()
        for enemy_id in order:
            updated, vision = think(enemies[enemy_id], player.pos, grid, self.rng, self.gameplay)
            enemies[enemy_id] = updated
            if self.debug.show_enemy_vision:
                vision_union |= vision

        # 3. enemy combat and movement
        player, messages = self._enemy_actions(order, enemies, player, grid, turn, messages)

        if player.defeated and not state.player.defeated:
            messages.append(LogEntry(turn, "You have been defeated.", ("defeat",)))
            logger.info("Player defeated on turn %d", turn)

        # 4. turn counter
        advanced = bool(messages) or moved
        new_state = WorldState(
            grid=grid,
            player=player,
            enemies=tuple(enemies[i] for i in order),
            turn=turn + 1 if advanced else turn,
        )
        logger.debug("Turn %d resolved: action=%s moved=%s messages=%d", turn, action.name, moved, len(messages))
        return TurnOutcome(
            state=new_state,
            accepted=True,
            messages=tuple(messages),
            player_moved=moved,
            killed=tuple(killed),
            enemy_vision=frozenset(vision_union),
        )

    def _enemy_actions(
        self,
        order: List[int],
        enemies: Dict[int, Enemy],
        player: Player,
        grid: Grid,
        turn: int,
        messages: List[LogEntry],
    ) -> Tuple[Player, List[LogEntry]]:
        processed: Set[Position] = set()
        for index, enemy_id in enumerate(order):
            enemy = enemies[enemy_id]
            if enemy.state is EnemyState.HUNTING and chebyshev_distance(enemy.pos, player.pos) == 1:
                power = self.gameplay.enemy_attack_power
                if self.debug.god_mode:
                    messages.append(
                        LogEntry(turn, f"{enemy.label} tries to hit you, but you are invulnerable!", ("attack_blocked",))
                    )
                else:
                    player = player.damaged(power)
                    messages.append(LogEntry(turn, f"{enemy.label} hits you for {power} damage!", ("player_hit",)))
            elif enemy.path:
                step = enemy.path[0]
                blocked = (
                    grid.is_wall(*step)
                    or step == player.pos
                    or step in processed
                    or any(enemies[later].pos == step for later in order[index + 1:])
                )
                if blocked:
                    enemy = replace(enemy, path=None)
                else:
                    enemy = replace(enemy, pos=step, path=enemy.path[1:])
                enemies[enemy_id] = enemy
            processed.add(enemy.pos)
        return player, messages


__all__ = ["TurnEngine", "TurnOutcome", "WorldState"]
