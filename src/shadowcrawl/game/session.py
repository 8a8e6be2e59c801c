from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, FrozenSet, List, Optional

from ..config import DebugOptions, Settings
from ..dungeon.generator import DungeonData, DungeonGenerator, GenerationProgress
from ..dungeon.pathfinding import chebyshev_distance
from ..dungeon.tiles import Position
from ..fov.los import has_line_of_sight
from ..fov.visibility import Visibility, VisibilityMap
from ..rng import RandomSource, RNGManager, Seed
from .actions import Action
from .debug import DebugOverlay
from .engine import TurnEngine, TurnOutcome, WorldState
from .entities import Enemy, Player
from .events import GameEvent
from .log import MessageLog

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = "Welcome! Move in eight directions, or wait to let the dungeon act."

Listener = Callable[[GameEvent, "GameSession"], None]


class GameSession:
    """Holds one game's state: the world snapshot, visibility memory, message log
    and debug options.

    The session is the only owner of its map and actors. Each call to :meth:`act`
    resolves exactly one turn through the TurnEngine and swaps in the new snapshot.
    """

    def __init__(
        self,
        settings: Settings,
        dungeon: DungeonData,
        ai_rng: RandomSource,
        seed: Seed = None,
    ) -> None:
        self._listeners: List[Listener] = []
        self.settings = settings
        self.seed = seed
        self.state = WorldState(
            grid=dungeon.map,
            player=Player(pos=dungeon.player_start, health=settings.gameplay.player_initial_health),
            enemies=dungeon.enemies_start,
        )
        self.visibility = VisibilityMap(dungeon.map)
        self.log = MessageLog(settings.gameplay.max_log_messages)
        self.log.add(0, WELCOME_MESSAGE, ("info",))
        self._ai_rng = ai_rng
        self._engine = TurnEngine(ai_rng, settings.gameplay, settings.debug)
        self._enemy_vision: FrozenSet[Position] = frozenset()
        self.refresh_visibility()
        logger.info(
            "Session started: %dx%d map, player at %s, %d enemies",
            dungeon.map.width,
            dungeon.map.height,
            dungeon.player_start,
            len(dungeon.enemies_start),
        )

    @classmethod
    def new(
        cls,
        settings: Optional[Settings] = None,
        seed: Seed = None,
        on_progress: Optional[Callable[[GenerationProgress], None]] = None,
    ) -> "GameSession":
        """Generate a fresh dungeon and start a session on it.

        Layout and AI use separate random streams derived from one master seed.
        ``session.seed`` holds the seed that reproduces the run, generated or not.
        """
        settings = settings or Settings()
        rngm = RNGManager(seed if seed is not None else settings.seed)
        generator = DungeonGenerator.from_settings(settings, rngm.context_rng("dungeon_layout"))
        dungeon = generator.run(on_progress)
        return cls(settings, dungeon, rngm.context_rng("enemy_ai"), rngm.replay_seed)

    # ---------------------------
    # Listeners
    # ---------------------------

    def add_listener(self, listener: Listener) -> None:
        """Subscribe to session events."""
        self._listeners.append(listener)

    def _emit(self, event: GameEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, self)
            except Exception as ex:  # pragma: no cover - listeners shouldn't crash the session
                logger.exception("Listener errored on %s: %s", event, ex)

    # ---------------------------
    # Accessors
    # ---------------------------

    @property
    def player(self) -> Player:
        return self.state.player

    @property
    def turn(self) -> int:
        return self.state.turn

    @property
    def debug(self) -> DebugOptions:
        return self.settings.debug

    @property
    def game_over(self) -> bool:
        return self.state.player.defeated

    def visible_enemies(self) -> List[Enemy]:
        """Enemies the player can currently perceive.

        Everything counts under reveal-map. Otherwise an enemy is seen when it is
        adjacent, or when its tile is VISIBLE and a clear ray reaches it.
        """
        enemies = list(self.state.enemies)
        if self.debug.reveal_map:
            return enemies
        player_pos = self.state.player.pos
        grid = self.state.grid
        return [
            e
            for e in enemies
            if chebyshev_distance(player_pos, e.pos) == 1
            or (
                self.visibility.get(*e.pos) == Visibility.VISIBLE
                and has_line_of_sight(player_pos, e.pos, grid)
            )
        ]

    def overlay(self) -> DebugOverlay:
        return DebugOverlay.build(self.debug, self.state.enemies, self._enemy_vision)

    def set_debug_options(self, options: DebugOptions) -> None:
        self.settings = replace(self.settings, debug=options)
        self._engine = TurnEngine(self._ai_rng, self.settings.gameplay, options)
        if not options.show_enemy_vision:
            self._enemy_vision = frozenset()
        self.refresh_visibility()
        logger.debug("Debug options updated: %s", options)

    # ---------------------------
    # Turn handling
    # ---------------------------

    def refresh_visibility(self) -> None:
        if self.debug.reveal_map:
            self.visibility.reveal_all()
        else:
            self.visibility.update(self.state.player.pos, self.settings.gameplay.player_vision_radius)

    def act(self, action: Action) -> TurnOutcome:
        """Resolve one player action. Rejected actions leave the session untouched."""
        outcome = self._engine.resolve(self.state, action)
        if not outcome.accepted:
            return outcome

        previous = self.state
        self.state = outcome.state
        if outcome.messages:
            self.log.add_turn(previous.turn, outcome.messages)
        self._enemy_vision = outcome.enemy_vision
        self.refresh_visibility()

        if outcome.player_moved:
            self._emit(GameEvent.PLAYER_MOVED)
        if outcome.killed:
            self._emit(GameEvent.ENEMY_KILLED)
        self._emit(GameEvent.TURN_RESOLVED)
        if self.state.player.defeated and not previous.player.defeated:
            self._emit(GameEvent.PLAYER_DEFEATED)
        return outcome


__all__ = ["GameSession", "WELCOME_MESSAGE"]
