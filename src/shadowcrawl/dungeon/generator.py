from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from ..config import GameplaySettings, GenerationSettings, Settings
from ..game.entities import Enemy
from ..rng import RandomSource
from .regions import Region, find_regions, largest_region
from .tiles import Grid, Position, Tile

logger = logging.getLogger(__name__)

# Rooms smaller than this in either dimension are never subdivided.
SUBDIVIDE_MIN_SIZE = 8


@dataclass
class Room:
    x: int
    y: int
    width: int
    height: int

    def intersects(self, other: "Room", padding: int = 1) -> bool:
        return not (
            self.x + self.width + padding <= other.x
            or other.x + other.width + padding <= self.x
            or self.y + self.height + padding <= other.y
            or other.y + other.height + padding <= self.y
        )


@dataclass(frozen=True)
class DungeonData:
    map: Grid
    player_start: Position
    enemies_start: Tuple[Enemy, ...]


@dataclass(frozen=True)
class GenerationProgress:
    """One checkpoint of a generation run. Only the final (100%) event carries a result."""

    percent: int
    message: str
    result: Optional[DungeonData] = None

    @property
    def done(self) -> bool:
        return self.result is not None


class DungeonGenerator:
    """Builds one playable map plus initial actor placement.

    The pipeline runs in fixed stages: room placement, room construction with
    recursive subdivision, cellular cave carving, region connection, diagonal
    artifact cleanup and entity placement. Each stage is exposed as a method so it
    can be exercised on its own; :meth:`generate` strings them together as a
    :class:`GenerationRun` that reports progress between stages.

    A generator instance owns its grid and is single-use.
    """

    def __init__(
        self,
        width: int,
        height: int,
        rng: RandomSource,
        generation: Optional[GenerationSettings] = None,
        gameplay: Optional[GameplaySettings] = None,
    ) -> None:
        self.width = width
        self.height = height
        self.rng = rng
        self.generation = generation or GenerationSettings()
        self.gameplay = gameplay or GameplaySettings()
        self.grid = Grid(width, height, Tile.WALL)
        self.rooms: List[Room] = []
        self._result: Optional[DungeonData] = None
        self._started = False

    @classmethod
    def from_settings(cls, settings: Settings, rng: RandomSource) -> "DungeonGenerator":
        return cls(settings.map.width, settings.map.height, rng, settings.generation, settings.gameplay)

    # ---------------------------
    # Stage 1: room placement
    # ---------------------------

    def place_rooms(self) -> List[Room]:
        gen = self.generation
        target = self.rng.randint(gen.min_rooms, gen.max_rooms)
        for _ in range(gen.room_attempts):
            if len(self.rooms) >= target:
                break
            w = self.rng.randint(gen.min_room_size, gen.max_room_size)
            h = self.rng.randint(gen.min_room_size, gen.max_room_size)
            max_x = self.width - w - 2
            max_y = self.height - h - 2
            if max_x < 1 or max_y < 1:
                continue
            room = Room(self.rng.randint(1, max_x), self.rng.randint(1, max_y), w, h)
            if any(room.intersects(other, padding=1) for other in self.rooms):
                continue
            self.rooms.append(room)
        if not self.rooms:
            logger.warning("No rooms placed on %dx%d map; continuing with caves only", self.width, self.height)
        logger.debug("Placed %d/%d rooms", len(self.rooms), target)
        return self.rooms

    # ---------------------------
    # Stage 2: room construction
    # ---------------------------

    def build_rooms(self) -> None:
        for room in self.rooms:
            self._carve_room(room)
            if room.width >= SUBDIVIDE_MIN_SIZE or room.height >= SUBDIVIDE_MIN_SIZE:
                self._subdivide(room)

    def _carve_room(self, room: Room) -> None:
        for y in range(room.y, room.y + room.height):
            for x in range(room.x, room.x + room.width):
                self.grid.set(x, y, Tile.FLOOR)

    def _subdivide(self, room: Room) -> None:
        """Split a room with a wall line holding a single door, then recurse into both halves."""
        if room.width < SUBDIVIDE_MIN_SIZE or room.height < SUBDIVIDE_MIN_SIZE:
            return
        if room.height >= room.width and room.height >= 5:
            split_y = self.rng.randint(room.y + 2, room.y + room.height - 3)
            for x in range(room.x, room.x + room.width):
                self.grid.set(x, split_y, Tile.WALL)
            self.grid.set(self.rng.randint(room.x, room.x + room.width - 1), split_y, Tile.FLOOR)
            self._subdivide(Room(room.x, room.y, room.width, split_y - room.y))
            self._subdivide(Room(room.x, split_y + 1, room.width, room.y + room.height - (split_y + 1)))
        elif room.width > room.height and room.width >= 5:
            split_x = self.rng.randint(room.x + 2, room.x + room.width - 3)
            for y in range(room.y, room.y + room.height):
                self.grid.set(split_x, y, Tile.WALL)
            self.grid.set(split_x, self.rng.randint(room.y, room.y + room.height - 1), Tile.FLOOR)
            self._subdivide(Room(room.x, room.y, split_x - room.x, room.height))
            self._subdivide(Room(split_x + 1, room.y, room.x + room.width - (split_x + 1), room.height))

    # ---------------------------
    # Stage 3: cellular caves
    # ---------------------------

    def seed_caves(self) -> None:
        """Randomly open interior walls; each draw carves floor once it reaches 1 - fill probability."""
        threshold = 1.0 - self.generation.cave_fill_probability
        for y in range(1, self.height - 1):
            for x in range(1, self.width - 1):
                if self.grid.tiles[y][x] == Tile.WALL and self.rng.random() >= threshold:
                    self.grid.tiles[y][x] = Tile.FLOOR

    def smooth_caves(self) -> None:
        for _ in range(self.generation.smoothing_passes):
            snapshot = self.grid.copy()
            for y in range(1, self.height - 1):
                for x in range(1, self.width - 1):
                    walls = snapshot.count_walls_around(x, y)
                    if snapshot.tiles[y][x] == Tile.WALL:
                        if walls < 4:
                            self.grid.tiles[y][x] = Tile.FLOOR
                    elif walls > 5:
                        self.grid.tiles[y][x] = Tile.WALL

    def carve_caves(self) -> None:
        self.seed_caves()
        self.smooth_caves()

    # ---------------------------
    # Stage 4/5: region connection
    # ---------------------------

    def connect_regions(self) -> int:
        """Tunnel every sizeable floor region into the largest one.

        Returns the number of tunnels carved.
        """
        min_size = self.generation.min_region_size
        regions = [r for r in find_regions(self.grid, Tile.FLOOR) if len(r) > min_size]
        if len(regions) <= 1:
            logger.debug("Nothing to connect (%d sizeable regions)", len(regions))
            return 0
        regions.sort(key=len, reverse=True)
        anchor: Region = list(regions[0])
        for region in regions[1:]:
            a, b = self._closest_pair(anchor, region)
            self.carve_tunnel(a, b)
            anchor.extend(region)
        logger.debug("Connected %d regions into anchor of %d tiles", len(regions) - 1, len(anchor))
        return len(regions) - 1

    def _closest_pair(self, anchor: Region, region: Region) -> Tuple[Position, Position]:
        best: Optional[Tuple[Position, Position]] = None
        best_dist = math.inf
        for _ in range(self.generation.connection_samples):
            a = anchor[self.rng.index(len(anchor))]
            b = region[self.rng.index(len(region))]
            dist = (a.x - b.x) ** 2 + (a.y - b.y) ** 2
            if dist < best_dist:
                best_dist = dist
                best = (a, b)
        assert best is not None
        return best

    def carve_tunnel(self, start: Position, end: Position) -> None:
        x, y = start
        while x != end.x or y != end.y:
            if x != end.x and (y == end.y or self.rng.coin()):
                x += 1 if end.x > x else -1
            else:
                y += 1 if end.y > y else -1
            self.grid.set(x, y, Tile.FLOOR)

    # ---------------------------
    # Stage 6: artifact cleanup
    # ---------------------------

    def remove_diagonal_passages(self) -> int:
        """Open one wall of every floor/wall checkerboard 2x2 block.

        Returns the number of blocks fixed across all passes.
        """
        tiles = self.grid.tiles
        fixed = 0
        for _ in range(self.generation.cleanup_passes):
            for y in range(1, self.height - 1):
                for x in range(1, self.width - 1):
                    nw, ne = tiles[y][x], tiles[y][x + 1]
                    sw, se = tiles[y + 1][x], tiles[y + 1][x + 1]
                    if nw == Tile.FLOOR and se == Tile.FLOOR and ne == Tile.WALL and sw == Tile.WALL:
                        if self.rng.coin():
                            tiles[y][x + 1] = Tile.FLOOR
                        else:
                            tiles[y + 1][x] = Tile.FLOOR
                        fixed += 1
                    elif sw == Tile.FLOOR and ne == Tile.FLOOR and nw == Tile.WALL and se == Tile.WALL:
                        if self.rng.coin():
                            tiles[y][x] = Tile.FLOOR
                        else:
                            tiles[y + 1][x + 1] = Tile.FLOOR
                        fixed += 1
        logger.debug("Removed %d diagonal passages", fixed)
        return fixed

    # ---------------------------
    # Stage 7: entity placement
    # ---------------------------

    def place_entities(self) -> DungeonData:
        main = largest_region(self.grid, Tile.FLOOR)
        if not main:
            logger.warning("No floor region found; forcing spawn at (1, 1) with no enemies")
            self.grid.set(1, 1, Tile.FLOOR)
            self._result = DungeonData(self.grid, Position(1, 1), ())
            return self._result

        tiles = list(main)
        player_start = tiles.pop(self.rng.index(len(tiles)))
        min_dist = self.gameplay.player_vision_radius + 2
        candidates = [p for p in tiles if math.hypot(p.x - player_start.x, p.y - player_start.y) > min_dist]

        enemies: List[Enemy] = []
        for enemy_id in range(min(self.gameplay.max_enemies, len(candidates))):
            pos = candidates.pop(self.rng.index(len(candidates)))
            enemies.append(Enemy.spawn(enemy_id, pos, self.gameplay.enemy_initial_health))

        logger.debug("Player spawn %s, %d enemies in region of %d tiles", player_start, len(enemies), len(main))
        self._result = DungeonData(self.grid, player_start, tuple(enemies))
        return self._result

    # ---------------------------
    # Driving
    # ---------------------------

    def stages(self) -> Sequence[Tuple[int, str, Callable[[], object]]]:
        return (
            (5, "Planning rooms...", self.place_rooms),
            (15, "Building room complexes...", self.build_rooms),
            (30, "Carving caves...", self.carve_caves),
            (70, "Connecting regions...", self.connect_regions),
            (90, "Cleaning up artifacts...", self.remove_diagonal_passages),
            (95, "Placing inhabitants...", self.place_entities),
        )

    def generate(self) -> "GenerationRun":
        if self._started:
            raise RuntimeError("DungeonGenerator instances are single-use; create a new one")
        self._started = True
        return GenerationRun(self)

    def run(self, on_progress: Optional[Callable[[GenerationProgress], None]] = None) -> DungeonData:
        """Drive a full generation run, optionally reporting each checkpoint."""
        last: Optional[GenerationProgress] = None
        for last in self.generate():
            if on_progress is not None:
                on_progress(last)
        assert last is not None and last.result is not None
        return last.result

    @property
    def result(self) -> Optional[DungeonData]:
        return self._result


class GenerationRun:
    """Step-wise driver for a generation pipeline.

    Each call to :meth:`step` (or ``next()``) first finishes the stage announced by
    the previous event, then announces the next one. The sequence is finite and
    cannot be restarted; its last event is the 100% checkpoint carrying the result.
    """

    DONE_PERCENT = 100
    DONE_MESSAGE = "Done!"

    def __init__(self, generator: DungeonGenerator) -> None:
        self._generator = generator
        self._stages = list(generator.stages())
        self._index = 0
        self._pending: Optional[Callable[[], object]] = None
        self._finished = False

    def __iter__(self) -> Iterator[GenerationProgress]:
        return self

    def __next__(self) -> GenerationProgress:
        if self._finished:
            raise StopIteration
        if self._pending is not None:
            self._pending()
            self._pending = None
        if self._index < len(self._stages):
            percent, message, stage = self._stages[self._index]
            self._index += 1
            self._pending = stage
            logger.debug("Generation %d%%: %s", percent, message)
            return GenerationProgress(percent, message)
        self._finished = True
        logger.info("Dungeon generation complete")
        return GenerationProgress(self.DONE_PERCENT, self.DONE_MESSAGE, self._generator.result)

    def step(self) -> Optional[GenerationProgress]:
        """Advance one checkpoint; returns None once the run is exhausted."""
        return next(self, None)

    @property
    def finished(self) -> bool:
        return self._finished


__all__ = ["DungeonData", "DungeonGenerator", "GenerationProgress", "GenerationRun", "Room"]
