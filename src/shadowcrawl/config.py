from __future__ import annotations

import json
import logging
import os
from copy import deepcopy
from dataclasses import asdict, dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import yaml
from jsonschema import Draft202012Validator, exceptions as js_exceptions, validators

from .errors import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "SHADOWCRAWL_"


@dataclass(frozen=True)
class MapSettings:
    width: int = 64
    height: int = 64


@dataclass(frozen=True)
class GenerationSettings:
    """Tuning knobs for the dungeon generation pipeline."""

    min_rooms: int = 10
    max_rooms: int = 15
    min_room_size: int = 3
    max_room_size: int = 15
    room_attempts: int = 200
    cave_fill_probability: float = 0.45
    smoothing_passes: int = 4
    min_region_size: int = 10
    connection_samples: int = 100
    cleanup_passes: int = 5


@dataclass(frozen=True)
class GameplaySettings:
    player_initial_health: int = 100
    enemy_initial_health: int = 20
    max_enemies: int = 15
    player_attack_power: int = 10
    enemy_attack_power: int = 10
    player_vision_radius: int = 6
    enemy_vision_radius: int = 5
    enemy_patrol_radius: int = 5
    patrol_attempts: int = 10
    max_log_messages: int = 100


@dataclass(frozen=True)
class DebugOptions:
    """Inspection and override flags.

    None of these change how the core algorithms compute their results; they only
    decide what gets exposed (vision tiles, paths, state labels) and whether enemy
    hits are applied to the player.
    """

    god_mode: bool = False
    reveal_map: bool = False
    show_enemy_vision: bool = False
    show_enemy_paths: bool = False
    show_enemy_states: bool = False


@dataclass(frozen=True)
class Settings:
    map: MapSettings = field(default_factory=MapSettings)
    generation: GenerationSettings = field(default_factory=GenerationSettings)
    gameplay: GameplaySettings = field(default_factory=GameplaySettings)
    debug: DebugOptions = field(default_factory=DebugOptions)
    seed: Union[int, str, None] = None

    # ---------------------------
    # Loading
    # ---------------------------

    @staticmethod
    def _load_yaml(path: Path) -> dict:
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML at {path}: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Settings root must be a mapping in {path}")
        return data

    @classmethod
    def _deep_merge(cls, base: dict, overlay: dict) -> dict:
        merged = dict(base)
        for k, v in (overlay or {}).items():
            if isinstance(v, dict) and isinstance(base.get(k), dict):
                merged[k] = cls._deep_merge(base[k], v)
            else:
                merged[k] = v
        return merged

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, source: str = "<dict>") -> "Settings":
        """Validate a raw settings mapping and build a Settings instance.

        Missing keys are filled from the schema defaults.
        """
        instance = deepcopy(dict(data))
        _validate(instance, source)
        settings = cls(
            map=MapSettings(**instance["map"]),
            generation=GenerationSettings(**instance["generation"]),
            gameplay=GameplaySettings(**instance["gameplay"]),
            debug=DebugOptions(**instance["debug"]),
            seed=instance.get("seed"),
        )
        settings._check_ranges(source)
        return settings

    @classmethod
    def load(
        cls,
        user_path: Optional[Path] = None,
        *,
        env: Optional[Mapping[str, str]] = None,
    ) -> "Settings":
        """Load settings from built-in defaults, an optional user file and the environment.

        If user_path is provided it must exist; its values are overlaid onto the
        defaults. Environment overrides (SHADOWCRAWL_SEED, SHADOWCRAWL_WIDTH,
        SHADOWCRAWL_HEIGHT, SHADOWCRAWL_GOD_MODE, SHADOWCRAWL_REVEAL_MAP) win last.
        """
        with resources.files("shadowcrawl.data").joinpath("default_settings.yaml").open("r", encoding="utf-8") as f:
            default_data = yaml.safe_load(f) or {}

        user_data: dict = {}
        source = "default_settings.yaml"
        if user_path is not None:
            user_path = Path(user_path)
            if not user_path.exists():
                raise ConfigError(f"Settings file not found: {user_path}")
            user_data = cls._load_yaml(user_path)
            source = str(user_path)
            logger.info("Loaded user settings from %s", user_path)

        merged = cls._deep_merge(default_data, user_data)
        merged = cls._deep_merge(merged, _env_overrides(os.environ if env is None else env))
        settings = cls.from_dict(merged, source=source)
        logger.debug("Settings merged: %s", settings)
        return settings

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seed": self.seed,
            "map": asdict(self.map),
            "generation": asdict(self.generation),
            "gameplay": asdict(self.gameplay),
            "debug": asdict(self.debug),
        }

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)
        logger.info("Saved settings to %s", path)

    def _check_ranges(self, source: str) -> None:
        gen = self.generation
        problems: List[str] = []
        if gen.min_rooms > gen.max_rooms:
            problems.append(f"generation.min_rooms ({gen.min_rooms}) exceeds max_rooms ({gen.max_rooms})")
        if gen.min_room_size > gen.max_room_size:
            problems.append(
                f"generation.min_room_size ({gen.min_room_size}) exceeds max_room_size ({gen.max_room_size})"
            )
        if problems:
            raise ConfigError(f"Invalid settings in {source}:\n" + "\n".join(f" - {p}" for p in problems))


# ---------------------------
# Validation helpers
# ---------------------------


def _extend_with_default(validator_class):
    """Extend a jsonschema validator to set defaults onto instances.

    When a property has a 'default' value and is missing on the instance, it is
    injected before further validation.
    """

    validate_properties = validator_class.VALIDATORS["properties"]

    def set_defaults(validator, properties, instance, schema):
        if isinstance(instance, dict):
            for prop, subschema in properties.items():
                if "default" in subschema and prop not in instance:
                    instance[prop] = deepcopy(subschema["default"])
        yield from validate_properties(validator, properties, instance, schema)

    return validators.extend(validator_class, {"properties": set_defaults})


DefaultingValidator = _extend_with_default(Draft202012Validator)


def _load_schema() -> dict:
    text = resources.files("shadowcrawl.data").joinpath("settings.schema.json").read_text(encoding="utf-8")
    return json.loads(text)


def _validate(instance: dict, source: str) -> None:
    validator = DefaultingValidator(_load_schema())
    errors = sorted(validator.iter_errors(instance), key=lambda e: list(e.absolute_path))
    if errors:
        raise ConfigError(_format_schema_errors(source, errors))


def _format_schema_errors(source: str, errors: Sequence[js_exceptions.ValidationError]) -> str:
    """Create a readable, multi-line error message from jsonschema errors."""
    lines = [f"Schema validation failed for {source}:"]
    for err in errors:
        where = ".".join(str(p) for p in err.absolute_path) or "root"
        lines.append(f" - At {where}: {err.message}")
    return "\n".join(lines)


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_overrides(env: Mapping[str, str]) -> dict:
    overrides: dict = {}
    seed = env.get(ENV_PREFIX + "SEED")
    if seed:
        overrides["seed"] = int(seed) if seed.strip().isdigit() else seed
    for key in ("WIDTH", "HEIGHT"):
        raw = env.get(ENV_PREFIX + key)
        if raw:
            try:
                overrides.setdefault("map", {})[key.lower()] = int(raw)
            except ValueError as e:
                raise ConfigError(f"{ENV_PREFIX}{key} must be an integer, got {raw!r}") from e
    for key in ("GOD_MODE", "REVEAL_MAP"):
        raw = env.get(ENV_PREFIX + key)
        if raw:
            overrides.setdefault("debug", {})[key.lower()] = _parse_bool(raw)
    if overrides:
        logger.info("Applying environment overrides: %s", overrides)
    return overrides


__all__ = [
    "DebugOptions",
    "GameplaySettings",
    "GenerationSettings",
    "MapSettings",
    "Settings",
]
