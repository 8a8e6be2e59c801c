from enum import Enum, auto


class GameEvent(Enum):
    """Events emitted by GameSession to notify UI or systems."""

    TURN_RESOLVED = auto()
    PLAYER_MOVED = auto()
    ENEMY_KILLED = auto()
    PLAYER_DEFEATED = auto()
