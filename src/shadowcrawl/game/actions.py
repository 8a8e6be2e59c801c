from __future__ import annotations

from enum import Enum
from typing import Tuple

from ..errors import InvalidActionError


class Action(Enum):
    """The player's per-turn input vocabulary: eight directions or waiting.

    Values are (dx, dy) with y growing downward, so N is (0, -1).
    """

    N = (0, -1)
    S = (0, 1)
    E = (1, 0)
    W = (-1, 0)
    NE = (1, -1)
    NW = (-1, -1)
    SE = (1, 1)
    SW = (-1, 1)
    WAIT = (0, 0)

    @property
    def delta(self) -> Tuple[int, int]:
        return self.value

    @property
    def is_wait(self) -> bool:
        return self is Action.WAIT

    @classmethod
    def parse(cls, text: str) -> "Action":
        """Parse an action name such as ``"ne"`` or ``"wait"`` (case-insensitive)."""
        key = text.strip().upper()
        try:
            return cls[key]
        except KeyError:
            raise InvalidActionError(f"Unknown action {text!r}; expected one of {', '.join(cls.__members__)}") from None


__all__ = ["Action"]
