from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogEntry:
    """A single message-log line.

    Attributes:
        turn: Turn number the entry belongs to (0 for messages before the first turn).
        text: Human-readable message.
        tags: Semantic tags, e.g. ("attack",), ("kill",), ("wait",), ("separator",).
    """

    turn: int
    text: str
    tags: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_separator(self) -> bool:
        return "separator" in self.tags


class MessageLog:
    """In-memory game message log for one session.

    - Keeps a finite history (capacity); the oldest entries are dropped first.
    - Each resolved turn that produced messages is introduced by a separator entry.
    """

    def __init__(self, capacity: int = 100) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._entries: List[LogEntry] = []
        logger.debug("MessageLog initialized with capacity=%d", capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:  # pragma: no cover - trivial
        return len(self._entries)

    def add(self, turn: int, text: str, tags: Optional[Sequence[str]] = None) -> LogEntry:
        entry = LogEntry(turn=turn, text=text, tags=tuple(tags or ()))
        self._entries.append(entry)
        if len(self._entries) > self._capacity:
            dropped = len(self._entries) - self._capacity
            del self._entries[0:dropped]
            logger.debug("MessageLog capacity exceeded, dropped=%d old entries", dropped)
        return entry

    def add_turn(self, turn: int, messages: Iterable[LogEntry]) -> None:
        """Append a turn separator followed by that turn's messages."""
        self.add(turn, f"--- Turn {turn} ---", ("separator",))
        for msg in messages:
            self.add(turn, msg.text, msg.tags)

    def entries(self) -> List[LogEntry]:
        return list(self._entries)

    def get_recent(self, n: int) -> List[LogEntry]:
        if n <= 0:
            return []
        return self._entries[-n:]

    def texts(self) -> List[str]:
        return [e.text for e in self._entries]

    def to_dict(self) -> dict:
        return {
            "capacity": self._capacity,
            "entries": [asdict(e) for e in self._entries],
        }


__all__ = ["LogEntry", "MessageLog"]
