from __future__ import annotations

import hashlib
import json
import logging
import random
import secrets
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")

Seed = Union[int, str, bytes, None]


def _to_stable_json(value: Any) -> str:
    """Stable JSON encoding for hashing.

    Ensures consistent ordering and representation across runs and Python versions
    (for basic types). This is critical to make seed derivation deterministic.
    """
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class RandomSource:
    """
    A thin wrapper around random.Random that every randomized operation takes
    explicitly, so generation and AI decisions are reproducible.

    All integer helpers are expressed through :meth:`random`, so a subclass that
    overrides only ``random()`` controls every draw (handy for boundary tests).
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self.seed = seed
        self._rng = random.Random(seed)
        if seed is not None:
            logger.debug("Initialized RandomSource with deterministic seed=%s", seed)
        else:
            logger.debug("Initialized RandomSource with non-deterministic seed")

    def random(self) -> float:
        return self._rng.random()

    def randint(self, a: int, b: int) -> int:
        """Uniform integer in the inclusive range [a, b]."""
        if b < a:
            raise ValueError(f"randint() empty range [{a}, {b}]")
        return a + int(self.random() * (b - a + 1))

    def index(self, length: int) -> int:
        """Uniform index into a sequence of ``length`` items."""
        return self.randint(0, length - 1)

    def choice(self, seq: Sequence[T]) -> T:
        if not seq:
            raise ValueError("RandomSource.choice() received an empty sequence")
        return seq[self.index(len(seq))]

    def coin(self) -> bool:
        return self.random() < 0.5


def seed_to_bytes(seed: Union[int, str, bytes]) -> bytes:
    """Canonical byte form of a master seed.

    Hex strings (``"0x..."``) keep every digit, leading zeros included, so the
    token printed for a generated seed maps back to the same bytes.
    """
    if isinstance(seed, bytes):
        return seed
    if isinstance(seed, int):
        if seed < 0:
            return str(seed).encode("utf-8")
        return seed.to_bytes((seed.bit_length() + 7) // 8 or 1, "big")
    if isinstance(seed, str):
        s = seed.strip()
        digits = s[2:] if s.lower().startswith("0x") else None
        if digits:
            try:
                value = int(digits, 16)
            except ValueError:
                return s.encode("utf-8")
            width = max((value.bit_length() + 7) // 8, (len(digits) + 1) // 2, 1)
            return value.to_bytes(width, "big")
        return s.encode("utf-8")
    raise TypeError("Unsupported seed type: %r" % (type(seed),))


@dataclass(frozen=True)
class RNGManager:
    """Derives independent, reproducible random streams from one master seed.

        rngm = RNGManager(seed)
        layout_rng = rngm.context_rng("dungeon_layout")
        ai_rng = rngm.context_rng("enemy_ai")

    With no seed, 16 random bytes are drawn; :attr:`replay_seed` then gives a
    ``"0x..."`` token that recreates the same streams when passed back in.
    """

    master_seed: Seed
    _material: bytes = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.master_seed is None:
            material = secrets.token_bytes(16)
            logger.debug("No master seed provided; generated 0x%s", material.hex())
        else:
            material = seed_to_bytes(self.master_seed)
        object.__setattr__(self, "_material", material)

    @property
    def replay_seed(self) -> Union[int, str, bytes]:
        """The seed to pass back in to reproduce this manager's streams."""
        if self.master_seed is None:
            return "0x" + self._material.hex()
        return self.master_seed

    def derive_seed(self, domain: str, *identifiers: Any) -> int:
        """64-bit seed for ``domain`` (plus optional identifiers), via BLAKE2b."""
        payload = _to_stable_json({"domain": domain, "ids": identifiers, "master": self._material.hex()})
        digest = hashlib.blake2b(payload.encode("utf-8"), digest_size=8).digest()
        return int.from_bytes(digest, "big")

    def context_rng(self, domain: str, *identifiers: Any) -> RandomSource:
        seed = self.derive_seed(domain, *identifiers)
        logger.debug("Random stream %s%s -> %d", domain, list(identifiers) or "", seed)
        return RandomSource(seed)

    def get_master_seed_hex(self) -> str:
        return self._material.hex()


__all__ = ["RandomSource", "RNGManager", "Seed", "seed_to_bytes"]
