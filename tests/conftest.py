import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from shadowcrawl.dungeon.tiles import Grid, Tile  # noqa: E402
from shadowcrawl.rng import RandomSource  # noqa: E402


class FixedRandom(RandomSource):
    """RandomSource whose every draw returns the same value."""

    def __init__(self, value: float) -> None:
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.fixture
def fixed_rng():
    return FixedRandom


@pytest.fixture
def open_grid():
    def make(width: int = 5, height: int = 5) -> Grid:
        return Grid(width, height, Tile.FLOOR)

    return make


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    for key in ("SEED", "WIDTH", "HEIGHT", "GOD_MODE", "REVEAL_MAP", "LOG_LEVEL"):
        monkeypatch.delenv("SHADOWCRAWL_" + key, raising=False)
