import logging
import os
from typing import Optional

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"

# -v count -> level; anything past the end maps to the last entry.
VERBOSITY_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)


def resolve_level(verbosity: int = 0, env_level: Optional[str] = None) -> int:
    """Pick the root log level.

    SHADOWCRAWL_LOG_LEVEL (passed as env_level) wins when it names a real level;
    otherwise the -v count selects WARNING, INFO or DEBUG.
    """
    if env_level:
        level = logging.getLevelName(env_level.strip().upper())
        if isinstance(level, int):
            return level
    return VERBOSITY_LEVELS[min(max(verbosity, 0), len(VERBOSITY_LEVELS) - 1)]


def configure_logging(verbosity: int = 0) -> int:
    """Configure the root logger for command line use and return the chosen level."""
    level = resolve_level(verbosity, os.getenv("SHADOWCRAWL_LOG_LEVEL"))
    logging.basicConfig(level=level, format=LOG_FORMAT)
    return level
