class ShadowcrawlError(Exception):
    """Base error for shadowcrawl exceptions."""


class ConfigError(ShadowcrawlError):
    """Raised when a settings document cannot be read, parsed or validated."""


class InvalidActionError(ShadowcrawlError):
    """Raised when text does not name a known player action."""
