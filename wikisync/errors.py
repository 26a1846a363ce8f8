"""Exception hierarchy shared across wikisync components."""


class WikiSyncError(RuntimeError):
    """Base class for caller-visible wikisync failures."""


class ContextNotFoundError(WikiSyncError):
    """Raised when a mutation requires a persisted context that does not exist."""


class ConfigError(WikiSyncError):
    """Raised when the configuration file cannot be parsed."""


__all__ = ["ConfigError", "ContextNotFoundError", "WikiSyncError"]
