"""
Error types for Insult Bot.
"""


class InsultBotError(Exception):
    """Base class for failures raised out of the word cache and its collaborators."""


class ConfigurationError(InsultBotError):
    """A required setting (table name, API token) is missing."""


class RemoteStoreError(InsultBotError):
    """Scanning or writing the remote word table failed."""


class PoisonedCacheError(InsultBotError):
    """The cache lock was abandoned mid-write and the cache can no longer be trusted.

    Distinct from an empty cache: an empty cache still answers "Shut up.",
    a poisoned one answers nothing.
    """
