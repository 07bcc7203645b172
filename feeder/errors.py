"""Exception hierarchy for Feeder."""

from typing import Optional


class FeederError(Exception):
    """Base class for all Feeder errors."""


class ConfigurationError(FeederError):
    """Invalid or missing configuration."""


class InvalidInputError(FeederError, ValueError):
    """An identifier was None, empty or whitespace only."""


class HashingUnavailableError(FeederError):
    """The SHA-256 primitive cannot be constructed on this interpreter."""


class StoreUnavailableError(FeederError):
    """The shared dedup store could not be consulted.

    A claim decision must never be inferred when this is raised.
    """


class StoreCorruptedError(StoreUnavailableError):
    """The shared map holds a value that is not an 8-byte signature."""


class DirectoryAccessError(FeederError):
    """A configured directory is missing, not a directory, or unreadable."""

    def __init__(self, directory: str, reason: str):
        super().__init__(f"{directory}: {reason}")
        self.directory = directory
        self.reason = reason


class PerIdentifierError(FeederError):
    """Evaluating a single identifier failed unexpectedly."""

    def __init__(self, identifier: str, cause: Optional[BaseException] = None):
        super().__init__(f"Failed to evaluate {identifier}: {cause}")
        self.identifier = identifier
        self.cause = cause


class EnumerationPendingError(FeederError):
    """A previous, timed-out enumeration is still running."""
