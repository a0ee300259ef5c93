"""
Exception types raised by the migration engine.
"""


class MigrationError(Exception):
    """Base class for errors raised by the migration engine."""


class CorruptDocumentError(MigrationError, ValueError):
    """Raised when stored data is too broken to normalize safely."""


class ReadOnlyDocumentError(MigrationError, RuntimeError):
    """Raised when writing to a document of a locked archive."""


class DocumentLoadError(MigrationError):
    """Raised when a stored file cannot be read at all."""


class InvalidVersionError(MigrationError, ValueError):
    """Raised for a version string with no numeric components."""
