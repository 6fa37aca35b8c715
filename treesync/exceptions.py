"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class TreeSyncError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(TreeSyncError):
    """Raised for issues related to configuration loading or validation."""


class NoUserError(TreeSyncError):
    """Raised when no user is configured for the current session."""


class StorageError(TreeSyncError):
    """Raised when the local sqlite database cannot be read or written."""


class SessionStorageError(StorageError):
    """
    Raised when a sync session record cannot be opened or closed.
    This aborts the sync attempt that triggered it.
    """


class ListingError(TreeSyncError):
    """Raised when the children of a node cannot be listed from the remote."""


class DownloadError(TreeSyncError):
    """Raised when a single file could not be downloaded after all retries."""
