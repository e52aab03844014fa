# -*- coding: utf-8 -*-
"""
Error taxonomy for OneDrive filesystem operations.

Every error surfaced to callers derives from OneDriveError and carries enough
context (path, operation, HTTP status) to diagnose the failing call without
re-running it. Rate limiting and transient 5xx responses during a chunked
upload are retried internally and never appear here unless the retry budget
is exhausted (UploadFailedError).
"""


class OneDriveError(Exception):
    """Base class for all onedrive_fs errors"""


class ConfigurationError(OneDriveError):
    """Invalid configuration, detected before any network activity"""


class AuthenticationError(OneDriveError):
    """Token acquisition failed"""


class MetadataError(OneDriveError):
    """Remote item descriptor is malformed (neither file nor folder, bad timestamp)"""


class ListingError(OneDriveError):
    """
    A directory listing could not be completed.

    Attributes:
        path (str): Logical path being listed
        status (int): HTTP status of the failing page, None for transport errors
    """

    def __init__(self, message, path=None, status=None):
        super().__init__(message)
        self.path = path
        self.status = status


class OperationError(OneDriveError):
    """
    A single-request operation (delete, move, copy, mkdir, read, ...) failed.

    Attributes:
        operation (str): Operation name, e.g. 'delete' or 'move'
        path (str): Logical path the operation was applied to
        status (int): HTTP status returned, None for transport errors
    """

    def __init__(self, operation, path, status=None, detail=None):
        self.operation = operation
        self.path = path
        self.status = status
        self.detail = detail

        message = f"{operation} failed for '{path}'"
        if status is not None:
            message += f": HTTP {status}"
        if detail:
            message += f" - {detail}"
        super().__init__(message)


class UploadError(OneDriveError):
    """
    Upload ended in an unexpected state.

    Attributes:
        path (str): Logical destination path
        status (int): HTTP status that ended the upload, if any
    """

    def __init__(self, message, path=None, status=None):
        super().__init__(message)
        self.path = path
        self.status = status


class SessionExpiredError(UploadError):
    """Upload URL returned 404; the session is gone and the upload must restart"""


class UploadFailedError(UploadError):
    """Chunk retries exhausted on rate limiting or server errors"""

    def __init__(self, message, path=None, status=None, retries=0):
        super().__init__(message, path=path, status=status)
        self.retries = retries


class ConflictError(UploadError):
    """Final chunk rejected with 409: an item with that name already exists"""
