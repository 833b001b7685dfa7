"""
Error taxonomy for manager operations.

Every error carries the HTTP status it maps to, so the API layer can
translate it with a single exception handler.
"""


class TrackerError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TrackerError):
    """Empty or invalid user input. No state was changed."""
    status_code = 400


class PermissionDeniedError(TrackerError):
    status_code = 403


class NotFoundError(TrackerError):
    status_code = 404


class DuplicateMemberError(TrackerError):
    status_code = 409


class ProfileCreationError(TrackerError):
    """The session cannot proceed without a profile record."""
    status_code = 500


class RemoteOperationError(TrackerError):
    """A read or write against the document store failed."""
    status_code = 502
