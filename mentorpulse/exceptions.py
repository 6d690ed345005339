"""
Domain error taxonomy.

Services raise these; the HTTP layer renders them as
``{"success": false, "message": ...}`` with the matching status code and the
realtime gateway turns them into ``error`` events.
"""


class MentorPulseError(Exception):
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class ValidationError(MentorPulseError):
    """Malformed or missing input. Never retried."""
    status_code = 400


class AuthenticationError(MentorPulseError):
    status_code = 401


class AuthorizationError(MentorPulseError):
    status_code = 403


class NotFoundError(MentorPulseError):
    status_code = 404


class ConflictError(MentorPulseError):
    """Uniqueness or state race; the caller should re-fetch and retry once."""
    status_code = 409


class TransientStoreError(MentorPulseError):
    """Persistence failure. Logged and surfaced as a generic failure."""
    status_code = 503

    def __init__(self, message: str = "Storage temporarily unavailable"):
        super().__init__(message)
