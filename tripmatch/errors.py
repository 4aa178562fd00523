"""
Error taxonomy for the matching and conversion service.

Helpers and stores raise these; the public service operations catch them and
turn them into `{success: False, message}` envelopes.
"""


class ConversionError(Exception):
    """Base error carrying a caller-facing message"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ConversionError):
    """Request, package or session does not exist"""


class UnauthorizedError(ConversionError):
    """Caller's role (or ownership) does not allow the operation"""


class InvalidRequestError(ConversionError):
    """Malformed input, rejected before any computation"""


class UpstreamFailureError(ConversionError):
    """A dependency (analysis, pricing, booking) failed"""


class InvalidTransitionError(ConversionError):
    """The session cannot move from its current status to the requested one"""


class SessionConflictError(ConversionError):
    """The session was written by someone else since it was loaded"""
