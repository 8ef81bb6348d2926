"""Exceptions raised by the label service

Permission problems (NotPermittedError and its subclasses) are reported to
clients exactly like a missing file, so callers must not leak which of the
two happened. Validation and quota errors depend only on caller input and
are safe to expose verbatim.
"""


class LabelError(Exception):
    """Base class for label service failures"""


class NotPermittedError(LabelError):
    """The current actor may not touch this file"""


class NotAuthenticatedError(NotPermittedError):
    """No current user"""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class ForbiddenError(NotPermittedError):
    """Authenticated, but lacking read or write access to the file"""

    def __init__(self, message: str = "Cannot access file"):
        super().__init__(message)


class LabelValidationError(LabelError, ValueError):
    """Malformed label key or value"""


class QuotaExceededError(LabelError, OverflowError):
    """The user owns too many labels to create another one"""

    def __init__(self, current_count: int, limit: int):
        self.current_count = current_count
        self.limit = limit
        super().__init__(
            f"Label limit exceeded. You have {current_count} labels, maximum is {limit}."
        )
