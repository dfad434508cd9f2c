"""
Domain errors raised by the service layer.

Routers translate these into HTTP responses; persistence and storage
failures are not wrapped here and propagate as-is.
"""


class CleanCheckError(Exception):
    """Base class for user-facing domain errors."""

    message = "Request could not be completed"

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class NotFoundError(CleanCheckError):
    """Referenced class, area, default, report or account does not exist."""

    message = "Record not found"


class AlreadyAtTopError(CleanCheckError):
    message = "已經在最上方"


class AlreadyAtBottomError(CleanCheckError):
    message = "已經在最下方"


class InvalidDateFormatError(CleanCheckError, ValueError):
    message = "日期格式錯誤，請使用 YYYY-MM-DD"
