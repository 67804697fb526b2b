"""
Domain errors. Each one carries the HTTP status the API answers with, so
handlers only raise and the app-level exception handler does the mapping.
"""


class StocktrackError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidArgument(StocktrackError):
    status_code = 400


class InsufficientInventory(StocktrackError):
    status_code = 400


class Unauthorized(StocktrackError):
    status_code = 401


class Forbidden(StocktrackError):
    status_code = 403


class NotFound(StocktrackError):
    status_code = 404


class Conflict(StocktrackError):
    status_code = 409
