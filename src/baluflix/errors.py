"""Error taxonomy shared by the catalog, auth gate and media streamer.

Each error carries the HTTP status and a short machine code so the
HTTP layer can map any of them with a single exception handler.
"""


class BaluflixError(Exception):
    """Base class for all expected baluflix failures."""

    status_code = 500
    code = "error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(BaluflixError):
    """A required field (title, url, file) is missing or empty."""

    status_code = 400
    code = "validation_error"


class AuthError(BaluflixError):
    """Missing, invalid or expired credential, or a failed login."""

    status_code = 401
    code = "unauthorized"


class AuthorizationError(AuthError):
    """Valid credential without the required privilege."""

    status_code = 403
    code = "forbidden"


class NotFoundError(BaluflixError):
    """Unknown record key or missing media resource."""

    status_code = 404
    code = "not_found"


class RangeNotSatisfiableError(BaluflixError):
    """The requested byte range lies outside the resource."""

    status_code = 416
    code = "range_not_satisfiable"

    def __init__(self, start: int | None, size: int) -> None:
        shown = "?" if start is None else start
        super().__init__(f"Requested range not satisfiable\n{shown} >= {size}")
        self.start = start
        self.size = size


class StorageError(BaluflixError):
    """Persistence or filesystem failure."""

    status_code = 500
    code = "storage_error"
