"""Domain errors raised by the directory services.

Routers let these propagate; ``app.main`` turns them into JSON responses.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


class DirectoryError(Exception):
    status_code = 400
    detail = "Bad request"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.detail)
        if detail is not None:
            self.detail = detail


class NotFoundError(DirectoryError):
    """Missing listing, unresolvable slug, unknown allow-list entry.

    Always rendered as a bare "Not Found" so callers cannot tell why.
    """

    status_code = 404
    detail = "Not Found"


class ValidationFailedError(DirectoryError):
    status_code = 422
    detail = "Validation failed"

    def __init__(self, errors: list[FieldError]) -> None:
        super().__init__()
        self.errors = errors

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationFailedError":
        return cls([FieldError(field, message)])


class UnauthorizedError(DirectoryError):
    """Caller is neither the owner of the listing nor staff."""

    status_code = 403
    detail = "Unauthorized"


class ForbiddenError(DirectoryError):
    """Caller lacks the subscription entitlement for this action."""

    status_code = 403
    detail = "A qualifying subscription is required to manage a business listing"


class RateLimitedError(DirectoryError):
    status_code = 429
    detail = "Too many requests, please slow down"
