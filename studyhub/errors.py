"""Error taxonomy shared by services and routers.

Services raise these; the handlers registered in ``studyhub.main`` turn them
into ``{"error": message}`` JSON bodies with the matching status code.
"""


class StudyHubError(Exception):
    """Base class for errors that map to an HTTP status."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(StudyHubError):
    """Malformed or missing input."""

    status_code = 400
    default_message = "Invalid request"


class UnauthorizedError(StudyHubError):
    """No resolvable session."""

    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(StudyHubError):
    """Authenticated, but not the owner of the resource."""

    status_code = 403
    default_message = "Forbidden"


class NotFoundError(StudyHubError):
    """Resource absent or not visible to the caller."""

    status_code = 404
    default_message = "Not found"


class ConflictError(StudyHubError):
    """Unique constraint collision (e.g. post slug)."""

    status_code = 409
    default_message = "Conflict"


class StorageError(StudyHubError):
    """Unexpected failure from the database, auth provider or object store."""

    status_code = 500
    default_message = "Storage backend failure"


def validation_message(errors: list[dict]) -> str:
    """``field: message`` for the first pydantic error, as returned in 400 bodies."""
    if not errors:
        return ValidationError.default_message
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part != "body"]
    field = ".".join(loc)
    msg = str(first.get("msg"))
    return f"{field}: {msg}" if field else msg
