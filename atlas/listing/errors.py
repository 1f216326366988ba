"""Listing error taxonomy.

Only these errors cross the listing service boundary. Malformed parameters
and encoding failures are absorbed inside the pipeline.
"""

from typing import Any

NOT_FOUND = "NOT_FOUND"
INTERNAL_ERROR = "INTERNAL_ERROR"


class ListingError(Exception):
    """Base error carrying an error code, HTTP status and optional details."""

    code: str = INTERNAL_ERROR
    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Convert to the error envelope."""
        error: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details is not None:
            error["details"] = self.details
        return {"error": error}


class NotFoundError(ListingError):
    """A referenced entity does not exist."""

    code = NOT_FOUND
    status_code = 404

    def __init__(self, kind: str, identifier: str) -> None:
        label = kind.capitalize()
        super().__init__(
            f"{label} not found: {identifier}",
            details={f"{kind}Id": identifier},
        )
        self.kind = kind
        self.identifier = identifier


class InternalError(ListingError):
    """Unexpected failure. The message is safe to show to callers."""

    code = INTERNAL_ERROR
    status_code = 500
