"""Health check response model."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class HealthResponse:
    """Health check response.

    Attributes:
        status: Health status ("healthy" or "unhealthy").
        service: Service name.
        version: Server version string.
        storage: Active storage backend.
        uptime_seconds: Seconds since server start.
        timestamp: Current server time.
    """

    status: str
    service: str
    version: str
    storage: str
    uptime_seconds: float
    timestamp: datetime

    def to_dict(self) -> dict[str, str | float]:
        """Convert to JSON-serializable dictionary."""
        return {
            "status": self.status,
            "service": self.service,
            "version": self.version,
            "storage": self.storage,
            "uptime_seconds": self.uptime_seconds,
            "timestamp": self.timestamp.isoformat(),
        }
