"""Response models for the Atlas HTTP server."""

from .health import HealthResponse

__all__ = ["HealthResponse"]
