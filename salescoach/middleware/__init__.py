"""Application middleware package."""

from .logging import StructuredLoggingMiddleware
from .security import SecurityMiddleware
from .telemetry import TelemetryMiddleware

__all__ = ["SecurityMiddleware", "StructuredLoggingMiddleware", "TelemetryMiddleware"]
