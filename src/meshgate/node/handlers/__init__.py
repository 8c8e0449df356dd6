"""
Payload handlers run by the dispatcher for frames that passed the envelope check
"""

from .base import BaseHandler
from .relay import RelayCommandHandler
from .telemetry import TelemetryForwardHandler

__all__ = ["BaseHandler", "RelayCommandHandler", "TelemetryForwardHandler"]
