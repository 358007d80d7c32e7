"""Data models for pteropurge.

This module exports the core data structures used throughout the application.
"""

from pteropurge.models.run import (
    ErrorLog,
    PurgeEvent,
    PurgeEventType,
    RunPhase,
    RunProgress,
    RunSnapshot,
    RunStatistics,
    ServerOutcome,
    ServerResult,
)
from pteropurge.models.server import Server

__all__ = [
    "ErrorLog",
    "PurgeEvent",
    "PurgeEventType",
    "RunPhase",
    "RunProgress",
    "RunSnapshot",
    "RunStatistics",
    "Server",
    "ServerOutcome",
    "ServerResult",
]
