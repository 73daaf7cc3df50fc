"""
Conquest detection and notification.
"""

from .analyzer import ConquestAnalyzer, ProcessedEventSet, classify, is_relevant
from .config_store import MonitorConfigStore
from .models import (
    ConquestClassification,
    ConquestEvent,
    Coordinates,
    FilterMode,
    MonitorConfig,
    Owner,
    PollMode,
    RelevantEvent,
    SourceKind,
    TribeFilter,
)
from .notifier import ConquestNotifier, CycleResult, CycleState
from .sources import ConquestSource, PrimaryConquestSource, SecondaryConquestSource

__all__ = [
    "ConquestAnalyzer",
    "ConquestClassification",
    "ConquestEvent",
    "ConquestNotifier",
    "ConquestSource",
    "Coordinates",
    "CycleResult",
    "CycleState",
    "FilterMode",
    "MonitorConfig",
    "MonitorConfigStore",
    "Owner",
    "PollMode",
    "PrimaryConquestSource",
    "ProcessedEventSet",
    "RelevantEvent",
    "SecondaryConquestSource",
    "SourceKind",
    "TribeFilter",
    "classify",
    "is_relevant",
]
