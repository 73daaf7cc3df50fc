"""
Kill rankings, tracking and scheduled reports.
"""

from .client import KillStatsClient, decode_kill_feed, parse_kill_feed
from .models import (
    CategoryGain,
    KillCategory,
    KillChanges,
    KillEntry,
    KillSummary,
    PlayerKillChange,
)
from .reporter import KillsReportConfig, KillsReporter
from .tracker import KillSnapshot, KillsTracker, TrackResult, compare_snapshots, summarize_changes

__all__ = [
    "CategoryGain",
    "KillCategory",
    "KillChanges",
    "KillEntry",
    "KillSnapshot",
    "KillStatsClient",
    "KillSummary",
    "KillsReportConfig",
    "KillsReporter",
    "KillsTracker",
    "PlayerKillChange",
    "TrackResult",
    "compare_snapshots",
    "decode_kill_feed",
    "parse_kill_feed",
    "summarize_changes",
]
