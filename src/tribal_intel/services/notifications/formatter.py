"""
Discord Message Formatter.

Builds minimal embed payloads for conquest events, kill summaries and
upgrade analyses.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from ...core.formatters import format_points, format_time_span

if TYPE_CHECKING:
    from ..buildings.models import AnalysisResult
    from ..conquest.models import RelevantEvent
    from ..kills.models import KillSummary


# Color codes for Discord embeds (decimal format)
COLORS = {
    "gain": 0x2ECC71,  # Green - village taken by the home tribe
    "loss": 0xE74C3C,  # Red - village lost by the home tribe
    "neutral": 0x95A5A6,  # Gray - other tribes
    "kills": 0xF1C40F,  # Gold - kill report
    "default": 0x3498DB,  # Blue - default
}

TITLES = {
    "gain": "Village conquered",
    "loss": "Village lost",
    "neutral": "Conquest",
}


def _iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


@dataclass
class MessageFormatter:
    """
    Formats results as Discord message payloads.

    world_url, when set, turns village names into map links.
    """

    world_url: str | None = None

    def format_conquest(self, relevant: RelevantEvent) -> dict[str, Any]:
        event = relevant.event
        kind = relevant.classification.value

        village = event.village_name
        if event.coordinates:
            village = f"{village} ({event.coordinates})"
        if self.world_url and event.village_id is not None:
            village = f"[{village}]({self.world_url}/game.php?screen=info_village&id={event.village_id})"

        embed = {
            "title": TITLES[kind],
            "color": COLORS[kind],
            "description": village,
            "fields": [
                {"name": "From", "value": event.old_owner.display, "inline": True},
                {"name": "To", "value": event.new_owner.display, "inline": True},
                {"name": "Points", "value": format_points(event.points), "inline": True},
            ],
            "timestamp": _iso(event.timestamp),
            "footer": {"text": f"source: {event.source.value}"},
        }
        return {"embeds": [embed]}

    def format_kill_summary(self, summary: KillSummary | None) -> dict[str, Any]:
        if summary is None or not summary.has_changes:
            return {
                "embeds": [
                    {
                        "title": "Kill report",
                        "color": COLORS["default"],
                        "description": "No new kills since the last report.",
                    }
                ]
            }

        lines = []
        for i, player in enumerate(summary.top_gainers, 1):
            name = player.player_name or f"Player {player.player_id}"
            if player.tribe_tag:
                name = f"{name} [{player.tribe_tag}]"
            lines.append(f"{i}. {name}: +{format_points(player.total_gained)}")

        totals = ", ".join(f"{c.value}: +{format_points(n)}" for c, n in summary.totals.items())
        return {
            "embeds": [
                {
                    "title": "Kill report",
                    "color": COLORS["kills"],
                    "description": "\n".join(lines),
                    "fields": [
                        {"name": "Players", "value": str(summary.total_players), "inline": True},
                        {
                            "name": "Period",
                            "value": format_time_span(summary.elapsed_seconds),
                            "inline": True,
                        },
                        {"name": "Totals", "value": totals, "inline": False},
                    ],
                }
            ]
        }

    def format_upgrade_analysis(self, result: AnalysisResult, village_label: str) -> dict[str, Any]:
        if not result.success or result.summary is None:
            return {"content": f"{village_label}: {result.reason}"}

        fields = []
        for period in result.periods[-10:]:
            if period.explained:
                best = period.hypotheses[0]
                value = ", ".join(
                    f"{s.building} {s.from_level}->{s.to_level}" for s in best.steps
                )
            else:
                value = "no matching building cost"
            fields.append(
                {
                    "name": f"+{format_points(period.delta)} in {period.time_span}",
                    "value": value,
                    "inline": False,
                }
            )

        summary = result.summary
        return {
            "embeds": [
                {
                    "title": f"Building activity: {village_label}",
                    "color": COLORS["default"],
                    "description": (
                        f"{summary.total_periods} periods, "
                        f"+{format_points(summary.total_points)} points, "
                        f"confidence {summary.confidence}"
                    ),
                    "fields": fields,
                }
            ]
        }
