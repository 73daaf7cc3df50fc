"""
Discord notification boundary.

The core decides the destination channel and whether to mention
everyone; delivery and payload layout live here.
"""

from .discord_client import ChannelSender, DiscordChannelClient, SendResult
from .formatter import COLORS, MessageFormatter

__all__ = [
    "COLORS",
    "ChannelSender",
    "DiscordChannelClient",
    "MessageFormatter",
    "SendResult",
]
