"""Alert rules and delivery"""

from .discord import DiscordAlerter
from .rules import Alert, AlertEngine

__all__ = ["Alert", "AlertEngine", "DiscordAlerter"]
