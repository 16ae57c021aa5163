"""Discord alerting system."""

from datetime import datetime
from typing import Any, Dict

import httpx
from loguru import logger

from ..storage.models import Shop
from .rules import Alert


class DiscordAlerter:
    """Send store alerts to Discord via webhook."""

    def __init__(self, webhook_url: str):
        """Initialize Discord alerter.

        Args:
            webhook_url: Discord webhook URL
        """
        self.webhook_url = webhook_url

    async def send_alert(self, shop: Shop, alert: Alert) -> bool:
        """Send a rich embed alert to Discord.

        Args:
            shop: Shop the alert belongs to
            alert: Alert raised by the rule engine

        Returns:
            True if alert sent successfully
        """
        if not self.webhook_url:
            logger.warning("Discord webhook URL not configured")
            return False

        try:
            payload = {"embeds": [self._create_embed(shop, alert)]}

            async with httpx.AsyncClient() as client:
                response = await client.post(self.webhook_url, json=payload, timeout=10)
                response.raise_for_status()

            logger.info(f"Discord alert sent for {shop.shop_domain}: {alert.title}")
            return True

        except Exception as e:
            logger.error(f"Failed to send Discord alert: {e}")
            return False

    def _create_embed(self, shop: Shop, alert: Alert) -> Dict[str, Any]:
        """Create Discord embed for a store alert.

        Args:
            shop: Shop instance
            alert: Alert to render

        Returns:
            Discord embed dictionary
        """
        colors = {
            "critical": 0xFF0000,  # Red
            "high": 0xFFA500,  # Orange
            "medium": 0xFFFF00,  # Yellow
            "low": 0x808080,  # Grey
        }
        emoji_map = {
            "score_drop": "📉",
            "visibility_issue": "👀",
            "critical_issues": "⚠️",
            "weekly_report": "📊",
        }

        emoji = emoji_map.get(alert.type, "🔔")
        fields = [
            {"name": "🏪 Store", "value": shop.name or shop.shop_domain, "inline": True},
            {"name": "🚦 Priority", "value": alert.priority.upper(), "inline": True},
        ]

        if shop.ai_score is not None:
            fields.append({"name": "📊 AI Score", "value": f"**{shop.ai_score:.0f}/100**", "inline": True})

        for key, value in alert.metadata.items():
            if isinstance(value, float):
                value = f"{value:.1f}"
            fields.append({"name": key.replace("_", " ").title(), "value": str(value), "inline": True})

        if alert.action_url:
            label = alert.action_label or "Open"
            fields.append({
                "name": "👉 Next step",
                "value": f"[{label}](https://{shop.shop_domain}{alert.action_url})",
                "inline": False,
            })

        return {
            "title": f"{emoji} {alert.title}",
            "description": alert.message,
            "color": colors.get(alert.priority, 0x808080),
            "fields": fields,
            "footer": {"text": f"{shop.shop_domain} | Surfaced"},
            "timestamp": datetime.utcnow().isoformat(),
        }
