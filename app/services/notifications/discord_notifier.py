"""Discord webhook notification channel for moderation alerts."""

import logging
from datetime import datetime
from typing import Optional

import requests

from .base import NotificationChannel, webhook_session

logger = logging.getLogger(__name__)


class DiscordNotifier(NotificationChannel):
    """
    Sends alerts to Discord via webhooks.

    Features:
    - Rich embed formatting with a colour per priority
    - Automatic retries with exponential backoff
    """

    name = 'discord'

    # Discord embed color codes
    PRIORITY_COLORS = {
        'high': 0xFF0000,  # Red
        'medium': 0xFFA500,  # Orange
        'low': 0x3498DB  # Blue
    }
    PRIORITY_EMOJI = {
        'high': "🚨",
        'medium': "🚩",
        'low': "ℹ️"
    }

    def __init__(self, webhook_url: Optional[str] = None, dashboard_url: Optional[str] = None,
                 session: Optional[requests.Session] = None):
        self.webhook_url = webhook_url
        self.dashboard_url = dashboard_url
        self.session = session or webhook_session()

    def is_configured(self) -> bool:
        return bool(self.webhook_url)

    def send(self, subject: str, body: str, priority: str = 'medium') -> bool:
        """
        Send one alert as a Discord embed.

        Returns:
            True if notification sent successfully, False otherwise
        """
        if not self.is_configured():
            logger.warning("Discord webhook not configured, skipping notification")
            return False

        fields = [
            {
                "name": "Priority",
                "value": priority.upper(),
                "inline": True
            }
        ]
        if self.dashboard_url:
            fields.append({
                "name": "Links",
                "value": f"[View Dashboard]({self.dashboard_url})",
                "inline": False
            })

        embed = {
            "title": f"{self.PRIORITY_EMOJI.get(priority, '')} {subject}".strip(),
            # Discord caps embed descriptions at 4096 characters
            "description": body[:4096],
            "color": self.PRIORITY_COLORS.get(priority, self.PRIORITY_COLORS['low']),
            "fields": fields,
            "timestamp": datetime.utcnow().isoformat(),
            "footer": {
                "text": "UniCon Content Moderation"
            }
        }

        try:
            response = self.session.post(
                self.webhook_url,
                json={"embeds": [embed]},
                timeout=10
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to send Discord notification: {e}")
            return False

        logger.info(f"Discord notification sent: {subject}")
        return True

    def close(self):
        self.session.close()
