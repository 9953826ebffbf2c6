import logging
from datetime import datetime
from typing import Optional

import requests

from .base import NotificationChannel, webhook_session

logger = logging.getLogger(__name__)


class SlackNotifier(NotificationChannel):
    """Incoming-webhook alerts with a colour-coded attachment"""

    name = 'slack'

    PRIORITY_COLORS = {
        'high': 'danger',
        'medium': 'warning',
        'low': 'good'
    }

    def __init__(self, webhook_url: Optional[str] = None,
                 session: Optional[requests.Session] = None):
        self.webhook_url = webhook_url
        self.session = session or webhook_session()

    def is_configured(self) -> bool:
        return bool(self.webhook_url)

    def build_payload(self, subject, body, priority):
        return {
            'text': f"🚨 Content Moderation Alert ({priority.upper()}): {subject}",
            'attachments': [{
                'color': self.PRIORITY_COLORS.get(priority, 'good'),
                'fields': [
                    {'title': 'Message', 'value': body, 'short': False},
                    {'title': 'Time', 'value': datetime.utcnow().strftime('%Y-%m-%d %H:%M UTC'),
                     'short': True}
                ]
            }]
        }

    def send(self, subject: str, body: str, priority: str = 'medium') -> bool:
        if not self.is_configured():
            return False

        try:
            response = self.session.post(
                self.webhook_url,
                json=self.build_payload(subject, body, priority),
                timeout=10
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to send Slack alert: {e}")
            return False

        logger.info(f"Slack alert sent: {subject}")
        return True

    def close(self):
        self.session.close()
