import html
import logging
import smtplib
from datetime import datetime
from email.message import EmailMessage
from typing import List, Optional

from .base import NotificationChannel

logger = logging.getLogger(__name__)

PRIORITY_COLORS = {
    'high': '#ff4444',
    'medium': '#ffaa00',
    'low': '#00aa00'
}


class EmailNotifier(NotificationChannel):
    """HTML alert emails to the configured administrator addresses over SMTP"""

    name = 'email'

    def __init__(self, host: Optional[str], port: int = 587, username: Optional[str] = None,
                 password: Optional[str] = None, sender: Optional[str] = None,
                 recipients: Optional[List[str]] = None, dashboard_url: Optional[str] = None,
                 timeout: float = 10, smtp_factory=smtplib.SMTP):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username
        self.recipients = list(recipients or [])
        self.dashboard_url = dashboard_url
        self.timeout = timeout
        self.smtp_factory = smtp_factory

    def is_configured(self) -> bool:
        return bool(self.host and self.sender and self.recipients)

    def build_message(self, subject, body, priority):
        message = EmailMessage()
        message['Subject'] = f"[{priority.upper()}] UniCon Content Moderation Alert: {subject}"
        message['From'] = self.sender
        message['To'] = ', '.join(self.recipients)
        message.set_content(f"{subject}\n\n{body}\n\nPriority: {priority.upper()}")

        dashboard = ''
        if self.dashboard_url:
            dashboard = (
                f'<p><a href="{html.escape(self.dashboard_url)}">View Dashboard</a></p>')
        message.add_alternative(f"""\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <div style="background-color: {PRIORITY_COLORS.get(priority, '#00aa00')}; color: white; padding: 20px;">
    <h1>Content Moderation Alert</h1>
    <h2>{html.escape(subject)}</h2>
  </div>
  <div style="padding: 20px; background-color: #f9f9f9;">
    <p>{html.escape(body).replace(chr(10), '<br>')}</p>
    <p><strong>Time:</strong> {datetime.utcnow().strftime('%Y-%m-%d %H:%M UTC')}</p>
    <p><strong>Priority:</strong> {priority.upper()}</p>
  </div>
  {dashboard}
</div>
""", subtype='html')
        return message

    def send(self, subject: str, body: str, priority: str = 'medium') -> bool:
        if not self.is_configured():
            logger.warning("Skipping email alert - SMTP not configured")
            return False

        message = self.build_message(subject, body, priority)
        try:
            with self.smtp_factory(self.host, self.port, timeout=self.timeout) as smtp:
                smtp.starttls()
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email alert: {e}")
            return False

        logger.info(f"Alert email sent: {subject}")
        return True
