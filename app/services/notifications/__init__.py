from .base import NotificationChannel
from .discord_notifier import DiscordNotifier
from .email_notifier import EmailNotifier
from .slack_notifier import SlackNotifier


def build_channels(config):
    """Every notification channel with usable configuration"""
    dashboard_url = f"{config.get('FRONTEND_URL', '').rstrip('/')}/admin/moderation" \
        if config.get('FRONTEND_URL') else None
    candidates = [
        DiscordNotifier(config.get('DISCORD_WEBHOOK_URL'), dashboard_url=dashboard_url),
        SlackNotifier(config.get('SLACK_WEBHOOK_URL')),
        EmailNotifier(
            config.get('SMTP_HOST'),
            port=config.get('SMTP_PORT', 587),
            username=config.get('SMTP_USERNAME'),
            password=config.get('SMTP_PASSWORD'),
            sender=config.get('ALERT_EMAIL_FROM'),
            recipients=config.get('ALERT_EMAIL_RECIPIENTS'),
            dashboard_url=dashboard_url
        )
    ]
    return [channel for channel in candidates if channel.is_configured()]


__all__ = ['NotificationChannel', 'DiscordNotifier', 'SlackNotifier', 'EmailNotifier',
           'build_channels']
