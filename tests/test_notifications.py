import smtplib
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest.mock import MagicMock

import pytest
import requests

from app.services.monitoring_service import Alert, AlertingMonitor
from app.services.notifications import (
    DiscordNotifier,
    EmailNotifier,
    SlackNotifier,
    build_channels,
)


def _session():
    session = MagicMock()
    session.post.return_value.raise_for_status.return_value = None
    return session


@pytest.fixture
def unavailable_webhook():
    """Local endpoint answering every POST with 503; yields (url, hits)"""
    hits = []

    class Handler(BaseHTTPRequestHandler):
        def do_POST(self):
            self.rfile.read(int(self.headers.get('Content-Length', 0)))
            hits.append(self.path)
            self.send_response(503)
            self.send_header('Content-Length', '0')
            self.end_headers()

        def log_message(self, format, *args):
            pass

    server = ThreadingHTTPServer(('127.0.0.1', 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}/hook", hits
    server.shutdown()
    server.server_close()


class TestDiscordNotifier:

    def test_sends_embed_with_priority_color(self):
        session = _session()
        notifier = DiscordNotifier('https://discord.test/hook',
                                   dashboard_url='https://unicon.test/admin/moderation',
                                   session=session)

        assert notifier.send('NSFW Detection Spike', '4 detections', 'high') is True

        url = session.post.call_args.args[0]
        embed = session.post.call_args.kwargs['json']['embeds'][0]
        assert url == 'https://discord.test/hook'
        assert embed['color'] == 0xFF0000
        assert embed['title'].endswith('NSFW Detection Spike')
        assert embed['description'] == '4 detections'
        assert 'https://unicon.test/admin/moderation' in embed['fields'][-1]['value']

    def test_long_body_is_truncated(self):
        session = _session()
        DiscordNotifier('https://discord.test/hook', session=session).send('Report', 'x' * 5000, 'low')
        embed = session.post.call_args.kwargs['json']['embeds'][0]
        assert len(embed['description']) == 4096

    def test_transport_failure_returns_false(self):
        session = MagicMock()
        session.post.side_effect = requests.exceptions.ConnectionError('refused')
        notifier = DiscordNotifier('https://discord.test/hook', session=session)
        assert notifier.send('Subject', 'Body') is False

    def test_unconfigured_does_not_post(self):
        session = _session()
        assert DiscordNotifier(None, session=session).send('Subject', 'Body') is False
        session.post.assert_not_called()


class TestSlackNotifier:

    def test_priority_colors(self):
        notifier = SlackNotifier('https://hooks.slack.test/x', session=_session())
        assert notifier.build_payload('s', 'b', 'high')['attachments'][0]['color'] == 'danger'
        assert notifier.build_payload('s', 'b', 'medium')['attachments'][0]['color'] == 'warning'
        assert notifier.build_payload('s', 'b', 'low')['attachments'][0]['color'] == 'good'

    def test_send(self):
        session = _session()
        notifier = SlackNotifier('https://hooks.slack.test/x', session=session)

        assert notifier.send('Appeal Backlog', '6 appeals', 'medium') is True

        payload = session.post.call_args.kwargs['json']
        assert 'Appeal Backlog' in payload['text']
        assert payload['attachments'][0]['fields'][0]['value'] == '6 appeals'

    def test_http_error_returns_false(self):
        session = MagicMock()
        session.post.return_value.raise_for_status.side_effect = requests.exceptions.HTTPError('500')
        assert SlackNotifier('https://hooks.slack.test/x', session=session).send('s', 'b') is False


class TestEmailNotifier:

    def _notifier(self, smtp_factory):
        return EmailNotifier(
            'smtp.unicon.test', port=587, username='alerts@unicon.test', password='secret',
            recipients=['mods@unicon.test', 'dean@unicon.test'], smtp_factory=smtp_factory)

    def test_sends_over_starttls(self):
        factory = MagicMock()
        smtp = factory.return_value.__enter__.return_value

        assert self._notifier(factory).send('Appeal Backlog', '5 appeals', 'medium') is True

        factory.assert_called_once_with('smtp.unicon.test', 587, timeout=10)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with('alerts@unicon.test', 'secret')
        message = smtp.send_message.call_args.args[0]
        assert message['Subject'] == '[MEDIUM] UniCon Content Moderation Alert: Appeal Backlog'
        assert message['To'] == 'mods@unicon.test, dean@unicon.test'
        assert message['From'] == 'alerts@unicon.test'

    def test_html_body_is_escaped(self):
        message = self._notifier(MagicMock()).build_message('<b>Spike</b>', 'a < b', 'high')
        html_part = message.get_body(preferencelist=('html',)).get_content()
        assert '&lt;b&gt;Spike&lt;/b&gt;' in html_part
        assert '#ff4444' in html_part

    def test_smtp_failure_returns_false(self):
        factory = MagicMock(side_effect=smtplib.SMTPConnectError(421, 'busy'))
        assert self._notifier(factory).send('s', 'b') is False

    def test_requires_recipients(self):
        assert not EmailNotifier('smtp.unicon.test', sender='a@unicon.test').is_configured()


def test_build_channels_only_includes_configured():
    channels = build_channels({
        'DISCORD_WEBHOOK_URL': 'https://discord.test/hook',
        'FRONTEND_URL': 'https://unicon.test/',
        'SMTP_HOST': 'smtp.unicon.test',
    })

    assert [channel.name for channel in channels] == ['discord']
    assert channels[0].dashboard_url == 'https://unicon.test/admin/moderation'


@pytest.mark.parametrize('notifier_class', [SlackNotifier, DiscordNotifier])
def test_failing_webhook_is_posted_once_per_dispatch(notifier_class, unavailable_webhook):
    url, hits = unavailable_webhook
    monitor = AlertingMonitor([notifier_class(url)])

    delivered = monitor.dispatch(Alert('Quarantine Queue Backlog', '12 items', 'medium'))

    assert delivered == 0
    assert hits == ['/hook']
