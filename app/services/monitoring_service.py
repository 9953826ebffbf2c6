"""
Threshold-based alerting over the review store.

The short cycle runs five independent rules; the long cycle sends a digest
of the previous calendar day. Every breach goes once to every channel.
"""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from .database_service import db_service
from .error_tracker import error_tracker

logger = logging.getLogger(__name__)


@dataclass
class Alert:
    subject: str
    body: str
    priority: str = 'medium'


@dataclass
class AlertingPolicy:
    high_risk_uploads: int = 5
    nsfw_detections: int = 3
    nsfw_score: float = 0.8
    quarantine_queue: int = 10
    appeal_backlog: int = 5
    suspicious_user_rejections: int = 3
    window_seconds: int = 3600
    interval_seconds: int = 300
    daily_report_interval_seconds: int = 86400

    @classmethod
    def from_config(cls, config):
        return cls(
            high_risk_uploads=config.get('ALERT_HIGH_RISK_UPLOADS', 5),
            nsfw_detections=config.get('ALERT_NSFW_DETECTIONS', 3),
            nsfw_score=config.get('ALERT_NSFW_SCORE', 0.8),
            quarantine_queue=config.get('ALERT_QUARANTINE_QUEUE', 10),
            appeal_backlog=config.get('ALERT_APPEAL_BACKLOG', 5),
            suspicious_user_rejections=config.get('ALERT_SUSPICIOUS_USER_REJECTIONS', 3),
            window_seconds=config.get('ALERT_WINDOW_SECONDS', 3600),
            interval_seconds=config.get('MONITOR_INTERVAL_SECONDS', 300),
            daily_report_interval_seconds=config.get('DAILY_REPORT_INTERVAL_SECONDS', 86400)
        )


class AlertingMonitor:

    def __init__(self, channels, policy: Optional[AlertingPolicy] = None, store=db_service,
                 now: Callable[[], datetime] = datetime.utcnow, app=None, tracker=error_tracker):
        self.channels = list(channels)
        self.policy = policy or AlertingPolicy()
        self.store = store
        self.now = now
        self.app = app
        self.tracker = tracker
        self._stop_event = threading.Event()
        self._thread = None
        self._last_daily_report = None
        self.last_cycle_at = None

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    # Rules; each returns the alerts it raises
    def check_high_risk_uploads(self) -> List[Alert]:
        since = self.now() - timedelta(seconds=self.policy.window_seconds)
        count = self.store.count_high_risk_since(since)
        if count < self.policy.high_risk_uploads:
            return []
        return [Alert(
            'High-Risk Upload Spike',
            f"{count} high-risk content uploads detected in the last hour. "
            "Immediate review recommended.",
            'high')]

    def check_nsfw_detections(self) -> List[Alert]:
        since = self.now() - timedelta(seconds=self.policy.window_seconds)
        count = self.store.count_nsfw_since(since, self.policy.nsfw_score)
        if count < self.policy.nsfw_detections:
            return []
        return [Alert(
            'NSFW Detection Spike',
            f"{count} NSFW content detections in the last hour. AI confidence levels high.",
            'high')]

    def check_quarantine_queue(self) -> List[Alert]:
        count = self.store.count_review_queue()
        if count < self.policy.quarantine_queue:
            return []
        return [Alert(
            'Quarantine Queue Backlog',
            f"Quarantine queue has {count} items pending review. "
            "Consider increasing review capacity.",
            'medium')]

    def check_appeal_backlog(self) -> List[Alert]:
        count = self.store.count_pending_appeals()
        if count < self.policy.appeal_backlog:
            return []
        return [Alert(
            'Appeal Backlog',
            f"{count} content appeals pending review. Users may be waiting for responses.",
            'medium')]

    def check_suspicious_users(self) -> List[Alert]:
        since = self.now() - timedelta(seconds=self.policy.window_seconds)
        rows = self.store.get_rejections_by_uploader_since(
            since, self.policy.suspicious_user_rejections)
        return [
            Alert(
                'Suspicious User Activity',
                f"User {uploaded_by} has {count} rejected uploads in the last hour. "
                "Consider reviewing their account.",
                'medium')
            for uploaded_by, count in rows
        ]

    @property
    def short_cycle_rules(self):
        return [
            self.check_high_risk_uploads,
            self.check_nsfw_detections,
            self.check_quarantine_queue,
            self.check_appeal_backlog,
            self.check_suspicious_users,
        ]

    def run_short_cycle(self) -> List[Alert]:
        """Evaluate every rule once; a failing rule does not stop the others"""
        fired = []
        for rule in self.short_cycle_rules:
            try:
                alerts = rule()
            except Exception as e:
                logger.error(f"Monitoring rule {rule.__name__} failed: {e}")
                self.tracker.track_error('monitor', f"{rule.__name__}: {e}")
                continue
            for alert in alerts:
                self.dispatch(alert)
            fired.extend(alerts)

        self.last_cycle_at = self.now()
        if fired:
            logger.info(f"Monitoring cycle raised {len(fired)} alert(s)")
        return fired

    def run_daily_report(self) -> Optional[Alert]:
        today = self.now().replace(hour=0, minute=0, second=0, microsecond=0)
        yesterday = today - timedelta(days=1)
        try:
            counts = self.store.get_daily_counts(yesterday, today)
        except Exception as e:
            logger.error(f"Daily report failed: {e}")
            self.tracker.track_error('monitor', f"daily report: {e}")
            return None

        by_status = counts['by_status']
        lines = [
            f"Daily Content Moderation Report - {yesterday.strftime('%a %b %d %Y')}",
            '',
            'Summary',
            f"Total uploads: {counts['total']}",
            f"Approved: {by_status.get('approved', 0)}",
            f"Rejected: {by_status.get('rejected', 0)}",
            f"Quarantined: {by_status.get('quarantined', 0)}",
            '',
            'Risk Distribution'
        ]
        lines.extend(f"{risk}: {count}" for risk, count in sorted(counts['by_risk'].items()))
        lines.extend(['', 'Status Distribution'])
        lines.extend(f"{status}: {count}" for status, count in sorted(by_status.items()))

        alert = Alert('Daily Moderation Report', '\n'.join(lines), 'low')
        self.dispatch(alert)
        self._last_daily_report = self.now()
        return alert

    def dispatch(self, alert: Alert) -> int:
        """Send to every channel; returns how many accepted the alert"""
        delivered = 0
        for channel in self.channels:
            try:
                if channel.send(alert.subject, alert.body, alert.priority):
                    delivered += 1
            except Exception as e:
                logger.error(f"Notification channel {channel.name} failed: {e}")
                self.tracker.track_error('notification', f"{channel.name}: {e}")
        return delivered

    # Lifecycle
    def start(self):
        if self.running:
            return
        self._stop_event.clear()
        self._last_daily_report = self.now()
        self._thread = threading.Thread(
            target=self._run, name='alerting-monitor', daemon=True)
        self._thread.start()
        logger.info(f"Alerting monitor started (every {self.policy.interval_seconds}s, "
                    f"{len(self.channels)} channel(s))")

    def stop(self, timeout=5.0):
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Alerting monitor stopped")

    def _daily_report_due(self):
        elapsed = (self.now() - self._last_daily_report).total_seconds()
        return elapsed >= self.policy.daily_report_interval_seconds

    def _run(self):
        while not self._stop_event.wait(self.policy.interval_seconds):
            self._run_in_context(self.run_short_cycle)
            if self._daily_report_due() and not self._stop_event.is_set():
                self._run_in_context(self.run_daily_report)

    def _run_in_context(self, cycle):
        if self.app is None:
            return cycle()

        from app import db
        with self.app.app_context():
            try:
                return cycle()
            finally:
                db.session.remove()

    def status(self):
        return {
            'running': self.running,
            'channels': [channel.name for channel in self.channels],
            'interval_seconds': self.policy.interval_seconds,
            'last_cycle_at': self.last_cycle_at.isoformat() if self.last_cycle_at else None
        }
