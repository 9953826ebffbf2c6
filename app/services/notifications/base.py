import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

PRIORITIES = ('high', 'medium', 'low')


def webhook_session():
    """requests session for webhook POSTs; one attempt per send, no retries"""
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=Retry(total=0, raise_on_status=False))
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


class NotificationChannel:
    """
    Somewhere alerts can be delivered.

    ``send`` returns True on delivery and False otherwise; it never raises for
    transport failures.
    """

    name = 'channel'

    def is_configured(self) -> bool:
        return True

    def send(self, subject: str, body: str, priority: str = 'medium') -> bool:
        raise NotImplementedError

    def close(self):
        pass
