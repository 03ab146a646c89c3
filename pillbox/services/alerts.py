"""
Error alerting to Slack
Alerts are fire-and-forget: they run on a daemon thread and never raise
"""
import logging
import threading

import requests
from flask import current_app

logger = logging.getLogger(__name__)


class SlackNotifier:
    """Posts error reports to a Slack incoming webhook"""

    def __init__(self, webhook_url=None, timeout=5):
        self.webhook_url = webhook_url
        self.timeout = timeout

    @classmethod
    def from_app(cls):
        return cls(
            webhook_url=current_app.config.get('SLACK_WEBHOOK_URL'),
            timeout=current_app.config.get('SLACK_TIMEOUT', 5)
        )

    def send(self, message):
        """Post message to the webhook, returns True on a 2xx response"""
        if not self.webhook_url:
            logger.debug('Slack webhook not configured, alert skipped: %s', message)
            return False

        try:
            response = requests.post(self.webhook_url, json={'text': message}, timeout=self.timeout)
            if response.ok:
                return True
            logger.warning('Slack alert rejected: HTTP %s', response.status_code)
        except requests.exceptions.RequestException as e:
            logger.warning('Slack alert failed: %s', e)
        return False

    def send_async(self, message):
        thread = threading.Thread(target=self.send, args=(message,), daemon=True)
        thread.start()
        return thread


def report_error(method, path, caller_id, error):
    """Report an unexpected request failure without blocking the response"""
    uid = f'uid:{caller_id}' if caller_id is not None else 'no user'
    message = f'[ERROR] [{method.upper()}] {path} {uid} {error!r}'
    return SlackNotifier.from_app().send_async(message)
