"""
Slack reply service for Insult Bot.
Fire-and-forget chat.postMessage: failures are logged, never raised, never retried.
"""

import logging

import requests

from .config import SLACK_TOKEN, SLACK_API_URL, HTTP_TIMEOUT
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class SlackReplySink:
    """Post text replies to a Slack channel (synchronous, run in an executor)."""

    def __init__(self, token=None, api_url=None, timeout=None):
        self.token = token if token is not None else SLACK_TOKEN
        self.api_url = api_url or SLACK_API_URL
        self.timeout = timeout or HTTP_TIMEOUT

    def is_configured(self):
        return bool(self.token)

    def _post(self, channel, text):
        if not self.is_configured():
            raise ConfigurationError("SLACK_TOKEN is not set")
        resp = requests.post(
            self.api_url,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Content-Type": "application/json; charset=utf-8",
            },
            json={"channel": channel, "text": text},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        # Slack reports API errors with a 200 and {"ok": false}
        data = resp.json()
        if not data.get("ok", False):
            raise ValueError(f"Slack API error: {data.get('error', 'unknown')}")

    def send(self, channel, text):
        """Send a message to a channel, logging any failure."""
        try:
            self._post(channel, text)
        except (requests.RequestException, ValueError, ConfigurationError) as e:
            logger.error(f"Error sending message to {channel}: {e}")
            return False
        return True
