"""Outgoing notifications for the task tracker integration.

Events are plain dicts delivered after the response has been sent (FastAPI
background tasks). Nothing is expected back; delivery failures are logged
and dropped.
"""
import logging

import httpx

from proof_server.settings import settings

logger = logging.getLogger(__name__)

VERSION_CREATED = "version.created"
ANNOTATIONS_CHANGED = "annotations.changed"
PROOF_APPROVED = "proof.approved"


class NotificationSink:
    def send(self, event: str, payload: dict) -> None:
        raise NotImplementedError


class LoggingSink(NotificationSink):
    def send(self, event: str, payload: dict) -> None:
        logger.info("notify %s — proof %s", event, payload.get("proofId"))


class WebhookSink(NotificationSink):
    def __init__(self, url: str, timeout: float = 5.0):
        self.url = url
        self.timeout = timeout

    def send(self, event: str, payload: dict) -> None:
        try:
            resp = httpx.post(self.url, json={"event": event, "payload": payload}, timeout=self.timeout)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("notify %s — delivery to %s failed: %s", event, self.url, e)
            return
        logger.info("notify %s — delivered (status %d)", event, resp.status_code)


def get_sink() -> NotificationSink:
    if settings.notify_webhook_url:
        return WebhookSink(settings.notify_webhook_url, settings.notify_timeout)
    return LoggingSink()
