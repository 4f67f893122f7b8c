"""Publishing the finished summary, gated by ENABLE_POST."""

from __future__ import annotations

import logging
import os
from typing import Protocol

import requests

PUBLISH_WEBHOOK_URL = os.getenv("PUBLISH_WEBHOOK_URL", "")
REQUEST_TIMEOUT_SECONDS = 30

LOGGER = logging.getLogger(__name__)


class Publisher(Protocol):
    def post(self, text: str) -> None: ...


class LogPublisher:
    """Writes the artifact to the log instead of posting it anywhere."""

    def post(self, text: str) -> None:
        LOGGER.info("Paper of the day post:\n%s", text)


class WebhookPublisher:
    """POSTs {"text": ...} to a webhook that forwards it to the social account."""

    def __init__(self, url: str | None = None) -> None:
        url = url or PUBLISH_WEBHOOK_URL
        if not url:
            raise RuntimeError("PUBLISH_WEBHOOK_URL environment variable is required")
        self.url = url

    def post(self, text: str) -> None:
        response = requests.post(self.url, json={"text": text}, timeout=REQUEST_TIMEOUT_SECONDS)
        response.raise_for_status()
        LOGGER.info("Published post to webhook (status=%s)", response.status_code)


def post_enabled() -> bool:
    return os.getenv("ENABLE_POST", "false").strip().lower() == "true"


def default_publisher() -> Publisher:
    return WebhookPublisher() if PUBLISH_WEBHOOK_URL else LogPublisher()


def publish_summary(
    summary: str,
    publisher: Publisher | None = None,
    enabled: bool | None = None,
) -> bool:
    """Post summary once if publishing is enabled; return whether it was posted."""
    if enabled is None:
        enabled = post_enabled()
    if not enabled:
        LOGGER.info("Publishing disabled (ENABLE_POST is not 'true'); skipping post")
        return False

    (publisher or default_publisher()).post(summary)
    return True
