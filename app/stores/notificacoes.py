"""Notification sinks: where user-facing operation outcomes are published."""

from __future__ import annotations

import logging

from app.schemas.common import OperationResult
from app.stores.base import NotificationSink

logger = logging.getLogger(__name__)


class LoggingNotificationSink(NotificationSink):
    """Default sink: writes every outcome to the application log.

    The UI layer renders outcomes from the HTTP responses; this sink keeps a
    server-side trail of what operators were told.
    """

    def publish(self, result: OperationResult) -> None:
        if result.ok:
            logger.debug("[%s] %s", result.title, result.message)
        else:
            logger.warning("[%s] %s (%s)", result.title, result.message, result.kind)
