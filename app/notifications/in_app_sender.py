"""In-app delivery: the stored row is the message, so sending only confirms it."""

from __future__ import annotations

import logging

from app.notifications.contracts import RenderedMessage, SendResult

logger = logging.getLogger(__name__)


class InAppSender:
  def send(self, address: str, message: RenderedMessage) -> SendResult:
    logger.debug("In-app notification ready for user_id=%s title=%s", address, message.subject)
    return SendResult(provider="in_app")
