"""
Operator Notifier

Delivers run summaries to the admin over the Telegram Bot API.
Notifications are best effort and never fail an ingestion run.
"""

from typing import Optional

import httpx

from ..config import get_settings
from ..core.logging import get_logger

logger = get_logger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"
MAX_MESSAGE_LENGTH = 4096


class TelegramNotifier:
    """notify(operator_id, text) over Telegram sendMessage."""

    def __init__(
        self,
        bot_token: Optional[str] = None,
        default_operator_id: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.bot_token = bot_token if bot_token is not None else settings.telegram_bot_token
        self.default_operator_id = (
            default_operator_id if default_operator_id is not None
            else settings.admin_telegram_user_id
        )
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def notify(self, operator_id: Optional[str], text: str) -> bool:
        """
        Send a plain-text message to an operator.

        Returns:
            True if Telegram accepted the message
        """
        chat_id = operator_id or self.default_operator_id
        if not self.bot_token or not chat_id:
            logger.info("operator_notification_not_sent", reason="telegram_not_configured", text=text)
            return False

        if len(text) > MAX_MESSAGE_LENGTH:
            text = text[:MAX_MESSAGE_LENGTH - 3] + "..."

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{TELEGRAM_API_BASE}/bot{self.bot_token}/sendMessage",
                    json={"chat_id": chat_id, "text": text, "disable_web_page_preview": True},
                )
        except httpx.HTTPError as e:
            logger.warning("operator_notification_error", error=str(e))
            return False

        if response.status_code != 200:
            logger.warning("operator_notification_failed", status=response.status_code)
            return False

        logger.debug("operator_notified", chat_id=chat_id)
        return True


_notifier: Optional[TelegramNotifier] = None


def get_notifier() -> TelegramNotifier:
    """Get singleton TelegramNotifier instance."""
    global _notifier
    if _notifier is None:
        _notifier = TelegramNotifier()
    return _notifier
