"""Best-effort Telegram Bot API notifier."""

import logging
from typing import Any, Optional

import requests

from .config_manager import BridgeConfig

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"


class TelegramNotifier:
    """Sends status messages to the chat that started the link flow.

    Failures are logged and reported through the return value only; a
    notification problem never changes the outcome of a link attempt.
    """

    def __init__(
        self,
        bot_token: str,
        parse_mode: Optional[str] = "HTML",
        timeout: int = 30,
        base_url: str = TELEGRAM_API_BASE,
        session: Optional[requests.Session] = None,
    ):
        self.bot_token = bot_token
        self.parse_mode = parse_mode
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: BridgeConfig) -> "TelegramNotifier":
        parse_mode = "HTML" if config.message_format == "html" else None
        return cls(config.bot_token, parse_mode=parse_mode, timeout=config.http_timeout)

    @property
    def message_format(self) -> str:
        return "html" if self.parse_mode == "HTML" else "plain"

    def send_message(self, chat_id: Any, text: str) -> bool:
        """Send ``text`` to ``chat_id``; returns False instead of raising."""
        if not self.bot_token:
            logger.warning("BOT_TOKEN not set; skipping Telegram notification")
            return False

        payload = {"chat_id": str(chat_id), "text": text}
        if self.parse_mode:
            payload["parse_mode"] = self.parse_mode

        try:
            response = self.session.post(
                f"{self.base_url}/bot{self.bot_token}/sendMessage",
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"sendTelegram error: {e}")
            return False

        if not response.ok:
            logger.error(
                f"sendTelegram error: status {response.status_code}: {response.text[:200]}"
            )
            return False

        return True
