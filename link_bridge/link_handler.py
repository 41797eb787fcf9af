"""OAuth callback handling: provider exchange, sheet update, notification.

The ``state`` value returned by Discord is trusted as the Telegram chat id of
the user who started the flow. Nothing binds it cryptographically to the
authorization request, so anyone who can observe or guess a chat id can make
the bridge write that id next to their own Discord account.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from . import messages
from .discord_client import DiscordOAuthClient
from .table_reconciler import LinkResult
from .telegram_notifier import TelegramNotifier
from .utils.exceptions import (
    ConfigurationError,
    NotFoundError,
    ProviderError,
    TableStoreError,
    ValidationError,
)
from .utils.validation import validate_callback_params

logger = logging.getLogger(__name__)

# reconcile(external_id, correlation_value) -> LinkResult
Reconcile = Callable[[str, str], LinkResult]


@dataclass
class CallbackOutcome:
    """HTTP status and body returned to the browser."""

    status_code: int
    body: str
    result: Optional[LinkResult] = None

    @property
    def success(self) -> bool:
        return self.status_code == 200


class LinkCallbackHandler:
    """Drives one OAuth callback from code exchange to user notification."""

    def __init__(
        self,
        provider: DiscordOAuthClient,
        reconcile: Reconcile,
        notifier: TelegramNotifier,
    ):
        self.provider = provider
        self.reconcile = reconcile
        self.notifier = notifier

    def _notify(self, chat_id: str, text: str) -> None:
        try:
            self.notifier.send_message(chat_id, text)
        except Exception as e:
            logger.error(f"Notification to {chat_id} failed: {e}")

    def handle_request(self, params: Mapping[str, Any]) -> CallbackOutcome:
        """Validate query parameters and handle the callback."""
        try:
            cleaned = validate_callback_params(params)
        except ValidationError as e:
            logger.warning(f"Rejected callback: {e.message}")
            return CallbackOutcome(400, e.message)

        return self.handle(cleaned["code"], cleaned["state"])

    def handle(self, code: str, state: str) -> CallbackOutcome:
        """Handle a callback; never raises."""
        if not code or not state:
            return CallbackOutcome(400, "Missing code or state")

        telegram_id = str(state)
        try:
            return self._handle(code, telegram_id)
        except Exception:
            logger.exception("callback general error")
            return CallbackOutcome(500, "server error")

    def _handle(self, code: str, telegram_id: str) -> CallbackOutcome:
        message_format = self.notifier.message_format

        try:
            access_token = self.provider.exchange_code(code)
        except ProviderError as e:
            logger.error(f"Token error: {e.message}")
            self._notify(telegram_id, messages.TOKEN_ERROR)
            return CallbackOutcome(500, "OAuth token error")

        try:
            user = self.provider.fetch_identity(access_token)
        except ProviderError as e:
            logger.error(f"users/@me error: {e.message}")
            self._notify(telegram_id, messages.PROFILE_ERROR)
            return CallbackOutcome(500, "users/@me error")

        discord_id = str(user["id"])
        logger.info(f"OAuth callback: telegram_id={telegram_id} discord_id={discord_id}")

        try:
            result = self.reconcile(discord_id, telegram_id)
        except NotFoundError as e:
            logger.warning(f"sheet update error: {e.message}")
            self._notify(telegram_id, messages.not_found_message(discord_id, message_format))
            return CallbackOutcome(404, "discord id not found")
        except (ConfigurationError, TableStoreError) as e:
            logger.error(f"sheet update error ({type(e).__name__}): {e.message}")
            self._notify(telegram_id, messages.SHEET_ERROR)
            return CallbackOutcome(500, "sheet update error")
        except Exception:
            logger.exception("sheet update error")
            self._notify(telegram_id, messages.SHEET_ERROR)
            return CallbackOutcome(500, "sheet update error")

        logger.info(f"Sheet updated at {result.range} (row {result.row_number})")
        self._notify(telegram_id, messages.success_message(discord_id, message_format))
        return CallbackOutcome(200, messages.SUCCESS_PAGE, result=result)
