"""Unit tests for the Telegram notifier."""

from unittest.mock import Mock

import requests

from link_bridge.config_manager import BridgeConfig
from link_bridge.telegram_notifier import TelegramNotifier


class TestTelegramNotifier:
    """Test cases for TelegramNotifier."""

    def setup_method(self):
        self.session = Mock()
        self.session.post.return_value = Mock(ok=True, status_code=200, text="{}")
        self.notifier = TelegramNotifier("123:abc", timeout=7, session=self.session)

    def test_send_message_html(self):
        assert self.notifier.send_message(999, "<b>hi</b>") is True

        call_args = self.session.post.call_args
        assert call_args[0][0] == "https://api.telegram.org/bot123:abc/sendMessage"
        assert call_args[1]["json"] == {
            "chat_id": "999",
            "text": "<b>hi</b>",
            "parse_mode": "HTML",
        }
        assert call_args[1]["timeout"] == 7

    def test_send_message_plain(self):
        notifier = TelegramNotifier("123:abc", parse_mode=None, session=self.session)
        notifier.send_message("999", "hi")

        assert "parse_mode" not in self.session.post.call_args[1]["json"]
        assert notifier.message_format == "plain"

    def test_from_config_message_format(self):
        html = TelegramNotifier.from_config(BridgeConfig(bot_token="t"))
        plain = TelegramNotifier.from_config(
            BridgeConfig(bot_token="t", message_format="plain")
        )

        assert html.parse_mode == "HTML"
        assert plain.parse_mode is None

    def test_network_error_is_swallowed(self):
        self.session.post.side_effect = requests.exceptions.ConnectionError("down")

        assert self.notifier.send_message("999", "hi") is False

    def test_api_error_is_swallowed(self):
        self.session.post.return_value = Mock(
            ok=False, status_code=400, text='{"ok":false,"description":"chat not found"}'
        )

        assert self.notifier.send_message("999", "hi") is False

    def test_missing_token_skips_request(self):
        notifier = TelegramNotifier("", session=self.session)

        assert notifier.send_message("999", "hi") is False
        self.session.post.assert_not_called()
