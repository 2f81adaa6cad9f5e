"""
Unit tests for Telegram sync failure alerts.

Run: pytest tests/unit/test_telegram.py -v
"""

import pytest
import requests
from unittest.mock import patch, MagicMock

from config import settings
from exceptions import TelegramError
from integrations.telegram import format_sync_failure_message, send_message, send_sync_failure_alert
from models.catalog_sync import CatalogSyncConfigResponse, SyncLog, SyncLogStatus

from tests.factories import SyncConfigFactory


@pytest.fixture
def failed_run():
    config = CatalogSyncConfigResponse(**SyncConfigFactory.create_api(id="config-1"))
    log = (
        SyncLog.start("config-1")
        .model_copy(update={"products_added": 2})
        .finish(SyncLogStatus.FAILED, "API returned 500")
    )
    return config, log


@pytest.fixture
def telegram_on():
    with patch.object(settings, "telegram_bot_token", "token"), \
            patch.object(settings, "telegram_chat_id", "chat-1"):
        yield


class TestFormatSyncFailureMessage:
    """Tests for format_sync_failure_message()"""

    def test_includes_seller_config_and_error(self, failed_run):
        config, log = failed_run

        message = format_sync_failure_message(config, log)

        assert "seller-1" in message
        assert "config-1" in message
        assert "(api)" in message
        assert "API returned 500" in message
        assert "Added before failure: 2" in message


class TestSendMessage:
    """Tests for send_message()"""

    def test_not_configured_skips(self):
        with patch.object(settings, "telegram_bot_token", None), \
                patch("integrations.telegram.requests.post") as mock_post:
            assert send_message("hello") is False

        mock_post.assert_not_called()

    def test_sends_to_chat(self, telegram_on):
        response = MagicMock()
        response.json.return_value = {"ok": True, "result": {"message_id": 7}}

        with patch("integrations.telegram.requests.post", return_value=response) as mock_post:
            assert send_message("hello") is True

        args, kwargs = mock_post.call_args
        assert args[0] == "https://api.telegram.org/bottoken/sendMessage"
        assert kwargs["json"]["chat_id"] == "chat-1"
        assert kwargs["json"]["text"] == "hello"

    def test_api_error_raises(self, telegram_on):
        response = MagicMock()
        response.json.return_value = {"ok": False, "description": "chat not found"}

        with patch("integrations.telegram.requests.post", return_value=response):
            with pytest.raises(TelegramError) as exc_info:
                send_message("hello")

        assert "chat not found" in exc_info.value.message

    def test_network_error_raises(self, telegram_on):
        with patch("integrations.telegram.requests.post", side_effect=requests.exceptions.Timeout("slow")):
            with pytest.raises(TelegramError):
                send_message("hello")


class TestSendSyncFailureAlert:
    """Tests for send_sync_failure_alert()"""

    def test_sends_formatted_message(self, failed_run, telegram_on):
        config, log = failed_run
        response = MagicMock()
        response.json.return_value = {"ok": True, "result": {}}

        with patch("integrations.telegram.requests.post", return_value=response) as mock_post:
            assert send_sync_failure_alert(config, log) is True

        assert "Catalog sync failed" in mock_post.call_args[1]["json"]["text"]
