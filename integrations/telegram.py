"""
Telegram bot integration for sync failure alerts.

Sends a short message to the configured chat when a catalog sync
run fails.
"""

from typing import Optional
import requests
import structlog

from config.settings import settings
from exceptions import TelegramError
from models.catalog_sync import CatalogSyncConfigResponse, SyncLog

logger = structlog.get_logger(__name__)


def get_telegram_config() -> tuple[Optional[str], Optional[str]]:
    """
    Get Telegram configuration from settings.

    Returns:
        tuple: (bot_token, chat_id)
    """
    return settings.telegram_bot_token, settings.telegram_chat_id


def format_sync_failure_message(config: CatalogSyncConfigResponse, log: SyncLog) -> str:
    """
    Format a failed sync run as a Telegram message.

    Args:
        config: Config whose run failed
        log: Finished, failed sync log

    Returns:
        Formatted message string
    """
    lines = [
        "*Catalog sync failed*",
        "",
        f"Seller: `{config.seller_id}`",
        f"Config: `{config.id}` ({config.sync_type.value})",
        f"Error: {log.error_message or 'unknown'}",
        "",
        f"Added before failure: {log.products_added}",
        f"Updated before failure: {log.products_updated}",
    ]

    if log.completed_at:
        lines.append("")
        lines.append(log.completed_at.strftime("%Y-%m-%d %H:%M UTC"))

    return "\n".join(lines)


def send_message(message: str, parse_mode: str = "Markdown") -> bool:
    """
    Send message to Telegram.

    Args:
        message: Message text to send
        parse_mode: Telegram parse mode (Markdown or HTML)

    Returns:
        True if sent, False if Telegram is not configured

    Raises:
        TelegramError: If send fails
    """
    bot_token, chat_id = get_telegram_config()

    if not bot_token or not chat_id:
        logger.debug("telegram_not_configured_skipping_send")
        return False

    url = f"https://api.telegram.org/bot{bot_token}/sendMessage"

    payload = {
        "chat_id": chat_id,
        "text": message,
        "parse_mode": parse_mode,
        "disable_web_page_preview": True,
    }

    try:
        logger.info("sending_telegram_message", chat_id=chat_id)

        response = requests.post(url, json=payload, timeout=10)
        response.raise_for_status()

        result = response.json()

        if not result.get("ok"):
            error_msg = result.get("description", "Unknown error")
            logger.error("telegram_api_error", error=error_msg)
            raise TelegramError(f"Telegram API error: {error_msg}")

        logger.info("telegram_message_sent", message_id=result.get("result", {}).get("message_id"))
        return True

    except requests.exceptions.RequestException as e:
        logger.error("telegram_request_failed", error=str(e))
        raise TelegramError(f"Failed to send Telegram message: {str(e)}")


def send_sync_failure_alert(config: CatalogSyncConfigResponse, log: SyncLog) -> bool:
    """
    Send a failed sync run to Telegram.

    Returns:
        True if sent

    Raises:
        TelegramError: If send fails
    """
    return send_message(format_sync_failure_message(config, log))
