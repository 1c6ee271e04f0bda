"""
Telegram notification for cranes that missed their maintenance window.

Delivery is best effort: the expiry run has already been committed when this
is called, so failures are logged and reported back as False.
"""
import requests

from app.config import Config as cfg
from app.logging_config import get_logger

logger = get_logger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"


def format_missed_cranes_message(reschedule_data):
    """Build the HTML message body from ScheduleTracker.get_reschedule_cranes() output."""
    window = reschedule_data['reschedule_window']
    lines = [
        "<b>Crane Maintenance - Missed Windows</b>",
        f"Month: {reschedule_data['month']:02d}/{reschedule_data['year']}",
        f"Reschedule period: {window['start_date']} to {window['end_date']}",
        "",
    ]
    for crane in reschedule_data['missed_cranes']:
        original = crane['original_window']
        lines.append(
            f"- {crane['department']} | {crane['shed_name'] or '-'} | Crane {crane['crane_number']} "
            f"(window {original['start_date']} to {original['end_date']})"
        )
    lines.append("")
    lines.append(f"Total missed: {reschedule_data['count']}")
    return "\n".join(lines)


def send_telegram_message(text, token=None, chat_id=None):
    """
    Post a message to the configured Telegram chat.

    Returns:
        bool: True if Telegram accepted the message, False if notifications are
        not configured or delivery failed
    """
    token = token or cfg.TELEGRAM_BOT_TOKEN
    chat_id = chat_id or cfg.TELEGRAM_CHAT_ID
    if not token or not chat_id:
        logger.debug("Telegram not configured, skipping notification")
        return False

    try:
        response = requests.post(
            TELEGRAM_API_URL.format(token=token),
            json={"chat_id": chat_id, "text": text, "parse_mode": "HTML"},
            timeout=cfg.TELEGRAM_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        return True
    except requests.exceptions.RequestException as exc:
        logger.error("Telegram notification failed", error=str(exc))
        return False


def notify_missed_cranes(reschedule_data, **kwargs):
    """Send the missed-crane summary; no message when nothing is missed."""
    if not reschedule_data['missed_cranes']:
        return False
    return send_telegram_message(format_missed_cranes_message(reschedule_data), **kwargs)
