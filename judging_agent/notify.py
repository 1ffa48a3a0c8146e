"""Discord "review triggered" notification."""

import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)


def format_review_triggered(
    user_email: Optional[str], event_name: Optional[str], project_count: int
) -> str:
    count = project_count if isinstance(project_count, int) and project_count > 0 else 1
    return "\n".join([
        "Review triggered",
        f"- User: {user_email or 'unknown user'}",
        f"- Event: {event_name or 'Unknown event'}",
        f"- Projects: {count}",
    ])


def notify_review_triggered(
    webhook_url: Optional[str],
    user_email: Optional[str] = None,
    event_name: Optional[str] = None,
    project_count: int = 1,
    timeout: float = 10,
) -> bool:
    """
    Post a review-triggered message to a Discord webhook.

    Never raises: a missing URL or a failed post is logged and reported
    through the return value only.
    """
    if not webhook_url:
        logger.warning("DISCORD_WEBHOOK_URL is not set; skipping Discord notification")
        return False

    message = format_review_triggered(user_email, event_name, project_count)
    try:
        response = requests.post(webhook_url, json={"content": message}, timeout=timeout)
    except requests.RequestException as e:
        logger.error("Error sending Discord notification: %s", e)
        return False

    if not response.ok:
        logger.error(
            "Failed to send Discord notification: %s - %s", response.status_code, response.text
        )
        return False
    logger.info("Discord notification sent")
    return True
