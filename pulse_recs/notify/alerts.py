from __future__ import annotations

import httpx

from pulse_recs import db
from pulse_recs.config import settings
from pulse_recs.errors import UPSTREAM_ERRORS
from pulse_recs.log import get_logger

logger = get_logger("alerts")


async def send_alert(source: str, message: str) -> None:
    """Send a job failure alert to the ops Telegram chat (rate-limited per source)."""
    if not settings.telegram_bot_token or not settings.telegram_chat_id:
        logger.warning("alert_skipped_no_telegram", source=source, message=message)
        return

    try:
        if not db.should_alert(source):
            logger.debug("alert_rate_limited", source=source)
            return

        async with httpx.AsyncClient(timeout=10) as client:
            resp = await client.post(
                f"https://api.telegram.org/bot{settings.telegram_bot_token}/sendMessage",
                json={
                    "chat_id": settings.telegram_chat_id,
                    "text": f"[pulse-recs alert] {source}: {message}",
                },
            )
            resp.raise_for_status()
        db.log_alert(source, message)
        logger.info("alert_sent", source=source)
    except UPSTREAM_ERRORS as e:
        logger.error("alert_send_failed", source=source, error=str(e))
