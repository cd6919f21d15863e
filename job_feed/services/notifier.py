from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Sequence

import httpx

from job_feed.schemas.listing import NormalizedListing, UNSPECIFIED
from job_feed.utils.text_processing import time_ago

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org/bot{token}/{method}"
MAX_LISTINGS_PER_MESSAGE = 5


def format_new_listings(listings: Sequence[NormalizedListing], now: Optional[int] = None) -> str:
    """Markdown digest of new listings, at most five shown."""
    count = len(listings)
    plural = "s" if count > 1 else ""
    lines = [f"🎉 *¡{count} nuevo{plural} trabajo{plural}!*", ""]

    for i, job in enumerate(listings[:MAX_LISTINGS_PER_MESSAGE], start=1):
        lines.append(f"📌 *{i}. {job.title}*")
        lines.append(f"🏷 {job.source} · {time_ago(job.timestamp, now)}")
        lines.append(f"📍 {job.country}")
        if job.budget and job.budget != UNSPECIFIED:
            lines.append(f"💰 {job.budget}")
        if job.skills:
            lines.append(f"💻 {', '.join(job.skills[:3])}")
        lines.append(f"🔗 {job.link}")
        lines.append("")

    if count > MAX_LISTINGS_PER_MESSAGE:
        lines.append(f"_...y {count - MAX_LISTINGS_PER_MESSAGE} trabajos más_")
        lines.append("")

    lines.append(f"🕒 {datetime.now().strftime('%d/%m/%Y %H:%M:%S')}")
    return "\n".join(lines)


class TelegramNotifier:
    """
    Best-effort alerts through the Telegram Bot API.

    Every public method returns a bool and never raises; without a token and
    chat id the notifier is a silent no-op.
    """

    def __init__(
        self,
        bot_token: Optional[str],
        chat_id: Optional[str],
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    async def notify(self, listings: List[NormalizedListing]) -> bool:
        if not self.configured:
            logger.debug("Telegram notifications disabled (not configured)")
            return False
        if not listings:
            return False
        sent = await self._send_message(format_new_listings(listings), disable_preview=True)
        if sent:
            logger.info(f"Telegram notification sent: {len(listings)} listings")
        return sent

    async def send_test_message(self) -> bool:
        if not self.configured:
            logger.warning("Telegram test requested but bot is not configured")
            return False
        text = (
            "✅ *Job Feed*\n\n"
            "Bot de notificaciones configurado correctamente.\n\n"
            f"🕒 {datetime.now().strftime('%d/%m/%Y %H:%M:%S')}"
        )
        return await self._send_message(text, disable_preview=False)

    async def _send_message(self, text: str, disable_preview: bool) -> bool:
        url = TELEGRAM_API.format(token=self.bot_token, method="sendMessage")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(
                    url,
                    json={
                        "chat_id": self.chat_id,
                        "text": text,
                        "parse_mode": "Markdown",
                        "disable_web_page_preview": disable_preview,
                    },
                )
            if resp.status_code != 200:
                logger.warning(f"Telegram returned HTTP {resp.status_code}: {resp.text[:200]}")
                return False
            return True
        except Exception as e:
            logger.error(f"Telegram notification failed: {e}")
            return False
