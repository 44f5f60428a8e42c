# clubwheel/services/notifications.py
from __future__ import annotations

import html
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from aiogram import Bot

from clubwheel.database.models import Club
from clubwheel.services.recent_wins import RecentWin

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SpinAnnouncement:
    club_id: int
    prize_name: str
    player_display: str
    recent_wins: list[RecentWin] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "prizeName": self.prize_name,
            "playerDisplay": self.player_display,
            "recentWinsSnapshot": [w.to_payload() for w in self.recent_wins],
        }


class NotificationSink(Protocol):
    async def publish(self, club: Club, announcement: SpinAnnouncement) -> None: ...


class LoggingNotificationSink:
    async def publish(self, club: Club, announcement: SpinAnnouncement) -> None:
        log.info(
            "Spin result: club=%s player=%s prize=%s",
            club.id,
            announcement.player_display,
            announcement.prize_name,
        )


class MemoryNotificationSink:
    """Keeps every announcement; handy for tooling and tests."""

    def __init__(self) -> None:
        self.published: list[tuple[int, SpinAnnouncement]] = []

    async def publish(self, club: Club, announcement: SpinAnnouncement) -> None:
        self.published.append((club.id, announcement))


class TelegramNotificationSink:
    """
    Posts each result to the club's Telegram chat (clubs.broadcast_chat_id).
    Clubs without a chat are skipped.
    """

    def __init__(self, bot: Bot) -> None:
        self.bot = bot

    @staticmethod
    def render(announcement: SpinAnnouncement) -> str:
        lines = [
            "🎰 <b>{}</b> won <b>{}</b>!".format(
                html.escape(announcement.player_display),
                html.escape(announcement.prize_name),
            )
        ]
        if announcement.recent_wins:
            lines.append("")
            lines.append("<b>Recent wins</b>")
            for w in reversed(announcement.recent_wins):
                lines.append(f"• {html.escape(w.text)}")
        return "\n".join(lines)

    async def publish(self, club: Club, announcement: SpinAnnouncement) -> None:
        if not club.broadcast_chat_id:
            return
        await self.bot.send_message(
            chat_id=club.broadcast_chat_id,
            text=self.render(announcement),
        )


class FanoutNotificationSink:
    """Publishes to several sinks; one failing sink does not stop the others."""

    def __init__(self, *sinks: NotificationSink) -> None:
        self.sinks = list(sinks)

    async def publish(self, club: Club, announcement: SpinAnnouncement) -> None:
        for sink in self.sinks:
            try:
                await sink.publish(club, announcement)
            except Exception:
                log.exception("Notification sink failed: sink=%s club=%s", type(sink).__name__, club.id)
