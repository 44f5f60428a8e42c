# clubwheel/services/recent_wins.py
from __future__ import annotations

from collections import deque
from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class RecentWin:
    prize_name: str
    player_display: str
    club_id: int | None = None

    @property
    def text(self) -> str:
        return f"{self.player_display} won {self.prize_name}"

    def to_payload(self) -> dict[str, Any]:
        d = asdict(self)
        return {
            "prizeName": d["prize_name"],
            "playerDisplay": d["player_display"],
            "clubId": d["club_id"],
            "text": self.text,
        }


class RecentWinsFeed:
    """
    Bounded rolling window of the latest wins, oldest evicted first.

    One instance per process, created at startup and shared by every
    spin request. A horizontally scaled deployment needs a shared store
    instead.
    """

    def __init__(self, capacity: int = 10) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._items: deque[RecentWin] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return int(self._items.maxlen or 0)

    def push(self, win: RecentWin) -> list[RecentWin]:
        self._items.append(win)
        return self.snapshot()

    def snapshot(self) -> list[RecentWin]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)
