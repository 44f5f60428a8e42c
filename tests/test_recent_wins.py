from __future__ import annotations

import pytest

from clubwheel.services.recent_wins import RecentWin, RecentWinsFeed
from clubwheel.utils.phone import mask_phone, normalize_phone, player_display


def test_feed_evicts_oldest_first():
    feed = RecentWinsFeed(10)
    for i in range(13):
        snap = feed.push(RecentWin(prize_name=f"p{i}", player_display="x"))
    assert len(snap) == 10
    assert [w.prize_name for w in snap] == [f"p{i}" for i in range(3, 13)]


def test_snapshot_is_a_copy():
    feed = RecentWinsFeed(2)
    snap = feed.push(RecentWin(prize_name="a", player_display="x"))
    snap.append(RecentWin(prize_name="b", player_display="y"))
    assert len(feed) == 1


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        RecentWinsFeed(0)


@pytest.mark.parametrize(
    "phone, expected",
    [
        ("+77711233738", "+7 771 *** 3738"),
        ("87711233738", "+7 771 *** 3738"),
        ("12", "+7 *** *** **"),
        (None, "+7 *** *** **"),
    ],
)
def test_mask_phone(phone, expected):
    assert mask_phone(phone) == expected


def test_player_display_prefers_name():
    assert player_display("  Aida ", "+77711233738") == "Aida"
    assert player_display("", "+77711233738") == "+7 771 *** 3738"


def test_normalize_phone():
    assert normalize_phone("8 (771) 123-37-38") == "+77711233738"
    assert normalize_phone("+7 771 123 37 38") == "+77711233738"
    assert normalize_phone("") == ""
