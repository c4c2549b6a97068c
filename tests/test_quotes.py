"""
Testing quote loading, fallbacks and daily selection.
"""

from datetime import date, timedelta

import pytest

from cryptogram.core.quotes import (
    DEFAULT_QUOTES,
    LAUNCH_DATE,
    Quote,
    day_index,
    estimate_difficulty,
    load_quotes,
    pick_daily_quote,
    pick_random_quote,
)


@pytest.fixture
def quotes_dir(tmp_path, monkeypatch):
    (tmp_path / "easy.txt").write_text(
        "# comment\nLESS IS MORE. | Robert Browning\n\n1234\nTIME IS MONEY.\n", encoding="utf-8"
    )
    (tmp_path / "medium.txt").write_text("FORTUNE FAVORS THE BOLD. | Virgil\n", encoding="utf-8")
    monkeypatch.setenv("DECODEY_QUOTES_DIR", str(tmp_path))
    return tmp_path


def test_load_quotes_for_difficulty(quotes_dir):
    quotes = load_quotes("easy")
    assert quotes == [Quote("LESS IS MORE.", "Robert Browning"), Quote("TIME IS MONEY.", "Unknown")]


def test_missing_difficulty_file_falls_back_to_all_files(quotes_dir):
    quotes = load_quotes("hard")
    assert Quote("FORTUNE FAVORS THE BOLD.", "Virgil") in quotes
    assert len(quotes) == 3


def test_fallback_prefers_quotes_of_the_estimated_difficulty(tmp_path, monkeypatch):
    (tmp_path / "easy.txt").write_text(
        "LESS IS MORE. | Robert Browning\nFORTUNE FAVORS THE BOLD. | Virgil\n", encoding="utf-8"
    )
    monkeypatch.setenv("DECODEY_QUOTES_DIR", str(tmp_path))
    assert load_quotes("medium") == [Quote("FORTUNE FAVORS THE BOLD.", "Virgil")]
    assert len(load_quotes("easy")) == 2


def test_no_files_falls_back_to_default(tmp_path, monkeypatch):
    monkeypatch.setenv("DECODEY_QUOTES_DIR", str(tmp_path / "empty"))
    assert load_quotes("medium") == DEFAULT_QUOTES
    assert pick_random_quote("medium") == DEFAULT_QUOTES[0]


def test_pick_random_quote_is_seedable(quotes_dir):
    assert pick_random_quote("easy", seed=1) == pick_random_quote("easy", seed=1)
    assert pick_random_quote("easy", seed=1) in load_quotes("easy")


def test_day_index_counts_from_launch():
    assert day_index(LAUNCH_DATE) == 0
    assert day_index(LAUNCH_DATE + timedelta(days=10)) == 10
    assert day_index(LAUNCH_DATE - timedelta(days=3)) == 3


def test_daily_quote_cycles_through_sorted_quotes(quotes_dir):
    ordered = sorted(load_quotes(), key=lambda q: q.text)
    assert pick_daily_quote(LAUNCH_DATE) == ordered[0]
    assert pick_daily_quote(LAUNCH_DATE + timedelta(days=1)) == ordered[1]
    assert pick_daily_quote(LAUNCH_DATE + timedelta(days=len(ordered))) == ordered[0]


def test_daily_quote_is_stable_for_a_day(quotes_dir):
    day = date(2025, 6, 1)
    assert pick_daily_quote(day) == pick_daily_quote(day)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("LESS IS MORE.", "easy"),
        ("THE ONLY THING WE HAVE TO FEAR IS FEAR ITSELF.", "medium"),
        ("IT IS A TRUTH UNIVERSALLY ACKNOWLEDGED, THAT A SINGLE MAN IN POSSESSION OF A GOOD FORTUNE", "hard"),
    ],
)
def test_estimate_difficulty(text, expected):
    assert estimate_difficulty(text) == expected
