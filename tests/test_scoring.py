"""
Testing scoring and streak boost.
"""

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

import pytest

from cryptogram.core.scoring import (
    apply_streak_boost,
    calculate_score,
    current_streak,
    elapsed_seconds,
    streak_multiplier,
    time_bonus,
)
from cryptogram.core.state import PuzzleState

T0 = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def _state(outcome="won", difficulty="medium", mistakes=0, seconds=30):
    # "AB" enciphered as "BA"
    return PuzzleState(
        ciphertext="BA",
        plaintext="AB",
        cipher_key={"A": "B", "B": "A"},
        revealed={"A": "B", "B": "A"} if outcome == "won" else {},
        mistake_count=mistakes,
        mistake_limit=5,
        difficulty=difficulty,
        started_at=T0,
        last_touched_at=T0 + timedelta(seconds=seconds),
        outcome=outcome,
    )


def test_unfinished_and_lost_puzzles_score_zero():
    assert calculate_score(_state("in_progress")) == 0
    assert calculate_score(_state("lost", mistakes=5)) == 0


@pytest.mark.parametrize(
    "seconds, bonus",
    [(0, 50), (59, 50), (60, 30), (179, 30), (180, 10), (299, 10), (300, 0), (600, 0), (601, -20)],
)
def test_time_bonus_thresholds(seconds, bonus):
    assert time_bonus(seconds) == bonus


def test_base_score_by_difficulty():
    assert calculate_score(_state(difficulty="easy", seconds=400)) == 100
    assert calculate_score(_state(difficulty="medium", seconds=400)) == 200
    assert calculate_score(_state(difficulty="hard", seconds=400)) == 300


def test_mistakes_and_speed_combine():
    assert calculate_score(_state(difficulty="medium", mistakes=1, seconds=45)) == 230
    assert calculate_score(_state(difficulty="hard", mistakes=2, seconds=120)) == 290


def test_score_never_negative():
    state = replace(_state(difficulty="easy", seconds=700), mistake_count=30)
    assert calculate_score(state) == 0


def test_score_stays_within_bounds():
    for difficulty, base in (("easy", 100), ("medium", 200), ("hard", 300)):
        for mistakes in range(0, 8):
            for seconds in (1, 90, 250, 400, 900):
                score = calculate_score(_state(difficulty=difficulty, mistakes=mistakes, seconds=seconds))
                assert 0 <= score <= base + 50


def test_elapsed_seconds_is_at_least_one():
    assert elapsed_seconds(_state(seconds=0)) == 1
    assert elapsed_seconds(_state(seconds=95)) == 95


def test_streak_multiplier_caps():
    assert streak_multiplier(0) == 1.0
    assert streak_multiplier(4) == pytest.approx(1.2)
    assert streak_multiplier(20) == pytest.approx(2.0)
    assert streak_multiplier(45) == pytest.approx(2.0)
    assert apply_streak_boost(200, 10) == 300


def test_current_streak():
    today = date(2025, 3, 10)
    days = {today - timedelta(days=i) for i in range(4)}
    assert current_streak(days, today) == 4

    # Today not played yet: yesterday's streak still counts.
    assert current_streak(days - {today}, today) == 3

    # A gap breaks it.
    assert current_streak({today, today - timedelta(days=2)}, today) == 1
    assert current_streak(set(), today) == 0
