"""
Deterministic, side-effect-free scoring logic.

Kept apart from the engine so the numbers can be tuned and unit-tested
without touching any rule transitions.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Dict, Iterable

from .state import PuzzleState

BASE_SCORES: Dict[str, int] = {
    "easy": 100,
    "medium": 200,
    "hard": 300,
}
MISTAKE_PENALTY = 20

# Daily streak boost
BOOST_PER_DAY = 0.05
MAX_STREAK_DAYS = 20
MAX_BOOST_MULTIPLIER = 2.0


def elapsed_seconds(state: PuzzleState) -> int:
    """Whole seconds between start and last action, never less than 1."""
    return max(1, int((state.last_touched_at - state.started_at).total_seconds()))


def time_bonus(seconds: int) -> int:
    """
    Bonus (or penalty) for solving speed.

        < 60s   -> +50
        < 180s  -> +30
        < 300s  -> +10
        > 600s  -> -20
        else    ->   0
    """
    if seconds < 60:
        return 50
    if seconds < 180:
        return 30
    if seconds < 300:
        return 10
    if seconds > 600:
        return -20
    return 0


def calculate_score(state: PuzzleState) -> int:
    """
    Compute the final score of a puzzle.

    Returns 0 unless the puzzle is won. Otherwise:

        base (easy 100 / medium 200 / hard 300)
        - 20 per mistake (wrong guesses and hints)
        + time bonus
        clamped at 0.

    Examples:
        A medium puzzle solved in 45s with 1 mistake -> 200 - 20 + 50 = 230
    """
    if state.outcome != "won":
        return 0
    base = BASE_SCORES[state.difficulty]
    penalty = state.mistake_count * MISTAKE_PENALTY
    return max(0, base - penalty + time_bonus(elapsed_seconds(state)))


def streak_multiplier(streak: int) -> float:
    """1.0 with no streak, +5% per day, capped at 20 days (2.0x at most)."""
    multiplier = 1.0 + min(max(streak, 0), MAX_STREAK_DAYS) * BOOST_PER_DAY
    return min(multiplier, MAX_BOOST_MULTIPLIER)


def apply_streak_boost(score: int, streak: int) -> int:
    return int(score * streak_multiplier(streak))


def current_streak(completed_days: Iterable[date], today: date) -> int:
    """
    Count consecutive completed days ending today.

    If today's daily is not done yet the streak is still alive when
    yesterday was completed, so counting starts from yesterday.
    """
    days = set(completed_days)
    cursor = today if today in days else today - timedelta(days=1)
    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak
