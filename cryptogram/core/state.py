from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Literal, Optional


Outcome = Literal["in_progress", "won", "lost"]
Difficulty = Literal["easy", "medium", "hard"]

OUTCOMES = ("in_progress", "won", "lost")
DIFFICULTIES = ("easy", "medium", "hard")

# Mistake budget per difficulty.
MISTAKE_LIMITS: Dict[str, int] = {
    "easy": 8,
    "medium": 5,
    "hard": 3,
}

# Effectively unlimited budget granted by practice mode.
PRACTICE_MISTAKE_LIMIT = 999


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class PuzzleState:
    """
    Immutable container for one cryptogram puzzle.

    Notes
    -----
    - The engine never mutates a state in place; every operation in
      `core.engine` returns a new `PuzzleState`, so the object can be kept
      in a Streamlit session or written to disk without aliasing surprises.
    - `cipher_key` is the *decryption* map (ciphertext letter -> plaintext
      letter). `revealed` is the part of it the player has uncovered.
    - All rule transitions (guesses, hints, win/loss) live in `core.engine`;
      this file only defines the data structure and structural validation.
    """

    # Texts
    ciphertext: str
    plaintext: str
    cipher_key: Dict[str, str]

    # Progress
    revealed: Dict[str, str] = field(default_factory=dict)
    wrong_attempts: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    mistake_count: int = 0
    mistake_limit: int = MISTAKE_LIMITS["medium"]
    difficulty: Difficulty = "medium"
    selected: Optional[str] = None

    # Timing
    started_at: datetime = field(default_factory=_utcnow)
    last_touched_at: datetime = field(default_factory=_utcnow)

    outcome: Outcome = "in_progress"
    practice_mode: bool = False

    def __post_init__(self) -> None:
        """
        Normalize and validate fields.

        Normalization
        -------------
        - `wrong_attempts` values are frozen so the state stays immutable.
        - Mapping fields are copied so callers cannot mutate them afterwards.

        Validation
        ----------
        - `ciphertext` and `plaintext` must have the same length.
        - Every revealed pair must agree with `cipher_key`.
        - `mistake_count` must be >= 0 and `mistake_limit` >= 1.
        - `difficulty` and `outcome` must be known values.
        """
        object.__setattr__(self, "cipher_key", dict(self.cipher_key))
        object.__setattr__(self, "revealed", dict(self.revealed or {}))
        object.__setattr__(
            self,
            "wrong_attempts",
            {k: frozenset(v) for k, v in (self.wrong_attempts or {}).items()},
        )

        if len(self.ciphertext) != len(self.plaintext):
            raise ValueError("`ciphertext` and `plaintext` must have the same length.")
        for cipher_ch, plain_ch in self.revealed.items():
            if self.cipher_key.get(cipher_ch) != plain_ch:
                raise ValueError(f"Revealed pair {cipher_ch!r}->{plain_ch!r} disagrees with `cipher_key`.")

        if self.mistake_count < 0:
            raise ValueError("`mistake_count` must be >= 0.")
        if self.mistake_limit < 1:
            raise ValueError("`mistake_limit` must be >= 1.")
        if self.difficulty not in DIFFICULTIES:
            raise ValueError(f"`difficulty` must be one of {DIFFICULTIES}.")
        if self.outcome not in OUTCOMES:
            raise ValueError(f"`outcome` must be one of {OUTCOMES}.")

    @property
    def is_terminal(self) -> bool:
        return self.outcome != "in_progress"
