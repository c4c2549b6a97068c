from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional

from openai import OpenAI
from cryptogram.core.engine import current_display, letter_frequency, unique_cipher_letters
from cryptogram.core.state import PuzzleState

logger = logging.getLogger("decodey.coach")

# English letters, most frequent first.
ENGLISH_FREQUENCY_ORDER = "ETAOINSHRDLCUMWFGYPBVKJXQZ"


@dataclass(frozen=True)
class CoachSuggestion:
    """Container for a coach suggestion."""
    cipher_letter: str        # ciphertext letter worth attacking next (A–Z)
    plain_letter: str         # most likely plaintext letter for it (A–Z)
    text: str                 # one-sentence rationale
    used_llm: bool            # whether rationale came from the LLM
    occurrences: int          # how often `cipher_letter` appears in the ciphertext


def _pick_cipher_letter(state: PuzzleState) -> Optional[str]:
    """
    Pick the most frequent unrevealed ciphertext letter.

    Ties keep first-appearance order so the choice is deterministic.
    """
    unrevealed = [ch for ch in unique_cipher_letters(state) if ch not in state.revealed]
    if not unrevealed:
        return None
    return max(unrevealed, key=lambda ch: letter_frequency(state, ch))


def _candidate_plain_letters(state: PuzzleState, cipher_letter: str) -> List[str]:
    """
    Plaintext letters still possible for `cipher_letter`, by English frequency.

    Rules
    -----
    - A plaintext letter already revealed elsewhere cannot repeat (bijection).
    - Letters already guessed wrong for this ciphertext letter are excluded.
    """
    used = set(state.revealed.values())
    wrong = state.wrong_attempts.get(cipher_letter, frozenset())
    return [ch for ch in ENGLISH_FREQUENCY_ORDER if ch not in used and ch not in wrong]


def _local_reason(state: PuzzleState, cipher_letter: str, plain_letter: str, occurrences: int) -> str:
    """A deterministic, non-LLM explanation sentence."""
    rank = ENGLISH_FREQUENCY_ORDER.index(plain_letter) + 1
    return (
        f"Try **{cipher_letter} = {plain_letter}**: {cipher_letter} appears {occurrences} "
        f"{'time' if occurrences == 1 else 'times'} in the puzzle, and {plain_letter} is the "
        f"#{rank} most common English letter still unaccounted for."
    )


def _llm_reason(display: str, cipher_letter: str, plain_letter: str, occurrences: int) -> str | None:
    """
    Ask the LLM to phrase a short human-friendly rationale for the suggestion.

    Only the public display is sent; the solution never leaves the process.
    """
    api_key = os.getenv("OPENAI_API_KEY", "")
    offline = os.getenv("OFFLINE_MODE", "true").lower() == "true"
    if offline or not api_key:
        return None

    client = OpenAI(api_key=api_key)
    model = os.getenv("MODEL_NAME", "gpt-4o-mini")

    user = (
        "You are coaching a cryptogram (letter substitution) player. "
        f"The current board is `{display}` where █ marks unsolved letters. "
        f"The cipher letter {cipher_letter} appears {occurrences} times. "
        f"Recommend trying {cipher_letter} = {plain_letter} and give ONE short sentence explaining why. "
        "Do not guess the full quote."
    )
    try:
        r = client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": user}],
            temperature=0.7,
            max_tokens=60,
        )
        text = (r.choices[0].message.content or "").strip()
        return text or None
    except Exception as exc:
        logger.warning("Coach LLM call failed, using local rationale: %s", exc)
        return None


def suggest_next_move(state: PuzzleState) -> CoachSuggestion | None:
    """
    Suggest which ciphertext letter to attack and what to guess for it.

    Steps
    -----
    1) Pick the most frequent unrevealed ciphertext letter.
    2) Pick the most common English letter that is still possible for it.
    3) Produce a one-sentence rationale using the LLM; fallback to a local sentence.

    Returns None when nothing is left to solve.
    """
    cipher_letter = _pick_cipher_letter(state)
    if cipher_letter is None:
        return None

    candidates = _candidate_plain_letters(state, cipher_letter)
    plain_letter = candidates[0] if candidates else "E"  # classic fallback
    occurrences = letter_frequency(state, cipher_letter)

    llm_text = _llm_reason(current_display(state), cipher_letter, plain_letter, occurrences)
    if llm_text:
        return CoachSuggestion(cipher_letter, plain_letter, llm_text, True, occurrences)

    local_text = _local_reason(state, cipher_letter, plain_letter, occurrences)
    return CoachSuggestion(cipher_letter, plain_letter, local_text, False, occurrences)
