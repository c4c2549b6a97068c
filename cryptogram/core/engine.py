from __future__ import annotations

import logging
import random
import string
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Tuple

from .errors import IllegalTransitionError, InvalidInputError
from .quotes import Quote, pick_daily_quote
from .scoring import calculate_score, elapsed_seconds
from .state import DIFFICULTIES, MISTAKE_LIMITS, PRACTICE_MISTAKE_LIMIT, PuzzleState

logger = logging.getLogger("decodey.engine")

ALPHABET = string.ascii_uppercase
PLACEHOLDER = "█"

# Every player gets the same mistake budget on the daily challenge.
DAILY_DIFFICULTY = "medium"

__all__ = [
    "ALPHABET",
    "PLACEHOLDER",
    "DAILY_DIFFICULTY",
    "create_puzzle",
    "create_daily_puzzle",
    "select_letter",
    "guess",
    "get_hint",
    "enable_practice_mode",
    "calculate_score",
    "elapsed_seconds",
    "unique_cipher_letters",
    "unique_plaintext_letters",
    "letter_frequency",
    "completion_ratio",
    "current_display",
    "remaining_mistakes",
]


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def _is_letter(ch: str) -> bool:
    return len(ch) == 1 and ch in ALPHABET


def _generate_key(rng: random.Random) -> Dict[str, str]:
    """
    Build a random decryption map (ciphertext letter -> plaintext letter).

    The alphabet is shuffled and paired position-wise with the unshuffled
    alphabet. Letters may map to themselves.
    """
    shuffled = list(ALPHABET)
    rng.shuffle(shuffled)
    return {cipher_ch: plain_ch for plain_ch, cipher_ch in zip(ALPHABET, shuffled)}


def _encrypt(plaintext: str, cipher_key: Dict[str, str]) -> str:
    """Substitute every letter through the inverse of `cipher_key`; keep the rest."""
    encrypt_map = {plain_ch: cipher_ch for cipher_ch, plain_ch in cipher_key.items()}
    return "".join(encrypt_map.get(ch, ch) for ch in plaintext)


def create_puzzle(
    plaintext: str,
    difficulty: str = "medium",
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> PuzzleState:
    """
    Start a new puzzle for `plaintext`.

    Parameters
    ----------
    plaintext : str
        Source text (quote). Uppercased; only A–Z are enciphered, everything
        else is shown verbatim.
    difficulty : str
        "easy" | "medium" | "hard"; sets the mistake budget.
    rng : random.Random | None
        Random source for the cipher; pass a seeded one for reproducible puzzles.
    now : datetime | None
        Creation time; defaults to the current UTC time.

    Returns
    -------
    PuzzleState
        A fresh state in "in_progress" outcome.

    Raises
    ------
    InvalidInputError
        If the text is empty or has no letters, or the difficulty is unknown.
    """
    text = (plaintext or "").strip().upper()
    if not text or not any(_is_letter(ch) for ch in text):
        raise InvalidInputError("Puzzle text must contain at least one letter (A–Z).")
    if difficulty not in DIFFICULTIES:
        raise InvalidInputError(f"Unknown difficulty {difficulty!r}; expected one of {DIFFICULTIES}.")

    rng = rng or random.Random()
    # A text whose letters all happen to map to themselves would show the answer.
    while True:
        cipher_key = _generate_key(rng)
        ciphertext = _encrypt(text, cipher_key)
        if ciphertext != text:
            break

    created = _now(now)
    state = PuzzleState(
        ciphertext=ciphertext,
        plaintext=text,
        cipher_key=cipher_key,
        mistake_limit=MISTAKE_LIMITS[difficulty],
        difficulty=difficulty,
        started_at=created,
        last_touched_at=created,
    )
    logger.info(
        "Puzzle created: difficulty=%s, length=%d, distinct letters=%d",
        difficulty,
        len(text),
        len(unique_cipher_letters(state)),
    )
    return state


def create_daily_puzzle(
    day: Optional[date] = None,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> Tuple[PuzzleState, Quote]:
    """
    Start the daily challenge for `day` (today by default).

    The quote comes from `pick_daily_quote` and the difficulty is always
    `DAILY_DIFFICULTY`, whatever the player has selected. Returns the puzzle
    and the quote it was built from.
    """
    quote = pick_daily_quote(day)
    return create_puzzle(quote.text, DAILY_DIFFICULTY, rng=rng, now=now), quote


def _settle_outcome(state: PuzzleState) -> PuzzleState:
    """
    Compute the outcome after a reveal or a mistake.

    Rules
    -----
    - Won  : every distinct ciphertext letter is revealed (checked first).
    - Lost : `mistake_count >= mistake_limit`.
    - Else : unchanged.
    """
    if set(state.revealed) == set(unique_cipher_letters(state)):
        logger.info("Puzzle won with %d mistake(s).", state.mistake_count)
        return replace(state, outcome="won", selected=None)
    if state.mistake_count >= state.mistake_limit:
        logger.info("Puzzle lost after %d mistake(s).", state.mistake_count)
        return replace(state, outcome="lost", selected=None)
    return state


def select_letter(state: PuzzleState, letter: str) -> PuzzleState:
    """
    Select a ciphertext letter for the next guess.

    Behavior
    --------
    - Ignored when the puzzle is over or `letter` is not in the ciphertext.
    - Selecting an already revealed letter clears the selection.
    """
    if state.is_terminal:
        return state
    letter = (letter or "").upper()
    if not _is_letter(letter) or letter not in state.ciphertext:
        return state
    if letter in state.revealed:
        return replace(state, selected=None)
    return replace(state, selected=letter)


def guess(state: PuzzleState, letter: str, now: Optional[datetime] = None) -> Tuple[PuzzleState, bool]:
    """
    Guess the plaintext letter behind the selected ciphertext letter.

    Behavior
    --------
    - Returns `(state, False)` unchanged if the puzzle is over, nothing is
      selected, or `letter` is not a single A–Z letter.
    - A correct guess reveals the pair and may win the puzzle.
    - A wrong guess is remembered in `wrong_attempts`, costs one mistake and
      may lose the puzzle.
    - Always clears the selection and touches `last_touched_at`.
    """
    if state.is_terminal or state.selected is None:
        return state, False
    letter = (letter or "").upper()
    if not _is_letter(letter):
        return state, False

    selected = state.selected
    touched = _now(now)

    if state.cipher_key.get(selected) == letter:
        revealed = dict(state.revealed)
        revealed[selected] = letter
        new_state = replace(state, revealed=revealed, selected=None, last_touched_at=touched)
        logger.debug("Correct guess %s -> %s", selected, letter)
        return _settle_outcome(new_state), True

    wrong = dict(state.wrong_attempts)
    wrong[selected] = wrong.get(selected, frozenset()) | {letter}
    new_state = replace(
        state,
        wrong_attempts=wrong,
        mistake_count=state.mistake_count + 1,
        selected=None,
        last_touched_at=touched,
    )
    logger.debug("Wrong guess %s -> %s (%d/%d)", selected, letter, new_state.mistake_count, state.mistake_limit)
    return _settle_outcome(new_state), False


def get_hint(
    state: PuzzleState,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> Tuple[PuzzleState, Optional[str]]:
    """
    Reveal one random unrevealed ciphertext letter at the cost of one mistake.

    Notes
    -----
    - Ignored when the puzzle is over or the mistake budget is already spent.
    - A hint may complete the puzzle; the win is settled before the loss
      threshold, so a winning hint never loses.
    """
    if state.is_terminal or state.mistake_count >= state.mistake_limit:
        return state, None

    candidates = sorted(set(unique_cipher_letters(state)) - set(state.revealed))
    if not candidates:
        return state, None

    rng = rng or random.Random()
    hint_letter = rng.choice(candidates)
    revealed = dict(state.revealed)
    revealed[hint_letter] = state.cipher_key[hint_letter]

    new_state = replace(
        state,
        revealed=revealed,
        mistake_count=state.mistake_count + 1,
        selected=None if state.selected == hint_letter else state.selected,
        last_touched_at=_now(now),
    )
    logger.debug("Hint revealed %s (%d/%d)", hint_letter, new_state.mistake_count, state.mistake_limit)
    return _settle_outcome(new_state), hint_letter


def enable_practice_mode(state: PuzzleState) -> PuzzleState:
    """
    Let the player keep solving without a mistake limit.

    This is a deliberate override: a lost puzzle goes back to "in_progress"
    and `mistake_limit` jumps to `PRACTICE_MISTAKE_LIMIT`. The mistake count
    is kept as is.

    Raises
    ------
    IllegalTransitionError
        If the puzzle has already been won.
    """
    if state.outcome == "won":
        raise IllegalTransitionError("Practice mode cannot be enabled on a solved puzzle.")
    logger.info("Practice mode enabled after %d mistake(s).", state.mistake_count)
    return replace(
        state,
        outcome="in_progress",
        mistake_limit=PRACTICE_MISTAKE_LIMIT,
        practice_mode=True,
    )


# ---------------------------------------------------------------------------
# Derived queries
# ---------------------------------------------------------------------------

def unique_cipher_letters(state: PuzzleState) -> List[str]:
    """Distinct ciphertext letters in order of first appearance."""
    return list(dict.fromkeys(ch for ch in state.ciphertext if _is_letter(ch)))


def unique_plaintext_letters(state: PuzzleState) -> List[str]:
    """Distinct plaintext letters, sorted alphabetically."""
    return sorted({ch for ch in state.plaintext if _is_letter(ch)})


def letter_frequency(state: PuzzleState, letter: str) -> int:
    letter = (letter or "").upper()
    return state.ciphertext.count(letter) if _is_letter(letter) else 0


def completion_ratio(state: PuzzleState) -> float:
    total = len(unique_cipher_letters(state))
    return len(state.revealed) / total if total else 0.0


def remaining_mistakes(state: PuzzleState) -> int:
    return max(0, state.mistake_limit - state.mistake_count)


def current_display(state: PuzzleState, placeholder: str = PLACEHOLDER) -> str:
    """
    Return the player's view of the solution, e.g. 'H█LL█ W█RLD'.

    Revealed letters show their plaintext, unrevealed letters show
    `placeholder`, everything else is copied through.
    """
    return "".join(
        state.revealed.get(ch, placeholder) if _is_letter(ch) else ch
        for ch in state.ciphertext
    )
