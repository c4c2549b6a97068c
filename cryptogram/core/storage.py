from __future__ import annotations

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Set

from .engine import unique_cipher_letters
from .errors import CorruptRecordError
from .state import PuzzleState

logger = logging.getLogger("decodey.storage")

RECORD_VERSION = 1

_REQUIRED_FIELDS = (
    "ciphertext",
    "plaintext",
    "cipher_key",
    "revealed",
    "wrong_attempts",
    "mistake_count",
    "mistake_limit",
    "difficulty",
    "outcome",
    "started_at",
    "last_touched_at",
)


def to_record(state: PuzzleState) -> Dict[str, Any]:
    """
    Project a PuzzleState onto a JSON-safe dict.

    Notes
    -----
    - Sets become sorted lists and datetimes ISO-8601 strings.
    - The selection is transient UI state and is not stored.
    """
    return {
        "version": RECORD_VERSION,
        "ciphertext": state.ciphertext,
        "plaintext": state.plaintext,
        "cipher_key": dict(sorted(state.cipher_key.items())),
        "revealed": dict(sorted(state.revealed.items())),
        "wrong_attempts": {k: sorted(v) for k, v in sorted(state.wrong_attempts.items())},
        "mistake_count": state.mistake_count,
        "mistake_limit": state.mistake_limit,
        "difficulty": state.difficulty,
        "outcome": state.outcome,
        "practice_mode": state.practice_mode,
        "started_at": state.started_at.isoformat(),
        "last_touched_at": state.last_touched_at.isoformat(),
    }


def _check_letter_map(name: str, value: Any) -> Dict[str, str]:
    if not isinstance(value, dict) or not all(
        isinstance(k, str) and isinstance(v, str) and len(k) == 1 and len(v) == 1
        for k, v in value.items()
    ):
        raise CorruptRecordError(f"`{name}` must map single letters to single letters.")
    return value


def _parse_timestamp(name: str, value: Any) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise CorruptRecordError(f"`{name}` is not an ISO-8601 timestamp: {exc}") from exc
    if parsed.tzinfo is None:
        raise CorruptRecordError(f"`{name}` has no timezone.")
    return parsed


def _check_outcome(state: PuzzleState) -> None:
    """The stored outcome must be the one the engine would have settled on."""
    solved = set(state.revealed) == set(unique_cipher_letters(state))
    if (state.outcome == "won") != solved:
        raise CorruptRecordError(
            f"Outcome {state.outcome!r} disagrees with {len(state.revealed)} revealed letters."
        )
    exhausted = state.mistake_count >= state.mistake_limit
    if not solved and (state.outcome == "lost") != exhausted:
        raise CorruptRecordError(
            f"Outcome {state.outcome!r} disagrees with {state.mistake_count}/{state.mistake_limit} mistakes."
        )


def from_record(record: Dict[str, Any]) -> PuzzleState:
    """
    Rebuild a PuzzleState from a stored record, verbatim.

    The ciphertext is never re-derived from the plaintext; the stored texts
    and key are checked against each other instead.

    Raises
    ------
    CorruptRecordError
        If a field is missing or mistyped, the texts are identical or of
        different lengths, the key is not one-to-one or does not decrypt the
        ciphertext, a timestamp lacks a timezone, or the outcome does not
        match the revealed letters and mistake count.
    """
    if not isinstance(record, dict):
        raise CorruptRecordError("Record must be a JSON object.")
    missing = [name for name in _REQUIRED_FIELDS if name not in record]
    if missing:
        raise CorruptRecordError(f"Record is missing fields: {', '.join(missing)}.")

    ciphertext = record["ciphertext"]
    plaintext = record["plaintext"]
    if not isinstance(ciphertext, str) or not isinstance(plaintext, str):
        raise CorruptRecordError("`ciphertext` and `plaintext` must be strings.")
    if ciphertext == plaintext:
        raise CorruptRecordError("`ciphertext` equals `plaintext`; the record was never encrypted.")
    if len(ciphertext) != len(plaintext):
        raise CorruptRecordError("`ciphertext` and `plaintext` lengths differ.")

    cipher_key = _check_letter_map("cipher_key", record["cipher_key"])
    if len(set(cipher_key.values())) != len(cipher_key):
        raise CorruptRecordError("`cipher_key` maps two cipher letters to the same plain letter.")
    revealed = _check_letter_map("revealed", record["revealed"])
    decrypted = "".join(cipher_key.get(ch, ch) for ch in ciphertext)
    if decrypted != plaintext:
        raise CorruptRecordError("`cipher_key` does not decrypt `ciphertext` into `plaintext`.")

    wrong_raw = record["wrong_attempts"]
    if not isinstance(wrong_raw, dict) or not all(isinstance(v, list) for v in wrong_raw.values()):
        raise CorruptRecordError("`wrong_attempts` must map letters to lists of letters.")

    started_at = _parse_timestamp("started_at", record["started_at"])
    last_touched_at = _parse_timestamp("last_touched_at", record["last_touched_at"])

    try:
        state = PuzzleState(
            ciphertext=ciphertext,
            plaintext=plaintext,
            cipher_key=cipher_key,
            revealed=revealed,
            wrong_attempts={k: frozenset(v) for k, v in wrong_raw.items()},
            mistake_count=int(record["mistake_count"]),
            mistake_limit=int(record["mistake_limit"]),
            difficulty=record["difficulty"],
            outcome=record["outcome"],
            practice_mode=bool(record.get("practice_mode", False)),
            started_at=started_at,
            last_touched_at=last_touched_at,
        )
    except (TypeError, ValueError) as exc:
        raise CorruptRecordError(f"Invalid record: {exc}") from exc
    _check_outcome(state)
    return state


def save_puzzle(state: PuzzleState, path: str | Path, meta: Optional[Dict[str, Any]] = None) -> None:
    """
    Write a puzzle to `path` as JSON, creating parent directories.

    `meta` is stored beside the state for the app (quote author, daily flag)
    and is never read back by `from_record`.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    record = to_record(state)
    if meta:
        record["meta"] = meta
    path.write_text(json.dumps(record, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.debug("Saved puzzle to %s", path)


def _read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def load_puzzle(path: str | Path) -> Optional[PuzzleState]:
    """
    Load a puzzle saved by `save_puzzle`.

    Returns None when the file does not exist or holds a corrupt record;
    corrupt records are discarded, never repaired.
    """
    path = Path(path)
    if not path.exists():
        return None
    try:
        return from_record(_read_json(path))
    except (json.JSONDecodeError, CorruptRecordError) as exc:
        logger.warning("Discarding corrupt puzzle record %s: %s", path, exc)
        return None


def load_puzzle_meta(path: str | Path) -> Dict[str, Any]:
    """Return the `meta` saved with a puzzle, or {} when there is none."""
    path = Path(path)
    if not path.exists():
        return {}
    try:
        record = _read_json(path)
    except json.JSONDecodeError:
        return {}
    meta = record.get("meta") if isinstance(record, dict) else None
    return meta if isinstance(meta, dict) else {}


# ---------------------------------------------------------------------------
# Daily streak
# ---------------------------------------------------------------------------

def save_completed_days(days: Iterable[date], path: str | Path) -> None:
    """Write the dates of won daily challenges to `path` as sorted ISO dates."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"version": RECORD_VERSION, "completed_days": sorted(d.isoformat() for d in set(days))}
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    logger.debug("Saved %d completed days to %s", len(payload["completed_days"]), path)


def load_completed_days(path: str | Path) -> Set[date]:
    """
    Load the dates written by `save_completed_days`.

    A missing file means no streak yet; a corrupt one is logged and treated
    the same way.
    """
    path = Path(path)
    if not path.exists():
        return set()
    try:
        payload = _read_json(path)
        return {date.fromisoformat(d) for d in payload["completed_days"]}
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
        logger.warning("Discarding corrupt streak file %s: %s", path, exc)
        return set()
