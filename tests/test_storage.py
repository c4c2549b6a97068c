"""
Testing puzzle persistence records.
"""

import json
import random
from datetime import date, datetime, timezone

import pytest

from cryptogram.core.engine import create_puzzle, enable_practice_mode, get_hint, guess, select_letter, unique_cipher_letters
from cryptogram.core.errors import CorruptRecordError
from cryptogram.core.storage import (
    from_record,
    load_completed_days,
    load_puzzle,
    load_puzzle_meta,
    save_completed_days,
    save_puzzle,
    to_record,
)

T0 = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def _played_puzzle():
    state = create_puzzle("A STITCH IN TIME SAVES NINE", "easy", rng=random.Random(11), now=T0)
    first = unique_cipher_letters(state)[0]
    wrong = next(ch for ch in "ZQXJ" if ch != state.cipher_key[first])
    state, _ = guess(select_letter(state, first), wrong)
    state, _ = get_hint(state, rng=random.Random(2))
    return state


def test_record_is_json_safe_and_round_trips():
    state = _played_puzzle()
    record = json.loads(json.dumps(to_record(state)))
    restored = from_record(record)

    assert restored.ciphertext == state.ciphertext
    assert restored.plaintext == state.plaintext
    assert restored.cipher_key == state.cipher_key
    assert restored.revealed == state.revealed
    assert restored.wrong_attempts == state.wrong_attempts
    assert restored.mistake_count == state.mistake_count
    assert restored.mistake_limit == state.mistake_limit
    assert restored.outcome == state.outcome
    assert restored.started_at == state.started_at
    assert restored.last_touched_at == state.last_touched_at


def test_practice_mode_survives_round_trip():
    state = create_puzzle("HELLO WORLD", "hard", rng=random.Random(3), now=T0)
    for _ in range(3):
        state, _ = get_hint(state)
    restored = from_record(to_record(enable_practice_mode(state)))
    assert restored.practice_mode is True
    assert restored.outcome == "in_progress"


def test_plaintext_equal_to_ciphertext_is_rejected():
    record = to_record(_played_puzzle())
    record["ciphertext"] = record["plaintext"]
    with pytest.raises(CorruptRecordError):
        from_record(record)


def test_length_mismatch_is_rejected():
    record = to_record(_played_puzzle())
    record["ciphertext"] = record["ciphertext"] + "X"
    with pytest.raises(CorruptRecordError):
        from_record(record)


def test_double_encrypted_text_is_rejected():
    state = _played_puzzle()
    record = to_record(state)
    encrypt = {p: c for c, p in state.cipher_key.items()}
    record["ciphertext"] = "".join(encrypt.get(ch, ch) for ch in state.ciphertext)
    with pytest.raises(CorruptRecordError):
        from_record(record)


@pytest.mark.parametrize("field", ["ciphertext", "cipher_key", "mistake_count", "started_at"])
def test_missing_fields_are_rejected(field):
    record = to_record(_played_puzzle())
    del record[field]
    with pytest.raises(CorruptRecordError):
        from_record(record)


def test_bad_values_are_rejected():
    record = to_record(_played_puzzle())
    record["outcome"] = "paused"
    with pytest.raises(CorruptRecordError):
        from_record(record)

    record = to_record(_played_puzzle())
    record["started_at"] = "yesterday"
    with pytest.raises(CorruptRecordError):
        from_record(record)


def test_solved_puzzle_round_trips_as_won():
    state = create_puzzle("AB", "hard", rng=random.Random(1), now=T0)
    for letter in unique_cipher_letters(state):
        state, _ = guess(select_letter(state, letter), state.cipher_key[letter], now=T0)
    assert from_record(to_record(state)).outcome == "won"


def test_won_without_reveals_is_rejected():
    record = to_record(_played_puzzle())
    record["outcome"] = "won"
    record["revealed"] = {}
    with pytest.raises(CorruptRecordError):
        from_record(record)


def test_in_progress_past_the_mistake_limit_is_rejected():
    record = to_record(_played_puzzle())
    record["mistake_count"] = record["mistake_limit"] + 1
    with pytest.raises(CorruptRecordError):
        from_record(record)


def test_lost_with_mistakes_left_is_rejected():
    record = to_record(_played_puzzle())
    record["outcome"] = "lost"
    with pytest.raises(CorruptRecordError):
        from_record(record)


def test_key_mapping_two_letters_to_one_is_rejected():
    state = _played_puzzle()
    record = to_record(state)
    # Change a letter the ciphertext never uses, so the text still decrypts.
    unused = next(ch for ch in sorted(state.cipher_key) if ch not in state.ciphertext)
    record["cipher_key"][unused] = state.cipher_key[state.ciphertext[0]]
    assert "".join(record["cipher_key"].get(ch, ch) for ch in record["ciphertext"]) == record["plaintext"]
    with pytest.raises(CorruptRecordError):
        from_record(record)


@pytest.mark.parametrize("field", ["started_at", "last_touched_at"])
def test_timestamp_without_timezone_is_rejected(field):
    record = to_record(_played_puzzle())
    record[field] = T0.replace(tzinfo=None).isoformat()
    with pytest.raises(CorruptRecordError):
        from_record(record)


def test_save_and_load(tmp_path):
    state = _played_puzzle()
    path = tmp_path / "saves" / "current.json"
    save_puzzle(state, path)
    assert path.exists()
    assert load_puzzle(path).revealed == state.revealed


def test_load_missing_file_returns_none(tmp_path):
    assert load_puzzle(tmp_path / "nope.json") is None


def test_load_discards_corrupt_file(tmp_path):
    path = tmp_path / "current.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_puzzle(path) is None

    record = to_record(_played_puzzle())
    record["ciphertext"] = record["plaintext"]
    path.write_text(json.dumps(record), encoding="utf-8")
    assert load_puzzle(path) is None


def test_meta_is_saved_next_to_the_puzzle(tmp_path):
    path = tmp_path / "current.json"
    meta = {"author": "Seneca", "source": "daily", "daily_day": "2025-03-01"}
    save_puzzle(_played_puzzle(), path, meta=meta)
    assert load_puzzle_meta(path) == meta
    assert load_puzzle(path) is not None


def test_meta_defaults_to_empty(tmp_path):
    path = tmp_path / "current.json"
    save_puzzle(_played_puzzle(), path)
    assert load_puzzle_meta(path) == {}
    assert load_puzzle_meta(tmp_path / "nope.json") == {}


def test_completed_days_round_trip(tmp_path):
    path = tmp_path / "saves" / "streak.json"
    days = {date(2025, 3, 1), date(2025, 3, 2), date(2025, 2, 27)}
    save_completed_days(days, path)
    assert load_completed_days(path) == days


def test_completed_days_missing_or_corrupt(tmp_path):
    path = tmp_path / "streak.json"
    assert load_completed_days(path) == set()
    path.write_text('{"completed_days": ["not a date"]}', encoding="utf-8")
    assert load_completed_days(path) == set()
