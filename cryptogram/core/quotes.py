from __future__ import annotations

import logging
import os
import random
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Iterable, List, Optional

logger = logging.getLogger("decodey.quotes")

# Project-local quote files live here unless DECODEY_QUOTES_DIR says otherwise.
_DEFAULT_DATA_DIR = "data/quotes"

# One file per difficulty. Each line: "quote text | author".
_DEFAULT_FILES = {
    "easy": "easy.txt",
    "medium": "medium.txt",
    "hard": "hard.txt",
}

# Day 0 of the daily challenge rotation.
LAUNCH_DATE = date(2024, 12, 17)


@dataclass(frozen=True)
class Quote:
    """A puzzle source text and its attribution."""
    text: str
    author: str = "Unknown"


# Last-resort fallback so the game is always playable.
DEFAULT_QUOTES = [
    Quote("THE QUICK BROWN FOX JUMPS OVER THE LAZY DOG.", "Typing exercise"),
]


def _data_dir() -> Path:
    return Path(os.getenv("DECODEY_QUOTES_DIR", _DEFAULT_DATA_DIR))


def _parse_line(line: str) -> Optional[Quote]:
    """
    Parse 'text | author' into a Quote; the author part is optional.

    Lines without any letter are rejected since they cannot become a puzzle.
    """
    text, _, author = line.partition("|")
    text = text.strip()
    if not any(ch.isalpha() for ch in text):
        return None
    return Quote(text=text, author=author.strip() or "Unknown")


def _read_quotes(path: Path) -> List[Quote]:
    """
    Read a quote file (UTF-8) and return the parsed, non-empty entries.

    Notes
    -----
    - Silently returns an empty list if the file is missing.
    - Blank lines and lines starting with '#' are skipped.
    """
    if not path.exists() or not path.is_file():
        return []
    quotes: List[Quote] = []
    for ln in path.read_text(encoding="utf-8", errors="ignore").splitlines():
        ln = ln.strip()
        if not ln or ln.startswith("#"):
            continue
        quote = _parse_line(ln)
        if quote is None:
            logger.debug("Skipping unusable quote line in %s: %r", path.name, ln)
            continue
        quotes.append(quote)
    return quotes


def _load_quotes_for_files(files: Iterable[str]) -> List[Quote]:
    """Load and concatenate quotes from several files; missing files are skipped."""
    data_dir = _data_dir()
    quotes: List[Quote] = []
    for fname in files:
        quotes.extend(_read_quotes(data_dir / fname))
    return quotes


def load_quotes(difficulty: Optional[str] = None) -> List[Quote]:
    """
    Load candidate quotes, optionally for one difficulty.

    Fallback strategy
    -----------------
    1) Use the file mapped by `difficulty` in `_DEFAULT_FILES` (all files if None).
    2) If empty/missing, use every quote file, keeping the quotes whose
       `estimate_difficulty` matches `difficulty` (all of them if none match).
    3) If still empty, return `DEFAULT_QUOTES`.
    """
    if difficulty in _DEFAULT_FILES:
        quotes = _load_quotes_for_files([_DEFAULT_FILES[difficulty]])
    else:
        quotes = []
    if not quotes:
        quotes = _load_quotes_for_files(_DEFAULT_FILES.values())
        matching = [q for q in quotes if estimate_difficulty(q.text) == difficulty]
        if matching:
            logger.debug("Using %d of %d quotes estimated as %s.", len(matching), len(quotes), difficulty)
            quotes = matching
    if not quotes:
        logger.warning("No quote files found under %s; using the built-in default.", _data_dir())
        quotes = list(DEFAULT_QUOTES)
    return quotes


def estimate_difficulty(text: str) -> str:
    """
    Rough difficulty of a text from its size.

        <= 12 distinct letters and <= 40 chars -> easy
        <= 16 distinct letters and <= 60 chars -> medium
        otherwise                              -> hard
    """
    unique_letters = len({ch for ch in text.lower() if ch.isalpha()})
    length = len(text)
    if unique_letters <= 12 and length <= 40:
        return "easy"
    if unique_letters <= 16 and length <= 60:
        return "medium"
    return "hard"


def pick_random_quote(difficulty: str = "medium", seed: int | None = None) -> Quote:
    """
    Pick a single quote for the given difficulty.

    Parameters
    ----------
    difficulty : str
        Difficulty key ("easy" | "medium" | "hard"). Unknown keys use every file.
    seed : int | None
        Optional seed for reproducible picks during tests or demos.
    """
    quotes = load_quotes(difficulty)
    rng = random.Random(seed)
    return rng.choice(quotes)


def day_index(day: date, launch: date = LAUNCH_DATE) -> int:
    """Days between `launch` and `day`, as an absolute value."""
    return abs((day - launch).days)


def pick_daily_quote(day: Optional[date] = None) -> Quote:
    """
    Pick the daily challenge quote for `day` (today by default).

    Every player gets the same quote on the same day: all quotes are sorted
    by text and cycled through with the day index.
    """
    day = day or date.today()
    quotes = sorted(load_quotes(), key=lambda q: q.text)
    idx = day_index(day) % len(quotes)
    logger.debug("Daily quote for %s: index %d of %d", day.isoformat(), idx, len(quotes))
    return quotes[idx]
