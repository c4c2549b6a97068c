from __future__ import annotations

import logging
import os
from typing import Optional

from openai import OpenAI
from cryptogram.core.quotes import Quote

logger = logging.getLogger("decodey.llm_picker")

# Length bounds (characters) per difficulty for LLM-picked quotes.
_LENGTH_BOUNDS = {
    "easy": (10, 45),
    "medium": (25, 70),
    "hard": (45, 140),
}


def _parse_reply(text: str) -> Optional[Quote]:
    """
    Turn 'QUOTE | AUTHOR' into a Quote; strip wrapping quotes, force uppercase.
    """
    body, _, author = (text or "").strip().partition("|")
    body = body.strip().strip('"').strip("“”").strip().upper()
    if not any("A" <= ch <= "Z" for ch in body):
        return None
    return Quote(text=body, author=author.strip() or "Unknown")


def pick_quote_with_llm(difficulty: str = "medium", retries: int = 2, model: Optional[str] = None) -> Optional[Quote]:
    """
    Try to pick ONE well-known quote via an LLM. Returns None on failure (caller should fallback).

    Safety
    ------
    - OFFLINE_MODE=true or missing OPENAI_API_KEY -> returns None immediately.
    - Prompts the model for exactly one line formatted as 'QUOTE | AUTHOR'.
    - Validates letters + length bounds; retries a few times; then gives up.
    """
    api_key = os.getenv("OPENAI_API_KEY", "")
    offline = os.getenv("OFFLINE_MODE", "true").lower() == "true"
    if offline or not api_key:
        return None

    low, high = _LENGTH_BOUNDS.get(difficulty, _LENGTH_BOUNDS["medium"])
    prompt = (
        f"Give one famous, widely quoted sentence between {low} and {high} characters long, "
        "suitable for a cryptogram puzzle. It should be different each time. "
        "Output exactly one line formatted as: QUOTE | AUTHOR"
    )

    client = OpenAI(api_key=api_key)
    mdl = model or os.getenv("MODEL_NAME", "gpt-4o")

    attempts = retries + 1
    for attempt in range(1, attempts + 1):
        try:
            resp = client.chat.completions.create(
                model=mdl,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.9,
                max_tokens=80,
            )
        except Exception as exc:
            logger.warning("Quote picker LLM call failed (attempt %d/%d): %s", attempt, attempts, exc)
            continue
        quote = _parse_reply(resp.choices[0].message.content or "")
        if quote is not None and low <= len(quote.text) <= high:
            return quote
        logger.debug("Rejected LLM quote on attempt %d/%d: %r", attempt, attempts, quote)

    return None  # let caller fallback to local quotes
