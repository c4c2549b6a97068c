from __future__ import annotations

import logging
import os
from typing import Any, Dict, List

from openai import OpenAI
from cryptogram.core.engine import calculate_score, completion_ratio, current_display
from cryptogram.core.scoring import elapsed_seconds
from cryptogram.core.state import PuzzleState

logger = logging.getLogger("decodey.review")


def _local_fallback_review(history: List[Dict[str, Any]], state: PuzzleState) -> str:
    """
    Deterministic local review when LLM is unavailable or fails.
    Produces 3 short bullet points.
    """
    hits = sum(1 for h in history if h.get("type") == "guess" and h.get("hit"))
    wrongs = sum(1 for h in history if h.get("type") == "guess" and not h.get("hit"))
    hints = sum(1 for h in history if h.get("type") == "hint")
    pct = completion_ratio(state) * 100.0

    if state.outcome == "won":
        verdict = f"You cracked it in {elapsed_seconds(state)}s for {calculate_score(state)} points!"
    else:
        verdict = f"Not this time. The quote was: *{state.plaintext}*"
    return (
        f"**Outcome:** {verdict}\n\n"
        f"- **What went well:** {hits} correct {'guess' if hits == 1 else 'guesses'}, {pct:.0f}% of the letters solved.\n"
        f"- **What to improve:** {wrongs} wrong {'guess' if wrongs == 1 else 'guesses'} and {hints} "
        f"{'hint' if hints == 1 else 'hints'}; each one costs a mistake.\n"
        f"- **Next time:** On *{state.difficulty}* difficulty, start with the most frequent cipher letters "
        "and look for one- and two-letter words like A, I, OF and TO."
    )


def _format_history_compact(history: List[Dict[str, Any]]) -> str:
    """
    Compress history into a concise, LLM-friendly string.
    Example item: "1) G:Q=E✓ -> █E██O | mistakes=0"
    """
    lines = []
    for i, h in enumerate(history, start=1):
        hit = "✓" if h.get("hit") else "×"
        if h.get("type") == "hint":
            lines.append(f"{i}) H:{h.get('cipher')} -> {h.get('display')} | mistakes={h.get('mistakes')}")
        else:
            lines.append(
                f"{i}) G:{h.get('cipher')}={h.get('letter')}{hit} -> {h.get('display')} | mistakes={h.get('mistakes')}"
            )
    return "\n".join(lines)


def generate_review(
    history: List[Dict[str, Any]],
    state: PuzzleState,
    temperature: float = 0.4,
) -> str:
    """
    Generate a short post-game review.

    Behavior
    --------
    - If OFFLINE_MODE=true or key missing -> returns a local, deterministic review.
    - Otherwise, asks an LLM for ~3 short paragraphs: turning points, missed
      opportunities, and next-game tips.
    - The quote is only sent once the puzzle is over, since the app shows it then.
    """
    api_key = os.getenv("OPENAI_API_KEY", "")
    offline = os.getenv("OFFLINE_MODE", "true").lower() == "true"
    if offline or not api_key:
        return _local_fallback_review(history, state)

    client = OpenAI(api_key=api_key)
    model = os.getenv("MODEL_NAME", "gpt-4o-mini")

    outcome = {"won": "won", "lost": "lost"}.get(state.outcome, "unfinished")
    quote = state.plaintext if state.is_terminal else "(hidden)"
    sys = "You are a concise strategy coach for cryptogram puzzles. Provide clear, actionable feedback."
    user = (
        f"Game outcome: {outcome}\n"
        f"Difficulty: {state.difficulty}\n"
        f"Quote: {quote}\n"
        f"Mistakes: {state.mistake_count} of {state.mistake_limit}\n"
        f"Final board: {current_display(state)}\n"
        f"History (each line = step):\n{_format_history_compact(history)}\n\n"
        "Write a post-game review in ~3 short paragraphs:\n"
        "1) Key turning points that helped or hurt progress (why)\n"
        "2) Missed opportunities (which letters or short words to try earlier)\n"
        "3) Concrete next-game tips (frequency analysis, common words, when to take a hint)\n"
        "Keep it under 140 words total. Avoid bullet lists; use compact prose."
    )

    try:
        resp = client.chat.completions.create(
            model=model,
            messages=[{"role": "system", "content": sys}, {"role": "user", "content": user}],
            temperature=temperature,
            max_tokens=300,
        )
        text = (resp.choices[0].message.content or "").strip()
        # Soft cap for verbosity
        if len(text.split()) > 160:
            text = " ".join(text.split()[:160])
        return text or _local_fallback_review(history, state)
    except Exception as exc:
        logger.warning("Review LLM call failed, using local review: %s", exc)
        return _local_fallback_review(history, state)
