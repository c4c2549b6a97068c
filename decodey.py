from __future__ import annotations

import logging
import os
from datetime import date
from pathlib import Path

import streamlit as st

from dotenv import load_dotenv
load_dotenv(override=False)  # Load .env into process env

# --- Core game imports ---
from cryptogram.core.engine import (
    create_daily_puzzle,
    create_puzzle,
    current_display,
    enable_practice_mode,
    get_hint,
    guess,
    letter_frequency,
    remaining_mistakes,
    select_letter,
    unique_cipher_letters,
)
from cryptogram.core.errors import InvalidInputError
from cryptogram.core.quotes import DEFAULT_QUOTES, Quote, pick_random_quote
from cryptogram.core.scoring import apply_streak_boost, calculate_score, current_streak
from cryptogram.core.state import PuzzleState
from cryptogram.core.storage import (
    load_completed_days,
    load_puzzle,
    load_puzzle_meta,
    save_completed_days,
    save_puzzle,
)

# --- Generative AI services ---
from cryptogram.services.llm_picker import pick_quote_with_llm  # AI quote picker (with fallback)
from cryptogram.services.coach import suggest_next_move        # Coach (letter pair + rationale)
from cryptogram.services.review import generate_review         # Post-game review

logging.basicConfig(
    level=os.getenv("DECODEY_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("decodey.app")

SAVE_PATH = os.getenv("DECODEY_SAVE_PATH", "data/saves/current.json")
# Won daily challenges, kept next to the puzzle save.
STREAK_PATH = Path(SAVE_PATH).with_name("streak.json")


# =======================================
# Session-state helpers & game management
# =======================================

def _init_stats() -> None:
    """Ensure a stats dict exists in session state and the daily streak is loaded."""
    st.session_state.setdefault("stats", {"games": 0, "wins": 0, "losses": 0, "mistakes": 0, "best": 0})
    if "completed_days" not in st.session_state:
        st.session_state["completed_days"] = load_completed_days(STREAK_PATH)


def _init_round_state() -> None:
    """Ensure per-round transient keys exist."""
    st.session_state.setdefault("round_counted", False)
    st.session_state.setdefault("coach_suggestion", None)
    st.session_state.setdefault("history", [])        # record moves for review
    st.session_state.setdefault("review_text", None)
    st.session_state.setdefault("quote", DEFAULT_QUOTES[0])
    st.session_state.setdefault("daily_day", None)    # date of the daily challenge being played


def _pick_quote(difficulty: str) -> tuple[Quote, str]:
    """LLM-picked quote, else a local one. Returns (quote, source tag)."""
    llm_quote = pick_quote_with_llm(difficulty=difficulty)
    if llm_quote:
        return llm_quote, "llm"
    return pick_random_quote(difficulty), "local"


def _session_meta() -> dict:
    """What the app needs besides the PuzzleState to resume a round."""
    quote = st.session_state["quote"]
    daily_day = st.session_state.get("daily_day")
    return {
        "author": quote.author,
        "source": st.session_state.get("quote_source", "unknown"),
        "daily_day": daily_day.isoformat() if daily_day else None,
    }


def _start_new_game(difficulty: str, daily: bool = False) -> None:
    """
    Start a new puzzle and reset per-round flags/history.
    Daily puzzles ignore `difficulty`. Falls back to the built-in sentence
    if the picked quote is unusable.
    """
    try:
        if daily:
            today = date.today()
            game, quote = create_daily_puzzle(today)
            source = "daily"
        else:
            today = None
            quote, source = _pick_quote(difficulty)
            game = create_puzzle(quote.text, difficulty)
    except InvalidInputError as exc:
        logger.warning("Unusable quote (%s); falling back to default.", exc)
        today = None
        quote, source = DEFAULT_QUOTES[0], "default"
        game = create_puzzle(quote.text, difficulty)

    st.session_state["game"] = game
    st.session_state["quote"] = quote
    st.session_state["quote_source"] = source
    st.session_state["daily_day"] = today

    # Reset per-round state
    st.session_state["round_counted"] = False
    st.session_state["coach_suggestion"] = None
    st.session_state["history"] = []
    st.session_state["review_text"] = None
    save_puzzle(game, SAVE_PATH, meta=_session_meta())


def _resume(game: PuzzleState) -> None:
    """Restore a saved puzzle together with its quote author and daily date."""
    meta = load_puzzle_meta(SAVE_PATH)
    daily_day = meta.get("daily_day")
    try:
        st.session_state["daily_day"] = date.fromisoformat(daily_day) if daily_day else None
    except (TypeError, ValueError):
        logger.warning("Ignoring bad daily date %r in %s", daily_day, SAVE_PATH)
        st.session_state["daily_day"] = None
    st.session_state["game"] = game
    st.session_state["quote"] = Quote(game.plaintext, str(meta.get("author") or "Unknown"))
    st.session_state["quote_source"] = "resumed"


def _ensure_game(difficulty: str) -> PuzzleState:
    """Ensure there is a valid PuzzleState in session state; resume or create one if missing."""
    _init_stats()
    _init_round_state()
    if "game" not in st.session_state or not isinstance(st.session_state["game"], PuzzleState):
        resumed = load_puzzle(SAVE_PATH)
        if resumed is not None and not resumed.is_terminal:
            _resume(resumed)
        else:
            _start_new_game(difficulty)
    st.session_state.setdefault("quote_source", "unknown")
    return st.session_state["game"]


def _apply(new_game: PuzzleState, entry: dict | None = None) -> None:
    """Store the new state, record the move, persist."""
    st.session_state["game"] = new_game
    if entry is not None:
        entry["display"] = current_display(new_game)
        entry["mistakes"] = new_game.mistake_count
        st.session_state["history"].append(entry)
    save_puzzle(new_game, SAVE_PATH, meta=_session_meta())


# =========
# The App
# =========

def main() -> None:
    st.set_page_config(page_title="Decodey", page_icon="🔐", layout="centered")
    st.title("🔐 Decodey")

    # ---- Sidebar ----
    with st.sidebar:
        st.header("Settings")
        difficulty = st.selectbox("Difficulty", ["easy", "medium", "hard"], index=1)
        c1, c2 = st.columns(2)
        if c1.button("🔁 Random", use_container_width=True):
            _start_new_game(difficulty)
            st.rerun()
        if c2.button("📅 Daily", use_container_width=True):
            _start_new_game(difficulty, daily=True)
            st.rerun()

        # Stats panel
        _init_stats()
        streak = current_streak(st.session_state["completed_days"], date.today())
        with st.expander("📊 Stats", expanded=True):
            s = st.session_state["stats"]
            games = s["games"]; wins = s["wins"]; losses = s["losses"]
            winrate = (wins / games * 100.0) if games else 0.0

            st.metric("Games", games)
            c1, c2 = st.columns(2); c1.metric("Wins", wins); c2.metric("Losses", losses)
            c3, c4 = st.columns(2); c3.metric("Win rate", f"{winrate:.1f}%"); c4.metric("Best score", s["best"])
            st.metric("Daily streak", f"{streak} day{'s' if streak != 1 else ''}")

            if st.button("♻️ Reset stats"):
                st.session_state["stats"] = {"games": 0, "wins": 0, "losses": 0, "mistakes": 0, "best": 0}
                st.session_state["completed_days"] = set()
                save_completed_days(set(), STREAK_PATH)
                st.success("Stats reset.")

        with st.expander("Debug (env)"):
            st.write("OFFLINE_MODE:", os.getenv("OFFLINE_MODE"))
            st.write("Has OPENAI_API_KEY:", bool(os.getenv("OPENAI_API_KEY")))
            st.write("MODEL_NAME:", os.getenv("MODEL_NAME"))

    game: PuzzleState = _ensure_game(difficulty)

    # ---- Board ----
    st.subheader("Daily challenge" if st.session_state["daily_day"] else "Board")
    st.markdown(f"**Encrypted**: `{game.ciphertext}`")
    st.markdown(f"**Solution**: `{current_display(game)}`")
    limit_text = "∞" if game.practice_mode else str(game.mistake_limit)
    st.caption(f"Mistakes: {game.mistake_count} / {limit_text}")
    if not game.practice_mode:
        st.progress(min(1.0, game.mistake_count / game.mistake_limit))

    source = st.session_state.get("quote_source", "unknown")
    st.caption(f"Source: {source}")

    # ---- Letter grid ----
    letters = unique_cipher_letters(game)
    cols = st.columns(min(len(letters), 9) or 1)
    for i, ch in enumerate(letters):
        label = f"{ch}→{game.revealed[ch]}" if ch in game.revealed else f"{ch} ({letter_frequency(game, ch)})"
        kind = "primary" if game.selected == ch else "secondary"
        if cols[i % len(cols)].button(label, key=f"sel_{ch}", type=kind, disabled=game.is_terminal):
            _apply(select_letter(game, ch))
            st.rerun()

    # ---- Move input ----
    st.subheader("Your move")
    with st.form("guess_form", clear_on_submit=True):
        selected = game.selected or "—"
        guess_inp = st.text_input(
            f"Plain letter for {selected}:",
            max_chars=1,
            help="Pick a cipher letter above, then type the letter you think it stands for.",
        )
        submitted = st.form_submit_button("Guess")
        if submitted and not game.is_terminal and game.selected:
            g = (guess_inp or "").strip().upper()
            if g:
                new_game, hit = guess(game, g)
                _apply(new_game, {"type": "guess", "cipher": game.selected, "letter": g, "hit": hit})
            st.rerun()

    if st.button("💡 Hint (costs a mistake)", disabled=game.is_terminal or remaining_mistakes(game) == 0):
        new_game, hinted = get_hint(game)
        if hinted:
            _apply(new_game, {"type": "hint", "cipher": hinted, "letter": new_game.revealed[hinted], "hit": True})
        st.rerun()

    with st.expander("Need coaching?"):
        if st.button("🤖 Coach: next move", disabled=game.is_terminal):
            with st.spinner("Counting letters..."):
                st.session_state["coach_suggestion"] = suggest_next_move(game)
            st.rerun()
        coach = st.session_state["coach_suggestion"]
        if coach:
            src = "LLM" if coach.used_llm else "local"
            st.success(f"{coach.text}  \n*Source: {src}*")
        if st.button("♻️ Clear Coach"):
            st.session_state["coach_suggestion"] = None
            st.rerun()

    # ---- Outcome banner + stats update ----
    game = st.session_state["game"]
    streak = current_streak(st.session_state["completed_days"], date.today())
    if game.is_terminal and not st.session_state.get("round_counted", False):
        stats = st.session_state["stats"]
        stats["games"] += 1
        stats["mistakes"] += game.mistake_count
        if game.outcome == "won":
            stats["wins"] += 1
            if st.session_state["daily_day"]:
                st.session_state["completed_days"].add(st.session_state["daily_day"])
                save_completed_days(st.session_state["completed_days"], STREAK_PATH)
                streak = current_streak(st.session_state["completed_days"], date.today())
            score = calculate_score(game)
            if st.session_state["daily_day"]:
                score = apply_streak_boost(score, streak)
            stats["best"] = max(stats["best"], score)
        else:
            stats["losses"] += 1
        st.session_state["round_counted"] = True

    quote = st.session_state["quote"]
    if game.outcome == "won":
        score = calculate_score(game)
        boosted = apply_streak_boost(score, streak) if st.session_state["daily_day"] else score
        st.success(f"🎉 Decoded! Score: **{boosted}**" + (f" (streak boost from {score})" if boosted != score else ""))
        st.caption(f"— {quote.author}")
    elif game.outcome == "lost":
        st.error(f"💀 Out of mistakes. The quote was: **{game.plaintext}**")
        if st.button("♾️ Keep playing (practice mode)"):
            _apply(enable_practice_mode(game))
            st.rerun()

    # ---- Post-game review ----
    if game.is_terminal:
        with st.expander("📝 Review"):
            col_a, col_b = st.columns(2)
            with col_a:
                if st.button("✨ Generate Review"):
                    with st.spinner("Analyzing your round..."):
                        st.session_state["review_text"] = generate_review(
                            history=st.session_state.get("history", []),
                            state=game,
                        )
                    st.rerun()
            with col_b:
                if st.button("♻️ Clear Review"):
                    st.session_state["review_text"] = None
                    st.rerun()

            if st.session_state["review_text"]:
                st.write(st.session_state["review_text"])

        st.button("Play again", on_click=_start_new_game, args=(difficulty,))

    st.divider()
    st.caption(
        "The local engine handles ciphers, mistakes and scoring; Generative AI only picks quotes "
        "and phrases coaching and reviews when enabled."
    )


if __name__ == "__main__":
    main()
