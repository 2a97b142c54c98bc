# app/services/guess_evaluator.py
import logging

from app.core.config import settings
from app.models.enums import MessageKind
from app.models.game import ChatMessage, GameRoundState, GuessResult
from app.models.room import Room
from app.services import roster

logger = logging.getLogger("app.services.guess_evaluator")  # Logger for this module


def normalize_guess(text: str) -> str:
    return text.strip().lower()


def is_correct(text: str, word: str) -> bool:
    """Trimmed, case-insensitive exact match. No near-miss credit."""
    return normalize_guess(text) == normalize_guess(word)


def award_for(time_left_seconds: int) -> int:
    return max(settings.MIN_GUESS_AWARD, time_left_seconds)


def submit(round_state: GameRoundState, room: Room, player_id: str, text: str) -> GuessResult:
    """
    Evaluates one chat submission and applies its effects to `round_state` and `room` in place.
    Persisting the updated roster is left to the caller.
    """
    if player_id == round_state.current_drawer_id:
        return GuessResult(accepted=False, reason="The drawer cannot guess.")
    if player_id in round_state.guessed_player_ids:
        return GuessResult(accepted=False, reason="You already guessed the word.")
    if not text or not text.strip():
        return GuessResult(accepted=False, reason="Guess cannot be empty.")

    player = room.find_player(player_id)
    if player is None:
        logger.warning(f"Guess from {player_id} who is not in room {room.code}. Ignoring.")
        return GuessResult(accepted=False, reason="You are not in this room.")

    text = text.strip()[:settings.MAX_CHAT_MESSAGE_LENGTH]

    if round_state.current_word is None or not is_correct(text, round_state.current_word):
        round_state.messages.append(ChatMessage(
            sender_id=player_id, sender_name=player.display_name, text=text, kind=MessageKind.CHAT,
        ))
        return GuessResult(accepted=True, correct=False)

    points = award_for(round_state.time_left_seconds)
    round_state.messages.append(ChatMessage(
        sender_id=player_id,
        sender_name=player.display_name,
        text=f"{player.display_name} guessed the word!",
        kind=MessageKind.CORRECT_GUESS,
    ))
    round_state.guessed_player_ids.add(player_id)
    roster.add_score(room, player_id, points)

    round_complete = len(round_state.guessed_player_ids) >= len(room.players) - 1
    logger.info(f"Room {room.code}: {player_id} guessed correctly with {round_state.time_left_seconds}s left (+{points}). "
                f"Guessed {len(round_state.guessed_player_ids)}/{len(room.players) - 1}")
    return GuessResult(accepted=True, correct=True, points_awarded=points, round_complete=round_complete)
