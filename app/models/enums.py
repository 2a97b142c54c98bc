from enum import Enum

class GamePhase(str, Enum):
    LOBBY = "lobby"
    ROUND_ACTIVE = "round_active"
    ROUND_ENDING = "round_ending" # Grace period while the answer is shown
    GAME_COMPLETE = "game_complete"

class RoundEndReason(str, Enum):
    TIMER_EXPIRED = "timer_expired"
    ALL_GUESSED = "all_guessed"

class MessageKind(str, Enum):
    CHAT = "chat"
    CORRECT_GUESS = "correct_guess"
    SYSTEM = "system"

class RedirectTarget(str, Enum):
    LOBBY = "lobby"
    GAME = "game"
    DASHBOARD = "dashboard"
