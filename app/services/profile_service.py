# app/services/profile_service.py
import math
from typing import Callable, List, NamedTuple

from app.models.user import Achievement, UserProfile
from app.schemas.user import User


class AchievementRule(NamedTuple):
    id: str
    name: str
    description: str
    unlocked: Callable[[UserProfile], bool]


ACHIEVEMENT_RULES: List[AchievementRule] = [
    AchievementRule("first_win", "First Victory", "Win your first game", lambda p: p.games_won >= 1),
    AchievementRule("artist", "Artist", "Play 10 games", lambda p: p.games_played >= 10),
    AchievementRule("champion", "Champion", "Win 5 games", lambda p: p.games_won >= 5),
    AchievementRule("high_scorer", "High Scorer", "Reach 1000 total points", lambda p: p.total_score >= 1000),
    AchievementRule("streaker", "Streaker", "Keep an 80% win rate over at least 5 games",
                    lambda p: p.win_rate >= 80 and p.games_played >= 5),
]


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def win_rate(games_won: int, games_played: int) -> int:
    if games_played <= 0:
        return 0
    return _round_half_up(games_won / games_played * 100)


def average_score(total_score: int, games_played: int) -> int:
    if games_played <= 0:
        return 0
    return _round_half_up(total_score / games_played)


def build_profile(user: User) -> UserProfile:
    games_played = user.games_played or 0
    games_won = user.games_won or 0
    total_score = user.total_score or 0

    profile = UserProfile(
        uid=user.uid,
        email=user.email,
        display_name=user.display_name,
        photo_url=user.photo_url,
        total_score=total_score,
        games_played=games_played,
        games_won=games_won,
        games_lost=max(games_played - games_won, 0),
        win_rate=win_rate(games_won, games_played),
        average_score=average_score(total_score, games_played),
        created_at=user.created_at,
        achievements=[],
    )
    profile.achievements = [
        Achievement(id=rule.id, name=rule.name, description=rule.description, unlocked=rule.unlocked(profile))
        for rule in ACHIEVEMENT_RULES
    ]
    return profile
