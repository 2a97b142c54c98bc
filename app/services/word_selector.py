# app/services/word_selector.py
import random
from typing import Sequence

WORD_BANK: tuple[str, ...] = (
    "cat", "dog", "house", "tree", "car", "sun", "moon", "star",
    "fish", "bird", "flower", "apple", "banana", "guitar", "bicycle", "umbrella",
    "rocket", "castle", "pizza", "elephant", "giraffe", "rainbow", "snowman", "dragon",
    "robot", "island", "volcano", "butterfly", "lighthouse", "penguin",
)


def pick(rng: random.Random | None = None, vocabulary: Sequence[str] = WORD_BANK) -> str:
    """Uniform, independent pick. The same word may come up in consecutive rounds."""
    return (rng or random).choice(vocabulary)
