from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ReviewQuality(str, Enum):
    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"


class Flashcard(BaseModel):
    id: str
    user_id: str
    front: str
    back: str
    category: str | None
    ease_factor: float      # >= 1.3; multiplier for interval growth
    interval_days: int      # days until next review
    repetitions: int        # consecutive successful recalls since last lapse
    next_review_at: str     # UTC timestamp; new cards are due at creation
    created_at: str
    updated_at: str


class FlashcardCreate(BaseModel):
    front: str
    back: str
    category: str | None = None


class FlashcardList(BaseModel):
    items: list[Flashcard]
    total: int


class FlashcardUpdate(BaseModel):
    front: str | None = None
    back: str | None = None
    category: str | None = None


class ReviewRequest(BaseModel):
    quality: ReviewQuality


class ReviewResult(BaseModel):
    id: str
    ease_factor: float
    interval_days: int
    repetitions: int
    next_review_at: str
