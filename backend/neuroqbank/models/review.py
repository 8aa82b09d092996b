from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from neuroqbank.models.question import Question


class ReviewOutcome(str, Enum):
    OK = "ok"
    NO_USER = "no_user"
    NO_HISTORY = "no_history"
    NOTHING_TO_REVIEW = "nothing_to_review"


class SmartReviewRequest(BaseModel):
    question_ids: list[str] | None = None  # None = every visible question
    category: str | None = None


class ScoredQuestion(BaseModel):
    question: Question
    score: float


class SmartReviewResult(BaseModel):
    outcome: ReviewOutcome
    message: str | None = None
    items: list[ScoredQuestion] = []


class SmartReviewCount(BaseModel):
    count: int


class DailyReview(BaseModel):
    id: str
    user_id: str
    review_date: str
    question_ids: list[str]
    created_at: str


class DailyReviewScore(BaseModel):
    question_id: str
    error_rate: float
    recency_score: float
    final_score: float
    attempts: int


class DailyReviewResponse(BaseModel):
    outcome: ReviewOutcome
    success: bool = False
    message: str | None = None
    review_id: str | None = None
    question_count: int | None = None
    questions: list[DailyReviewScore] | None = None
