from neuroqbank.models.attempt import AttemptCreate, QuestionAttempt, QuestionHistory
from neuroqbank.models.flashcard import (
    Flashcard,
    FlashcardCreate,
    FlashcardList,
    FlashcardUpdate,
    ReviewQuality,
    ReviewRequest,
    ReviewResult,
)
from neuroqbank.models.question import (
    AnswerKey,
    Difficulty,
    Question,
    QuestionCreate,
    QuestionList,
)
from neuroqbank.models.review import (
    DailyReview,
    DailyReviewResponse,
    DailyReviewScore,
    ReviewOutcome,
    ScoredQuestion,
    SmartReviewCount,
    SmartReviewRequest,
    SmartReviewResult,
)
from neuroqbank.models.stats import CategoryStats, GeneralStats

__all__ = [
    "AnswerKey",
    "AttemptCreate",
    "CategoryStats",
    "DailyReview",
    "DailyReviewResponse",
    "DailyReviewScore",
    "Difficulty",
    "Flashcard",
    "FlashcardCreate",
    "FlashcardList",
    "FlashcardUpdate",
    "GeneralStats",
    "Question",
    "QuestionAttempt",
    "QuestionCreate",
    "QuestionHistory",
    "QuestionList",
    "ReviewOutcome",
    "ReviewQuality",
    "ReviewRequest",
    "ReviewResult",
    "ScoredQuestion",
    "SmartReviewCount",
    "SmartReviewRequest",
    "SmartReviewResult",
]
