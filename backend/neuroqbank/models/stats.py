from pydantic import BaseModel


class CategoryStats(BaseModel):
    category: str
    total_attempts: int
    unique_questions: int
    correct_attempts: int
    accuracy: float                 # percent
    avg_time: float | None = None   # seconds
    questions_answered_once: int
    questions_answered_multiple: int
    questions_remaining: int
    repetition_rate: float          # percent


class GeneralStats(BaseModel):
    total_attempts: int
    unique_questions_answered: int
    total_correct: int
    overall_accuracy: float
    questions_answered_once: int
    questions_answered_multiple: int
    repetition_rate: float
    avg_time_per_question: float | None = None
    category_stats: list[CategoryStats]
