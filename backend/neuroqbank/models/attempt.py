from pydantic import BaseModel, Field

from neuroqbank.models.question import AnswerKey


class AttemptCreate(BaseModel):
    selected_answer: AnswerKey
    attempt_time: int | None = Field(default=None, ge=0)  # seconds


class QuestionAttempt(BaseModel):
    id: str
    user_id: str
    question_id: str
    selected_answer: str
    is_correct: bool
    attempt_time: int | None
    created_at: str


class QuestionHistory(BaseModel):
    question_id: str
    correct_count: int
    incorrect_count: int
    last_attempt: str
