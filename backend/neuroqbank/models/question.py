from enum import Enum

from pydantic import BaseModel, Field


class Difficulty(str, Enum):
    EASY = "Fácil"
    MEDIUM = "Médio"
    HARD = "Difícil"


class AnswerKey(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"


class QuestionCreate(BaseModel):
    category: str
    subcategory: str | None = None
    statement: str
    alternatives: list[str] = Field(min_length=2, max_length=5)
    answer: AnswerKey
    comment: str = ""
    difficulty: Difficulty = Difficulty.MEDIUM
    tags: list[str] = []
    source: str | None = None
    is_public: bool = False


class Question(BaseModel):
    id: str
    user_id: str
    is_public: bool
    category: str
    subcategory: str | None
    statement: str
    alternatives: list[str]
    answer: AnswerKey
    comment: str
    difficulty: Difficulty
    tags: list[str]
    source: str | None
    created_at: str


class QuestionList(BaseModel):
    items: list[Question]
    total: int
    offset: int
    limit: int
