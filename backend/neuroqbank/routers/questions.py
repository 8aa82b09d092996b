import logging
from datetime import datetime

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException, Query

from neuroqbank.auth import require_user
from neuroqbank.clock import format_ts, get_now
from neuroqbank.db.sqlite import (
    create_question,
    delete_question,
    get_db,
    get_visible_question,
    insert_attempt,
    list_questions,
)
from neuroqbank.models.attempt import AttemptCreate, QuestionAttempt
from neuroqbank.models.question import Difficulty, Question, QuestionCreate, QuestionList
from neuroqbank.services.cache import TTLCache, get_stats_cache

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=Question, status_code=201)
async def create(
    body: QuestionCreate,
    user_id: str = Depends(require_user),
    now: datetime = Depends(get_now),
    db: aiosqlite.Connection = Depends(get_db),
    cache: TTLCache = Depends(get_stats_cache),
):
    if len(body.alternatives) <= ord(body.answer.value) - ord("A"):
        raise HTTPException(422, "Answer key points past the last alternative")
    question = await create_question(db, user_id, body, now=format_ts(now))
    # A public question changes every user's remaining count
    if question.is_public:
        cache.clear()
    else:
        cache.invalidate(user_id)
    return question


@router.get("/", response_model=QuestionList)
async def list_all(
    category: str | None = None,
    difficulty: Difficulty | None = None,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    user_id: str = Depends(require_user),
    db: aiosqlite.Connection = Depends(get_db),
):
    items, total = await list_questions(
        db,
        user_id,
        category=category,
        difficulty=difficulty.value if difficulty else None,
        offset=offset,
        limit=limit,
    )
    return QuestionList(items=items, total=total, offset=offset, limit=limit)


@router.get("/{question_id}", response_model=Question)
async def get_one(
    question_id: str,
    user_id: str = Depends(require_user),
    db: aiosqlite.Connection = Depends(get_db),
):
    question = await get_visible_question(db, user_id, question_id)
    if not question:
        raise HTTPException(status_code=404, detail="Question not found")
    return question


@router.delete("/{question_id}", status_code=204)
async def delete(
    question_id: str,
    user_id: str = Depends(require_user),
    db: aiosqlite.Connection = Depends(get_db),
    cache: TTLCache = Depends(get_stats_cache),
):
    question = await get_visible_question(db, user_id, question_id)
    deleted = await delete_question(db, user_id, question_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Question not found")
    # Public deletions move other users' attempts to the uncategorized bucket
    if question.is_public:
        cache.clear()
    else:
        cache.invalidate(user_id)


@router.post("/{question_id}/attempts", response_model=QuestionAttempt, status_code=201)
async def record_attempt(
    question_id: str,
    body: AttemptCreate,
    user_id: str = Depends(require_user),
    now: datetime = Depends(get_now),
    db: aiosqlite.Connection = Depends(get_db),
    cache: TTLCache = Depends(get_stats_cache),
):
    question = await get_visible_question(db, user_id, question_id)
    if not question:
        raise HTTPException(status_code=404, detail="Question not found")

    attempt = await insert_attempt(
        db,
        user_id,
        question_id,
        selected_answer=body.selected_answer.value,
        is_correct=body.selected_answer == question.answer,
        attempt_time=body.attempt_time,
        now=format_ts(now),
    )
    cache.invalidate(user_id)
    return attempt
