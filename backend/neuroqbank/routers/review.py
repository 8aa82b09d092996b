"""
Review router.

Endpoints:
  POST /review/smart              ranked smart review over a candidate set
  POST /review/smart/count        cheap estimate of the smart review size
  POST /review/daily              generate today's review (idempotent)
  GET  /review/daily              today's review record, or null
  GET  /review/daily/questions    today's review resolved to questions

Anonymous callers get neutral results instead of an error.
"""
from __future__ import annotations

from datetime import datetime

import aiosqlite
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from neuroqbank.auth import get_optional_user
from neuroqbank.clock import get_now
from neuroqbank.db.sqlite import get_db
from neuroqbank.models.question import Question
from neuroqbank.models.review import (
    DailyReview,
    DailyReviewResponse,
    ReviewOutcome,
    SmartReviewCount,
    SmartReviewRequest,
    SmartReviewResult,
)
from neuroqbank.services.review import (
    count_smart_review,
    generate_daily_review,
    get_review_questions,
    get_todays_review,
    select_smart_review,
)

router = APIRouter()


@router.post("/smart", response_model=SmartReviewResult)
async def smart_review(
    body: SmartReviewRequest | None = None,
    user_id: str | None = Depends(get_optional_user),
    now: datetime = Depends(get_now),
    db: aiosqlite.Connection = Depends(get_db),
) -> SmartReviewResult:
    body = body or SmartReviewRequest()
    return await select_smart_review(db, user_id, now, body.question_ids, body.category)


@router.post("/smart/count", response_model=SmartReviewCount)
async def smart_review_count(
    body: SmartReviewRequest | None = None,
    user_id: str | None = Depends(get_optional_user),
    now: datetime = Depends(get_now),
    db: aiosqlite.Connection = Depends(get_db),
) -> SmartReviewCount:
    body = body or SmartReviewRequest()
    count = await count_smart_review(db, user_id, now, body.question_ids, body.category)
    return SmartReviewCount(count=count)


@router.post("/daily", response_model=DailyReviewResponse)
async def daily_review(
    user_id: str | None = Depends(get_optional_user),
    now: datetime = Depends(get_now),
    db: aiosqlite.Connection = Depends(get_db),
):
    result = await generate_daily_review(db, user_id, now)
    if result.outcome == ReviewOutcome.NO_HISTORY:
        return JSONResponse(
            status_code=400, content=result.model_dump(mode="json", exclude_none=True)
        )
    return result


@router.get("/daily", response_model=DailyReview | None)
async def todays_review(
    user_id: str | None = Depends(get_optional_user),
    now: datetime = Depends(get_now),
    db: aiosqlite.Connection = Depends(get_db),
) -> DailyReview | None:
    return await get_todays_review(db, user_id, now)


@router.get("/daily/questions", response_model=list[Question])
async def todays_review_questions(
    user_id: str | None = Depends(get_optional_user),
    now: datetime = Depends(get_now),
    db: aiosqlite.Connection = Depends(get_db),
) -> list[Question]:
    return await get_review_questions(db, user_id, now)
