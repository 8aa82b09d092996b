import aiosqlite
from fastapi import APIRouter, Depends, HTTPException

from neuroqbank.auth import require_user
from neuroqbank.db.sqlite import get_db
from neuroqbank.models.attempt import QuestionHistory
from neuroqbank.models.stats import GeneralStats
from neuroqbank.services.cache import TTLCache, get_stats_cache
from neuroqbank.services.statistics import get_general_stats, get_question_history

router = APIRouter()


@router.get("/", response_model=GeneralStats)
async def general_stats(
    user_id: str = Depends(require_user),
    db: aiosqlite.Connection = Depends(get_db),
    cache: TTLCache = Depends(get_stats_cache),
):
    return await get_general_stats(db, user_id, cache)


@router.get("/history/{question_id}", response_model=QuestionHistory)
async def question_history(
    question_id: str,
    user_id: str = Depends(require_user),
    db: aiosqlite.Connection = Depends(get_db),
):
    history = await get_question_history(db, user_id, question_id)
    if not history:
        raise HTTPException(404, "No attempts recorded for this question")
    return history
