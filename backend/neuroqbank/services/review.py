"""
Review flows built on the ranker.

  select_smart_review    on-demand ranking over the caller's candidate set
  count_smart_review     cheap size estimate for the same candidate set
  generate_daily_review  once-per-day ranking persisted to daily_reviews
  get_review_questions   today's daily review resolved to full questions

"Nothing to do" outcomes are returned as results carrying a message; only
store failures raise.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta

import aiosqlite

from neuroqbank.clock import format_ts
from neuroqbank.config import settings
from neuroqbank.db.sqlite import (
    find_visible_questions,
    get_daily_review,
    insert_daily_review,
    list_attempts,
    list_daily_reviews_since,
)
from neuroqbank.models.question import Question
from neuroqbank.models.review import (
    DailyReview,
    DailyReviewResponse,
    DailyReviewScore,
    ReviewOutcome,
    ScoredQuestion,
    SmartReviewResult,
)
from neuroqbank.services.ranker import (
    Candidate,
    QuestionStats,
    aggregate_attempts,
    count_smart_review_candidates,
    daily_review_breakdown,
    daily_review_config,
    rank,
    smart_review_config,
)

logger = logging.getLogger(__name__)

MSG_NO_HISTORY = "Not enough data yet. Answer some questions first to build a review."
MSG_NOTHING_TO_REVIEW = "Congratulations! No questions need review right now."
MSG_DAILY_EXISTS = "A review already exists for today."


def _today(now: datetime) -> str:
    return now.date().isoformat()


def _candidates(
    questions: list[Question], stats: dict[str, QuestionStats]
) -> list[Candidate]:
    # Questions never attempted are not eligible
    return [(stats[q.id], q) for q in questions if q.id in stats]


# --- Smart review ---


async def select_smart_review(
    db: aiosqlite.Connection,
    user_id: str | None,
    now: datetime,
    question_ids: list[str] | None = None,
    category: str | None = None,
) -> SmartReviewResult:
    if not user_id:
        return SmartReviewResult(outcome=ReviewOutcome.NO_USER)

    attempts = await list_attempts(db, user_id)
    if not attempts:
        return SmartReviewResult(outcome=ReviewOutcome.NO_HISTORY, message=MSG_NO_HISTORY)

    questions = await find_visible_questions(db, user_id, question_ids, category)
    stats = aggregate_attempts(attempts)
    ranked = rank(_candidates(questions, stats), smart_review_config(), now)

    if not ranked:
        return SmartReviewResult(
            outcome=ReviewOutcome.NOTHING_TO_REVIEW, message=MSG_NOTHING_TO_REVIEW
        )

    logger.info("Smart review for user %s: %d questions", user_id, len(ranked))
    return SmartReviewResult(
        outcome=ReviewOutcome.OK,
        items=[ScoredQuestion(question=r.question, score=r.score) for r in ranked],
    )


async def count_smart_review(
    db: aiosqlite.Connection,
    user_id: str | None,
    now: datetime,
    question_ids: list[str] | None = None,
    category: str | None = None,
) -> int:
    if not user_id:
        return 0
    attempts = await list_attempts(db, user_id)
    if not attempts:
        return 0
    questions = await find_visible_questions(db, user_id, question_ids, category)
    return count_smart_review_candidates(
        _candidates(questions, aggregate_attempts(attempts)), now
    )


# --- Daily review ---


def _existing(review: DailyReview) -> DailyReviewResponse:
    return DailyReviewResponse(
        outcome=ReviewOutcome.OK,
        message=MSG_DAILY_EXISTS,
        review_id=review.id,
    )


async def generate_daily_review(
    db: aiosqlite.Connection,
    user_id: str | None,
    now: datetime,
) -> DailyReviewResponse:
    """Build and persist today's review; a no-op if one already exists."""
    if not user_id:
        return DailyReviewResponse(outcome=ReviewOutcome.NO_USER)

    today = _today(now)
    existing = await get_daily_review(db, user_id, today)
    if existing:
        logger.info("Daily review already exists for user %s on %s", user_id, today)
        return _existing(existing)

    since = format_ts(now - timedelta(days=settings.daily_review_lookback_days))
    attempts = await list_attempts(db, user_id, since=since)
    if not attempts:
        logger.info("No attempts in lookback window for user %s", user_id)
        return DailyReviewResponse(outcome=ReviewOutcome.NO_HISTORY, message=MSG_NO_HISTORY)

    window_start = (now.date() - timedelta(days=settings.recent_exclusion_days)).isoformat()
    recent_reviews = await list_daily_reviews_since(db, user_id, window_start)
    recently_selected = {qid for r in recent_reviews for qid in r.question_ids}

    stats = aggregate_attempts(attempts)
    ranked = rank(
        ((s, None) for s in stats.values()),
        daily_review_config(recently_selected),
        now,
    )
    if not ranked:
        return DailyReviewResponse(
            outcome=ReviewOutcome.NOTHING_TO_REVIEW, message=MSG_NOTHING_TO_REVIEW
        )

    question_ids = [r.stats.question_id for r in ranked]
    try:
        review = await insert_daily_review(
            db, user_id, today, question_ids, now=format_ts(now)
        )
    except aiosqlite.IntegrityError:
        # Another request stored today's review first
        await db.rollback()
        winner = await get_daily_review(db, user_id, today)
        if winner is None:
            raise
        return _existing(winner)

    scores = []
    for r in ranked:
        breakdown = daily_review_breakdown(r.stats, now)
        scores.append(
            DailyReviewScore(
                question_id=r.stats.question_id,
                error_rate=breakdown.error_rate,
                recency_score=breakdown.recency_score,
                final_score=breakdown.final_score,
                attempts=r.stats.total,
            )
        )

    logger.info(
        "Daily review generated for user %s with %d questions", user_id, len(question_ids)
    )
    return DailyReviewResponse(
        outcome=ReviewOutcome.OK,
        success=True,
        review_id=review.id,
        question_count=len(question_ids),
        questions=scores,
    )


async def get_todays_review(
    db: aiosqlite.Connection, user_id: str | None, now: datetime
) -> DailyReview | None:
    if not user_id:
        return None
    return await get_daily_review(db, user_id, _today(now))


async def get_review_questions(
    db: aiosqlite.Connection, user_id: str | None, now: datetime
) -> list[Question]:
    """Resolve today's review ids to questions, keeping the ranked order."""
    review = await get_todays_review(db, user_id, now)
    if review is None:
        return []
    return await find_visible_questions(db, user_id, question_ids=review.question_ids)
