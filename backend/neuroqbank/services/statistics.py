from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field

import aiosqlite

from neuroqbank.clock import format_ts
from neuroqbank.db.sqlite import (
    count_questions_by_category,
    find_visible_questions,
    list_attempts,
)
from neuroqbank.models.attempt import QuestionAttempt, QuestionHistory
from neuroqbank.models.stats import CategoryStats, GeneralStats
from neuroqbank.services.cache import TTLCache
from neuroqbank.services.ranker import aggregate_attempts

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Sem categoria"


@dataclass
class _Bucket:
    total: int = 0
    correct: int = 0
    times: list[int] = field(default_factory=list)
    per_question: dict[str, int] = field(default_factory=lambda: defaultdict(int))


def _percent(part: float, whole: float) -> float:
    return part / whole * 100 if whole else 0.0


def _mean(values: list[int]) -> float | None:
    return sum(values) / len(values) if values else None


def build_general_stats(
    attempts: list[QuestionAttempt],
    categories: dict[str, str],
    questions_per_category: dict[str, int],
) -> GeneralStats:
    """
    Aggregate a user's attempt history.

    ``categories`` maps question id to category; attempts on unknown
    questions fall under ``UNCATEGORIZED``. Categories present in
    ``questions_per_category`` but never attempted are reported with zeros.
    """
    overall = _Bucket()
    by_category: dict[str, _Bucket] = defaultdict(_Bucket)

    for attempt in attempts:
        category = categories.get(attempt.question_id, UNCATEGORIZED)
        for bucket in (overall, by_category[category]):
            bucket.total += 1
            bucket.correct += int(attempt.is_correct)
            bucket.per_question[attempt.question_id] += 1
            if attempt.attempt_time is not None:
                bucket.times.append(attempt.attempt_time)

    category_stats: list[CategoryStats] = []
    for category, bucket in by_category.items():
        unique = len(bucket.per_question)
        category_stats.append(
            CategoryStats(
                category=category,
                total_attempts=bucket.total,
                unique_questions=unique,
                correct_attempts=bucket.correct,
                accuracy=_percent(bucket.correct, bucket.total),
                avg_time=_mean(bucket.times),
                questions_answered_once=sum(1 for n in bucket.per_question.values() if n == 1),
                questions_answered_multiple=sum(1 for n in bucket.per_question.values() if n > 1),
                questions_remaining=max(0, questions_per_category.get(category, 0) - unique),
                repetition_rate=_percent(bucket.total - unique, unique),
            )
        )

    for category, total in questions_per_category.items():
        if category not in by_category:
            category_stats.append(
                CategoryStats(
                    category=category,
                    total_attempts=0,
                    unique_questions=0,
                    correct_attempts=0,
                    accuracy=0.0,
                    questions_answered_once=0,
                    questions_answered_multiple=0,
                    questions_remaining=total,
                    repetition_rate=0.0,
                )
            )

    unique_total = len(overall.per_question)
    return GeneralStats(
        total_attempts=overall.total,
        unique_questions_answered=unique_total,
        total_correct=overall.correct,
        overall_accuracy=_percent(overall.correct, overall.total),
        questions_answered_once=sum(1 for n in overall.per_question.values() if n == 1),
        questions_answered_multiple=sum(1 for n in overall.per_question.values() if n > 1),
        repetition_rate=_percent(overall.total - unique_total, unique_total),
        avg_time_per_question=_mean(overall.times),
        category_stats=sorted(category_stats, key=lambda c: c.category),
    )


async def get_general_stats(
    db: aiosqlite.Connection, user_id: str, cache: TTLCache
) -> GeneralStats:
    cached = cache.get(user_id)
    if cached is not None:
        return cached

    attempts = await list_attempts(db, user_id)
    attempted_ids = list({a.question_id for a in attempts})
    questions = await find_visible_questions(db, user_id, question_ids=attempted_ids)
    categories = {q.id: q.category for q in questions}
    per_category = await count_questions_by_category(db, user_id)

    stats = build_general_stats(attempts, categories, per_category)
    cache.set(user_id, stats)
    logger.debug("Statistics computed for user %s (%d attempts)", user_id, len(attempts))
    return stats


async def get_question_history(
    db: aiosqlite.Connection, user_id: str, question_id: str
) -> QuestionHistory | None:
    attempts = await list_attempts(db, user_id, question_id=question_id)
    stats = aggregate_attempts(attempts).get(question_id)
    if stats is None or stats.last_attempt is None:
        return None
    return QuestionHistory(
        question_id=question_id,
        correct_count=stats.correct,
        incorrect_count=stats.incorrect,
        last_attempt=format_ts(stats.last_attempt),
    )
