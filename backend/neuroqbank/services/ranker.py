"""
Error-driven question ranking.

Both review flows share one pipeline: aggregate the attempt history per
question, drop excluded questions, score the rest, keep the eligible ones
and return the top of the list. They differ only in configuration:

  smart review  all-time history, skips questions attempted in the last
                3 days, additive score (error surplus, hard label, error
                rate above 50%, up to 10 days of age), keeps score > 0
  daily review  30-day history, skips questions selected by a daily
                review in the last 3 days, weighted score
                (error rate 60%, recency 40%), keeps error rate > 20%
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from neuroqbank.clock import parse_ts
from neuroqbank.config import settings
from neuroqbank.models.attempt import QuestionAttempt
from neuroqbank.models.question import Difficulty, Question

SECONDS_PER_DAY = 24 * 60 * 60

SMART_MAX_AGE_BONUS = 10
DAILY_MIN_ERROR_RATE = 20.0
DAILY_ERROR_WEIGHT = 0.6
DAILY_RECENCY_WEIGHT = 0.4


@dataclass
class QuestionStats:
    question_id: str
    correct: int = 0
    incorrect: int = 0
    last_attempt: datetime | None = None

    @property
    def total(self) -> int:
        return self.correct + self.incorrect

    @property
    def error_rate(self) -> float:
        """Fraction of attempts answered incorrectly (0.0 to 1.0)."""
        return self.incorrect / self.total if self.total else 0.0

    @property
    def error_percent(self) -> float:
        return self.incorrect * 100 / self.total if self.total else 0.0


def aggregate_attempts(attempts: Iterable[QuestionAttempt]) -> dict[str, QuestionStats]:
    stats: dict[str, QuestionStats] = {}
    for attempt in attempts:
        entry = stats.setdefault(attempt.question_id, QuestionStats(attempt.question_id))
        if attempt.is_correct:
            entry.correct += 1
        else:
            entry.incorrect += 1
        created = parse_ts(attempt.created_at)
        if entry.last_attempt is None or created > entry.last_attempt:
            entry.last_attempt = created
    return stats


def days_since(moment: datetime, now: datetime) -> float:
    return (now - moment).total_seconds() / SECONDS_PER_DAY


Candidate = tuple[QuestionStats, Question | None]
ScoreFn = Callable[[QuestionStats, Question | None, datetime], float]


@dataclass(frozen=True)
class RankingConfig:
    score: ScoreFn
    eligible: Callable[[QuestionStats, float], bool]
    exclude: Callable[[QuestionStats, datetime], bool] = lambda stats, now: False
    limit: int = 20


@dataclass(frozen=True)
class RankedQuestion:
    stats: QuestionStats
    question: Question | None
    score: float


def rank(
    candidates: Iterable[Candidate],
    config: RankingConfig,
    now: datetime,
) -> list[RankedQuestion]:
    """Score candidates and return the best ``config.limit`` in descending order.

    Ties keep their input order.
    """
    ranked: list[RankedQuestion] = []
    for stats, question in candidates:
        if config.exclude(stats, now):
            continue
        score = config.score(stats, question, now)
        if config.eligible(stats, score):
            ranked.append(RankedQuestion(stats=stats, question=question, score=score))

    ranked.sort(key=lambda item: item.score, reverse=True)
    return ranked[: config.limit]


# --- Smart review ---


def attempted_recently(stats: QuestionStats, now: datetime, days: int) -> bool:
    return stats.last_attempt is not None and stats.last_attempt > now - timedelta(days=days)


def smart_review_score(stats: QuestionStats, question: Question | None, now: datetime) -> float:
    score = 0.0
    if stats.incorrect > stats.correct:
        score += 10 + (stats.incorrect - stats.correct) * 2
    if question is not None and question.difficulty == Difficulty.HARD:
        score += 5
    if stats.error_rate > 0.5:
        score += 5
    if stats.last_attempt is not None:
        whole_days = int(days_since(stats.last_attempt, now))
        score += min(whole_days, SMART_MAX_AGE_BONUS)
    return score


def smart_review_config(
    limit: int | None = None, exclusion_days: int | None = None
) -> RankingConfig:
    days = settings.recent_exclusion_days if exclusion_days is None else exclusion_days
    return RankingConfig(
        score=smart_review_score,
        eligible=lambda stats, score: score > 0,
        exclude=lambda stats, now: attempted_recently(stats, now, days),
        limit=settings.review_limit if limit is None else limit,
    )


def count_smart_review_candidates(
    candidates: Iterable[Candidate],
    now: datetime,
    exclusion_days: int | None = None,
) -> int:
    """Cheap estimate of the smart review size.

    Counts questions outside the recent window that either have more errors
    than hits or carry the hard label. This is looser than the full score
    test and is not capped by the review limit.
    """
    days = settings.recent_exclusion_days if exclusion_days is None else exclusion_days
    count = 0
    for stats, question in candidates:
        if attempted_recently(stats, now, days):
            continue
        is_hard = question is not None and question.difficulty == Difficulty.HARD
        if stats.incorrect > stats.correct or is_hard:
            count += 1
    return count


# --- Daily review ---


@dataclass(frozen=True)
class DailyScore:
    error_rate: float     # percent
    recency_score: float
    final_score: float


def daily_review_breakdown(stats: QuestionStats, now: datetime) -> DailyScore:
    error_rate = stats.error_percent
    age = days_since(stats.last_attempt, now) if stats.last_attempt else 0.0
    # Loses 10 points per day since the last attempt
    recency = max(0.0, 100 - age * 10)
    return DailyScore(
        error_rate=error_rate,
        recency_score=recency,
        final_score=error_rate * DAILY_ERROR_WEIGHT + recency * DAILY_RECENCY_WEIGHT,
    )


def daily_review_score(stats: QuestionStats, question: Question | None, now: datetime) -> float:
    return daily_review_breakdown(stats, now).final_score


def daily_review_config(
    recently_selected: set[str] | None = None, limit: int | None = None
) -> RankingConfig:
    excluded = frozenset(recently_selected or ())
    return RankingConfig(
        score=daily_review_score,
        eligible=lambda stats, score: stats.error_percent > DAILY_MIN_ERROR_RATE,
        exclude=lambda stats, now: stats.question_id in excluded,
        limit=settings.review_limit if limit is None else limit,
    )