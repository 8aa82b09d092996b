import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from neuroqbank.config import settings
from neuroqbank.models.attempt import QuestionAttempt
from neuroqbank.models.flashcard import Flashcard, FlashcardCreate, FlashcardUpdate
from neuroqbank.models.question import Question, QuestionCreate
from neuroqbank.models.review import DailyReview

logger = logging.getLogger(__name__)

_db_path: Path | None = None

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS questions (
    id           TEXT PRIMARY KEY,
    user_id      TEXT NOT NULL,
    is_public    INTEGER NOT NULL DEFAULT 0,
    category     TEXT NOT NULL,
    subcategory  TEXT,
    statement    TEXT NOT NULL,
    alternatives TEXT NOT NULL DEFAULT '[]',
    answer       TEXT NOT NULL,
    comment      TEXT NOT NULL DEFAULT '',
    difficulty   TEXT NOT NULL DEFAULT 'Médio',
    tags         TEXT NOT NULL DEFAULT '[]',
    source       TEXT,
    created_at   TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_questions_owner ON questions(user_id);
CREATE INDEX IF NOT EXISTS idx_questions_category ON questions(category);

CREATE TABLE IF NOT EXISTS question_attempts (
    id              TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL,
    question_id     TEXT NOT NULL,
    selected_answer TEXT NOT NULL,
    is_correct      INTEGER NOT NULL,
    attempt_time    INTEGER,
    created_at      TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_attempts_user_time ON question_attempts(user_id, created_at);
CREATE INDEX IF NOT EXISTS idx_attempts_question ON question_attempts(user_id, question_id);

CREATE TABLE IF NOT EXISTS flashcards (
    id             TEXT PRIMARY KEY,
    user_id        TEXT NOT NULL,
    front          TEXT NOT NULL,
    back           TEXT NOT NULL,
    category       TEXT,
    ease_factor    REAL NOT NULL DEFAULT 2.5,
    interval_days  INTEGER NOT NULL DEFAULT 1,
    repetitions    INTEGER NOT NULL DEFAULT 0,
    next_review_at TEXT NOT NULL DEFAULT (datetime('now')),
    created_at     TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at     TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_flashcards_review ON flashcards(user_id, next_review_at);

CREATE TABLE IF NOT EXISTS daily_reviews (
    id           TEXT PRIMARY KEY,
    user_id      TEXT NOT NULL,
    review_date  TEXT NOT NULL,
    question_ids TEXT NOT NULL DEFAULT '[]',
    created_at   TEXT NOT NULL DEFAULT (datetime('now')),
    UNIQUE (user_id, review_date)
);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
INSERT OR IGNORE INTO schema_version(version) VALUES (1);
"""

# Version 2 detaches attempts from questions: attempts outlive the question.
MIGRATE_V2_SQL = """
CREATE TABLE question_attempts_v2 (
    id              TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL,
    question_id     TEXT NOT NULL,
    selected_answer TEXT NOT NULL,
    is_correct      INTEGER NOT NULL,
    attempt_time    INTEGER,
    created_at      TEXT NOT NULL DEFAULT (datetime('now'))
);
INSERT INTO question_attempts_v2 SELECT * FROM question_attempts;
DROP TABLE question_attempts;
ALTER TABLE question_attempts_v2 RENAME TO question_attempts;
CREATE INDEX IF NOT EXISTS idx_attempts_user_time ON question_attempts(user_id, created_at);
CREATE INDEX IF NOT EXISTS idx_attempts_question ON question_attempts(user_id, question_id);
INSERT OR IGNORE INTO schema_version(version) VALUES (2);
"""


async def init_sqlite(data_dir: Path) -> None:
    global _db_path
    _db_path = data_dir / settings.sqlite_filename
    async with aiosqlite.connect(_db_path) as db:
        await db.executescript(SCHEMA_SQL)
        cursor = await db.execute("SELECT MAX(version) FROM schema_version")
        (version,) = await cursor.fetchone()
        if version < 2:
            await db.executescript(MIGRATE_V2_SQL)
            logger.info("Migrated %s to schema version 2", _db_path)
        await db.commit()


async def get_db() -> AsyncIterator[aiosqlite.Connection]:
    assert _db_path is not None, "SQLite not initialized"
    async with aiosqlite.connect(_db_path) as db:
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA foreign_keys=ON")
        yield db


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


# --- Questions ---


def _row_to_question(row: aiosqlite.Row) -> Question:
    d = dict(row)
    d["is_public"] = bool(d["is_public"])
    d["alternatives"] = json.loads(d["alternatives"])
    d["tags"] = json.loads(d["tags"])
    return Question(**d)


async def create_question(
    db: aiosqlite.Connection,
    user_id: str,
    question: QuestionCreate,
    now: str | None = None,
) -> Question:
    question_id = str(uuid.uuid4())
    await db.execute(
        """INSERT INTO questions
           (id, user_id, is_public, category, subcategory, statement,
            alternatives, answer, comment, difficulty, tags, source, created_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            question_id,
            user_id,
            int(question.is_public),
            question.category,
            question.subcategory,
            question.statement,
            json.dumps(question.alternatives),
            question.answer.value,
            question.comment,
            question.difficulty.value,
            json.dumps(question.tags),
            question.source,
            now or _now(),
        ),
    )
    await db.commit()
    return await get_question(db, question_id)  # type: ignore[return-value]


async def get_question(db: aiosqlite.Connection, question_id: str) -> Question | None:
    cursor = await db.execute("SELECT * FROM questions WHERE id = ?", (question_id,))
    row = await cursor.fetchone()
    return _row_to_question(row) if row else None


async def get_visible_question(
    db: aiosqlite.Connection, user_id: str, question_id: str
) -> Question | None:
    """Return the question if the user owns it or it is public."""
    cursor = await db.execute(
        "SELECT * FROM questions WHERE id = ? AND (user_id = ? OR is_public = 1)",
        (question_id, user_id),
    )
    row = await cursor.fetchone()
    return _row_to_question(row) if row else None


async def list_questions(
    db: aiosqlite.Connection,
    user_id: str,
    category: str | None = None,
    difficulty: str | None = None,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[Question], int]:
    clauses = ["(user_id = ? OR is_public = 1)"]
    params: list = [user_id]
    if category:
        clauses.append("category = ?")
        params.append(category)
    if difficulty:
        clauses.append("difficulty = ?")
        params.append(difficulty)
    where = " AND ".join(clauses)

    cursor = await db.execute(
        f"SELECT COUNT(*) FROM questions WHERE {where}", params  # noqa: S608
    )
    total = (await cursor.fetchone())[0]

    cursor = await db.execute(
        f"SELECT * FROM questions WHERE {where} "  # noqa: S608
        "ORDER BY created_at DESC LIMIT ? OFFSET ?",
        params + [limit, offset],
    )
    rows = await cursor.fetchall()
    return [_row_to_question(r) for r in rows], total


async def find_visible_questions(
    db: aiosqlite.Connection,
    user_id: str,
    question_ids: list[str] | None = None,
    category: str | None = None,
) -> list[Question]:
    """Questions visible to the user, optionally narrowed by ids and category.

    When ids are given the result follows their order; unknown or hidden ids
    are skipped.
    """
    if question_ids is not None and not question_ids:
        return []

    clauses = ["(user_id = ? OR is_public = 1)"]
    params: list = [user_id]
    if question_ids is not None:
        placeholders = ", ".join("?" for _ in question_ids)
        clauses.append(f"id IN ({placeholders})")
        params.extend(question_ids)
    if category:
        clauses.append("category = ?")
        params.append(category)

    cursor = await db.execute(
        f"SELECT * FROM questions WHERE {' AND '.join(clauses)} "  # noqa: S608
        "ORDER BY created_at ASC",
        params,
    )
    questions = [_row_to_question(r) for r in await cursor.fetchall()]
    if question_ids is None:
        return questions

    by_id = {q.id: q for q in questions}
    return [by_id[qid] for qid in dict.fromkeys(question_ids) if qid in by_id]


async def delete_question(
    db: aiosqlite.Connection, user_id: str, question_id: str
) -> bool:
    cursor = await db.execute(
        "DELETE FROM questions WHERE id = ? AND user_id = ?", (question_id, user_id)
    )
    await db.commit()
    return (cursor.rowcount or 0) > 0


async def count_questions_by_category(
    db: aiosqlite.Connection, user_id: str
) -> dict[str, int]:
    cursor = await db.execute(
        """SELECT category, COUNT(*) FROM questions
           WHERE user_id = ? OR is_public = 1
           GROUP BY category""",
        (user_id,),
    )
    rows = await cursor.fetchall()
    return {row[0]: row[1] for row in rows}


# --- Attempts (append-only) ---


def _row_to_attempt(row: aiosqlite.Row) -> QuestionAttempt:
    d = dict(row)
    d["is_correct"] = bool(d["is_correct"])
    return QuestionAttempt(**d)


async def insert_attempt(
    db: aiosqlite.Connection,
    user_id: str,
    question_id: str,
    selected_answer: str,
    is_correct: bool,
    attempt_time: int | None = None,
    now: str | None = None,
) -> QuestionAttempt:
    attempt_id = str(uuid.uuid4())
    await db.execute(
        """INSERT INTO question_attempts
           (id, user_id, question_id, selected_answer, is_correct, attempt_time, created_at)
           VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (
            attempt_id,
            user_id,
            question_id,
            selected_answer,
            int(is_correct),
            attempt_time,
            now or _now(),
        ),
    )
    await db.commit()
    cursor = await db.execute(
        "SELECT * FROM question_attempts WHERE id = ?", (attempt_id,)
    )
    return _row_to_attempt(await cursor.fetchone())


async def list_attempts(
    db: aiosqlite.Connection,
    user_id: str,
    since: str | None = None,
    question_id: str | None = None,
) -> list[QuestionAttempt]:
    """Return the user's attempts, newest first."""
    clauses = ["user_id = ?"]
    params: list = [user_id]
    if since:
        clauses.append("created_at >= ?")
        params.append(since)
    if question_id:
        clauses.append("question_id = ?")
        params.append(question_id)

    cursor = await db.execute(
        f"SELECT * FROM question_attempts WHERE {' AND '.join(clauses)} "  # noqa: S608
        "ORDER BY created_at DESC",
        params,
    )
    rows = await cursor.fetchall()
    return [_row_to_attempt(r) for r in rows]


# --- Flashcards ---


def _row_to_flashcard(row: aiosqlite.Row) -> Flashcard:
    return Flashcard(**dict(row))


async def create_flashcard(
    db: aiosqlite.Connection,
    user_id: str,
    card: FlashcardCreate,
    now: str | None = None,
) -> Flashcard:
    card_id = str(uuid.uuid4())
    now = now or _now()
    await db.execute(
        """INSERT INTO flashcards
           (id, user_id, front, back, category, next_review_at, created_at, updated_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        (card_id, user_id, card.front, card.back, card.category, now, now, now),
    )
    await db.commit()
    return await get_flashcard(db, user_id, card_id)  # type: ignore[return-value]


async def get_flashcard(
    db: aiosqlite.Connection, user_id: str, card_id: str
) -> Flashcard | None:
    cursor = await db.execute(
        "SELECT * FROM flashcards WHERE id = ? AND user_id = ?", (card_id, user_id)
    )
    row = await cursor.fetchone()
    return _row_to_flashcard(row) if row else None


async def list_flashcards(
    db: aiosqlite.Connection,
    user_id: str,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[Flashcard], int]:
    cursor = await db.execute(
        """SELECT * FROM flashcards WHERE user_id = ?
           ORDER BY next_review_at ASC LIMIT ? OFFSET ?""",
        (user_id, limit, offset),
    )
    rows = await cursor.fetchall()
    count_cursor = await db.execute(
        "SELECT COUNT(*) FROM flashcards WHERE user_id = ?", (user_id,)
    )
    count_row = await count_cursor.fetchone()
    total = count_row[0] if count_row else 0
    return [_row_to_flashcard(r) for r in rows], total


async def get_due_flashcards(
    db: aiosqlite.Connection,
    user_id: str,
    now: str,
    limit: int = 20,
) -> list[Flashcard]:
    """Return cards whose next_review_at has passed, most overdue first."""
    cursor = await db.execute(
        """SELECT * FROM flashcards
           WHERE user_id = ? AND next_review_at <= ?
           ORDER BY next_review_at ASC
           LIMIT ?""",
        (user_id, now, limit),
    )
    rows = await cursor.fetchall()
    return [_row_to_flashcard(r) for r in rows]


async def update_flashcard_schedule(
    db: aiosqlite.Connection,
    user_id: str,
    card_id: str,
    ease_factor: float,
    interval_days: int,
    repetitions: int,
    next_review_at: str,
    now: str | None = None,
) -> Flashcard | None:
    await db.execute(
        """UPDATE flashcards
           SET ease_factor = ?, interval_days = ?, repetitions = ?,
               next_review_at = ?, updated_at = ?
           WHERE id = ? AND user_id = ?""",
        (
            ease_factor,
            interval_days,
            repetitions,
            next_review_at,
            now or _now(),
            card_id,
            user_id,
        ),
    )
    await db.commit()
    return await get_flashcard(db, user_id, card_id)


async def update_flashcard_content(
    db: aiosqlite.Connection,
    user_id: str,
    card_id: str,
    update: FlashcardUpdate,
) -> Flashcard | None:
    card = await get_flashcard(db, user_id, card_id)
    if not card:
        return None
    fields = update.model_dump(exclude_none=True)
    if not fields:
        return card

    fields["updated_at"] = _now()
    set_clause = ", ".join(f"{k} = ?" for k in fields)
    await db.execute(
        f"UPDATE flashcards SET {set_clause} WHERE id = ? AND user_id = ?",  # noqa: S608
        list(fields.values()) + [card_id, user_id],
    )
    await db.commit()
    return await get_flashcard(db, user_id, card_id)


async def delete_flashcard(
    db: aiosqlite.Connection, user_id: str, card_id: str
) -> bool:
    cursor = await db.execute(
        "DELETE FROM flashcards WHERE id = ? AND user_id = ?", (card_id, user_id)
    )
    await db.commit()
    return (cursor.rowcount or 0) > 0


async def get_flashcard_stats(
    db: aiosqlite.Connection, user_id: str, now: str
) -> dict:
    """Return total cards, due count and a per-category breakdown."""
    cursor = await db.execute(
        """SELECT COUNT(*),
                  SUM(CASE WHEN next_review_at <= ? THEN 1 ELSE 0 END)
           FROM flashcards WHERE user_id = ?""",
        (now, user_id),
    )
    row = await cursor.fetchone()
    total_cards: int = row[0] if row else 0
    due_now: int = (row[1] or 0) if row else 0

    per_category_cursor = await db.execute(
        """SELECT COALESCE(category, ''), COUNT(*),
                  SUM(CASE WHEN next_review_at <= ? THEN 1 ELSE 0 END)
           FROM flashcards WHERE user_id = ?
           GROUP BY COALESCE(category, '')
           ORDER BY 1 ASC""",
        (now, user_id),
    )
    per_category = [
        {"category": r[0] or None, "total": r[1], "due": r[2] or 0}
        for r in await per_category_cursor.fetchall()
    ]
    return {"total_cards": total_cards, "due_now": due_now, "per_category": per_category}


# --- Daily reviews ---


def _row_to_daily_review(row: aiosqlite.Row) -> DailyReview:
    d = dict(row)
    d["question_ids"] = json.loads(d["question_ids"])
    return DailyReview(**d)


async def get_daily_review(
    db: aiosqlite.Connection, user_id: str, review_date: str
) -> DailyReview | None:
    cursor = await db.execute(
        "SELECT * FROM daily_reviews WHERE user_id = ? AND review_date = ?",
        (user_id, review_date),
    )
    row = await cursor.fetchone()
    return _row_to_daily_review(row) if row else None


async def list_daily_reviews_since(
    db: aiosqlite.Connection, user_id: str, since_date: str
) -> list[DailyReview]:
    cursor = await db.execute(
        """SELECT * FROM daily_reviews
           WHERE user_id = ? AND review_date >= ?
           ORDER BY review_date DESC""",
        (user_id, since_date),
    )
    rows = await cursor.fetchall()
    return [_row_to_daily_review(r) for r in rows]


async def insert_daily_review(
    db: aiosqlite.Connection,
    user_id: str,
    review_date: str,
    question_ids: list[str],
    now: str | None = None,
) -> DailyReview:
    """Insert a daily review. Raises aiosqlite.IntegrityError if one exists for the date."""
    review_id = str(uuid.uuid4())
    await db.execute(
        """INSERT INTO daily_reviews (id, user_id, review_date, question_ids, created_at)
           VALUES (?, ?, ?, ?, ?)""",
        (review_id, user_id, review_date, json.dumps(question_ids), now or _now()),
    )
    await db.commit()
    return await get_daily_review(db, user_id, review_date)  # type: ignore[return-value]
