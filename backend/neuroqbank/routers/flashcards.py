"""
Flashcards & spaced repetition router.

Endpoints:
  POST   /flashcards                create a card (due immediately)
  GET    /flashcards                list the caller's cards, soonest due first
  GET    /flashcards/due            cards due now
  GET    /flashcards/stats          total, due now, per-category breakdown
  POST   /flashcards/{id}/review    rate a card, run SM-2, persist the schedule
  GET    /flashcards/{id}           single card
  PATCH  /flashcards/{id}           edit front / back / category
  DELETE /flashcards/{id}           delete card
"""
from __future__ import annotations

import logging
from datetime import datetime

import aiosqlite
from fastapi import APIRouter, Depends, HTTPException, Query

from neuroqbank.auth import require_user
from neuroqbank.clock import format_ts, get_now
from neuroqbank.db.sqlite import (
    create_flashcard,
    delete_flashcard,
    get_db,
    get_due_flashcards,
    get_flashcard,
    get_flashcard_stats,
    list_flashcards,
    update_flashcard_content,
    update_flashcard_schedule,
)
from neuroqbank.models.flashcard import (
    Flashcard,
    FlashcardCreate,
    FlashcardList,
    FlashcardUpdate,
    ReviewRequest,
    ReviewResult,
)
from neuroqbank.services.scheduler import ScheduleState, review_card

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=Flashcard, status_code=201)
async def create_card(
    body: FlashcardCreate,
    user_id: str = Depends(require_user),
    now: datetime = Depends(get_now),
    db: aiosqlite.Connection = Depends(get_db),
) -> Flashcard:
    return await create_flashcard(db, user_id, body, now=format_ts(now))


@router.get("/", response_model=FlashcardList)
async def list_cards(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    user_id: str = Depends(require_user),
    db: aiosqlite.Connection = Depends(get_db),
) -> FlashcardList:
    items, total = await list_flashcards(db, user_id, offset=offset, limit=limit)
    return FlashcardList(items=items, total=total)


@router.get("/due", response_model=FlashcardList)
async def get_due(
    limit: int = Query(default=20, ge=1, le=100),
    user_id: str = Depends(require_user),
    now: datetime = Depends(get_now),
    db: aiosqlite.Connection = Depends(get_db),
) -> FlashcardList:
    """Return cards due for review now, most overdue first."""
    items = await get_due_flashcards(db, user_id, format_ts(now), limit=limit)
    return FlashcardList(items=items, total=len(items))


@router.get("/stats")
async def flashcard_stats(
    user_id: str = Depends(require_user),
    now: datetime = Depends(get_now),
    db: aiosqlite.Connection = Depends(get_db),
) -> dict:
    return await get_flashcard_stats(db, user_id, format_ts(now))


@router.post("/{card_id}/review", response_model=ReviewResult)
async def review(
    card_id: str,
    body: ReviewRequest,
    user_id: str = Depends(require_user),
    now: datetime = Depends(get_now),
    db: aiosqlite.Connection = Depends(get_db),
) -> ReviewResult:
    """Submit a review rating for a flashcard and store its next schedule."""
    card = await get_flashcard(db, user_id, card_id)
    if not card:
        raise HTTPException(status_code=404, detail="Flashcard not found")

    update = review_card(
        ScheduleState(
            ease_factor=card.ease_factor,
            interval_days=card.interval_days,
            repetitions=card.repetitions,
        ),
        body.quality,
        now,
    )
    next_review_at = format_ts(update.next_review_at)

    updated = await update_flashcard_schedule(
        db,
        user_id,
        card_id,
        ease_factor=update.state.ease_factor,
        interval_days=update.state.interval_days,
        repetitions=update.state.repetitions,
        next_review_at=next_review_at,
        now=format_ts(now),
    )
    if not updated:
        raise HTTPException(status_code=404, detail="Flashcard not found")

    logger.debug(
        "Card %s rated %s: interval %d, ease %.2f",
        card_id,
        body.quality.value,
        update.state.interval_days,
        update.state.ease_factor,
    )
    return ReviewResult(
        id=card_id,
        ease_factor=update.state.ease_factor,
        interval_days=update.state.interval_days,
        repetitions=update.state.repetitions,
        next_review_at=next_review_at,
    )


@router.get("/{card_id}", response_model=Flashcard)
async def get_card(
    card_id: str,
    user_id: str = Depends(require_user),
    db: aiosqlite.Connection = Depends(get_db),
) -> Flashcard:
    card = await get_flashcard(db, user_id, card_id)
    if not card:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return card


@router.patch("/{card_id}", response_model=Flashcard)
async def edit_card(
    card_id: str,
    body: FlashcardUpdate,
    user_id: str = Depends(require_user),
    db: aiosqlite.Connection = Depends(get_db),
) -> Flashcard:
    updated = await update_flashcard_content(db, user_id, card_id, body)
    if not updated:
        raise HTTPException(status_code=404, detail="Flashcard not found")
    return updated


@router.delete("/{card_id}", status_code=204)
async def remove_card(
    card_id: str,
    user_id: str = Depends(require_user),
    db: aiosqlite.Connection = Depends(get_db),
) -> None:
    deleted = await delete_flashcard(db, user_id, card_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Flashcard not found")
