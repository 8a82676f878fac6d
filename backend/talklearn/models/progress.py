"""Review progress models: per-card state, per-deck state and its storage row."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CardStatus(StrEnum):
    NEW = "new"
    LEARNING = "learning"
    KNOWN = "known"


class Outcome(StrEnum):
    KNOWN = "known"
    REVIEW = "review"  # partially correct
    WRONG = "wrong"


class CardProgress(BaseModel):
    id: int
    status: CardStatus = CardStatus.NEW
    next_review_at: datetime
    review_count: int = 0


class DeckStats(BaseModel):
    known: int = 0
    learning: int = 0
    new: int = 0


class DeckState(BaseModel):
    """Progress of one deck, keyed by card id in insertion order."""

    deck_id: str
    total_cards: int
    cards: dict[int, CardProgress] = {}


class ProgressEntry(SQLModel, table=True):
    """One persisted namespace: the JSON progress document of a deck."""

    key: str = Field(primary_key=True)
    value: str
    updated_at: datetime = Field(default_factory=utcnow)
