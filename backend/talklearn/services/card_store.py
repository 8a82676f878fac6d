"""Durable per-deck review progress."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from ..models.progress import CardProgress, CardStatus, DeckStats, utcnow
from .progress_port import ProgressPort

logger = logging.getLogger(__name__)

NAMESPACE_PREFIX = "talk-to-learn-progress"


def namespace_key(deck_id: str) -> str:
    return f"{NAMESPACE_PREFIX}:{deck_id}"


def to_epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def card_to_record(card: CardProgress) -> dict[str, Any]:
    return {
        "status": card.status.value,
        "nextReview": to_epoch_ms(card.next_review_at),
        "reviewCount": card.review_count,
    }


def card_from_record(card_id: int, record: dict[str, Any]) -> CardProgress:
    next_review = record["nextReview"]
    review_count = record["reviewCount"]
    # bool is an int subclass and would slip through the checks below
    if isinstance(next_review, bool) or not isinstance(next_review, (int, float)):
        raise TypeError(f"nextReview must be a number, got {next_review!r}")
    if isinstance(review_count, bool) or not isinstance(review_count, int) or review_count < 0:
        raise TypeError(f"reviewCount must be a non-negative integer, got {review_count!r}")
    return CardProgress(
        id=card_id,
        status=CardStatus(record["status"]),
        next_review_at=from_epoch_ms(int(next_review)),
        review_count=review_count,
    )


class CardStore:
    """Loads, lazily initializes and writes through one deck's progress mapping.

    Storage is delegated to a :class:`ProgressPort`; the clock is injectable so
    that freshly discovered cards get a deterministic ``next_review_at``.
    """

    def __init__(self, port: ProgressPort, clock: Callable[[], datetime] = utcnow) -> None:
        self.port = port
        self.clock = clock

    def load(self, deck_id: str, total_cards: int) -> dict[int, CardProgress]:
        cards = {
            card_id: card
            for card_id, card in self._read(deck_id).items()
            if 0 <= card_id < total_cards
        }
        now = self.clock()
        added = 0
        for card_id in range(total_cards):
            if card_id not in cards:
                cards[card_id] = CardProgress(id=card_id, status=CardStatus.NEW, next_review_at=now)
                added += 1
        if added:
            logger.debug("Deck %s: initialized %d new cards", deck_id, added)
        return cards

    def save(self, deck_id: str, cards: dict[int, CardProgress]) -> None:
        document = {str(card_id): card_to_record(card) for card_id, card in cards.items()}
        self.port.set(namespace_key(deck_id), json.dumps(document))

    def clear(self, deck_id: str) -> None:
        self.port.remove(namespace_key(deck_id))
        logger.info("Deck %s: progress cleared", deck_id)

    def peek_stats(self, deck_id: str, total_cards: int) -> DeckStats:
        known = 0
        learning = 0
        for card_id, card in self._read(deck_id).items():
            if not 0 <= card_id < total_cards:
                continue
            if card.status == CardStatus.KNOWN:
                known += 1
            elif card.status == CardStatus.LEARNING:
                learning += 1
        return DeckStats(known=known, learning=learning, new=max(0, total_cards - known - learning))

    def _read(self, deck_id: str) -> dict[int, CardProgress]:
        raw = self.port.get(namespace_key(deck_id))
        if not raw:
            return {}

        try:
            document = json.loads(raw)
        except ValueError:
            logger.warning("Deck %s: stored progress is not valid JSON, starting fresh", deck_id)
            return {}
        if not isinstance(document, dict):
            logger.warning("Deck %s: stored progress is not an object, starting fresh", deck_id)
            return {}

        cards: dict[int, CardProgress] = {}
        for key, record in document.items():
            try:
                card_id = int(key)
                cards[card_id] = card_from_record(card_id, record)
            except (KeyError, TypeError, ValueError, OverflowError, OSError) as exc:
                logger.warning("Deck %s: dropping malformed record %r: %s", deck_id, key, exc)
        return cards
