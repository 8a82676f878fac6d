"""Review scheduling: earliest-due learning cards first, then a random new card."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..models.progress import CardProgress, CardStatus, DeckState, DeckStats, Outcome, utcnow
from .card_store import CardStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntervalPolicy:
    known: timedelta = timedelta(days=365)
    review: timedelta = timedelta(minutes=10)
    wrong: timedelta = timedelta(minutes=2)

    @classmethod
    def from_config(cls, cfg) -> IntervalPolicy:
        return cls(
            known=timedelta(days=cfg.known_interval_days),
            review=timedelta(minutes=cfg.review_interval_minutes),
            wrong=timedelta(minutes=cfg.wrong_interval_minutes),
        )

    def transition(self, outcome: Outcome) -> tuple[CardStatus, timedelta]:
        if outcome == Outcome.KNOWN:
            return CardStatus.KNOWN, self.known
        if outcome == Outcome.REVIEW:
            return CardStatus.LEARNING, self.review
        return CardStatus.LEARNING, self.wrong


DEFAULT_POLICY = IntervalPolicy()


def select_next(state: DeckState, now: datetime, rng: random.Random) -> int | None:
    """Return the id of the card to present next, or ``None`` if nothing is eligible."""
    due = [
        card
        for card in state.cards.values()
        if card.status == CardStatus.LEARNING and card.next_review_at <= now
    ]
    if due:
        # min() keeps the first of equal keys, so ties follow mapping order
        return min(due, key=lambda card: card.next_review_at).id

    fresh = [card for card in state.cards.values() if card.status == CardStatus.NEW]
    if fresh:
        return rng.choice(fresh).id

    return None


def apply_outcome(
    state: DeckState,
    card_id: int,
    outcome: Outcome,
    now: datetime,
    policy: IntervalPolicy = DEFAULT_POLICY,
) -> DeckState:
    """Return a new state with ``outcome`` applied to ``card_id``.

    Unknown ids leave the state untouched; a reset deck may still receive
    outcomes for cards shown before the reset. A ``known`` card keeps its
    status and due date on ``review``/``wrong``.
    """
    card = state.cards.get(card_id)
    if card is None:
        logger.debug("Deck %s: ignoring outcome %s for unknown card %s", state.deck_id, outcome, card_id)
        return state

    status, interval = policy.transition(outcome)
    if card.status == CardStatus.KNOWN and status != CardStatus.KNOWN:
        # Known is final until a deck reset; only the review is counted
        update = {"review_count": card.review_count + 1}
    else:
        update = {
            "status": status,
            "next_review_at": now + interval,
            "review_count": card.review_count + 1,
        }
    updated = card.model_copy(update=update)
    cards = dict(state.cards)
    cards[card_id] = updated
    return state.model_copy(update={"cards": cards})


def compute_stats(state: DeckState) -> DeckStats:
    stats = DeckStats()
    for card in state.cards.values():
        if card.status == CardStatus.KNOWN:
            stats.known += 1
        elif card.status == CardStatus.LEARNING:
            stats.learning += 1
        else:
            stats.new += 1
    return stats


class ReviewSession:
    """One open deck: holds its state and persists every change through a CardStore."""

    def __init__(
        self,
        deck_id: str,
        total_cards: int,
        store: CardStore,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utcnow,
        policy: IntervalPolicy = DEFAULT_POLICY,
    ) -> None:
        if total_cards < 0:
            raise ValueError("total_cards must be non-negative")
        self.deck_id = deck_id
        self.total_cards = total_cards
        self.store = store
        self.rng = rng or random.Random()
        self.clock = clock
        self.policy = policy
        self.state = self._open()

    def _open(self) -> DeckState:
        cards = self.store.load(self.deck_id, self.total_cards)
        return DeckState(deck_id=self.deck_id, total_cards=self.total_cards, cards=cards)

    def get_next_card(self) -> int | None:
        return select_next(self.state, self.clock(), self.rng)

    def record_outcome(self, card_id: int, outcome: Outcome) -> None:
        updated = apply_outcome(self.state, card_id, Outcome(outcome), self.clock(), self.policy)
        if updated is self.state:
            return
        self.state = updated
        self.store.save(self.deck_id, self.state.cards)
        logger.info("Deck %s: card %d marked %s", self.deck_id, card_id, outcome)

    def get_stats(self) -> DeckStats:
        return compute_stats(self.state)

    def get_card(self, card_id: int) -> CardProgress | None:
        return self.state.cards.get(card_id)

    def reset_deck(self) -> None:
        self.store.clear(self.deck_id)
        self.state = self._open()

    @staticmethod
    def peek_stats(store: CardStore, deck_id: str, total_cards: int) -> DeckStats:
        return store.peek_stats(deck_id, total_cards)
