import json
from datetime import timedelta

import pytest

from conftest import START
from talklearn.models.progress import CardProgress, CardStatus, DeckStats
from talklearn.services.card_store import CardStore, namespace_key, to_epoch_ms


@pytest.fixture
def store(port, clock):
    return CardStore(port, clock=clock)


def test_load_unopened_deck_initializes_all_cards(store):
    cards = store.load("deck", 3)
    assert list(cards) == [0, 1, 2]
    for card_id, card in cards.items():
        assert card.id == card_id
        assert card.status == CardStatus.NEW
        assert card.next_review_at == START
        assert card.review_count == 0


def test_load_does_not_write(store, port):
    store.load("deck", 3)
    assert port.get(namespace_key("deck")) is None


def test_save_writes_documented_record_format(store, port):
    cards = store.load("deck", 2)
    cards[1] = cards[1].model_copy(
        update={"status": CardStatus.LEARNING, "next_review_at": START + timedelta(minutes=2), "review_count": 1}
    )
    store.save("deck", cards)

    document = json.loads(port.get(namespace_key("deck")))
    assert document == {
        "0": {"status": "new", "nextReview": to_epoch_ms(START), "reviewCount": 0},
        "1": {"status": "learning", "nextReview": to_epoch_ms(START) + 120_000, "reviewCount": 1},
    }


def test_new_cards_are_added_lazily_without_touching_existing(store, clock):
    cards = store.load("deck", 2)
    cards[0] = cards[0].model_copy(update={"status": CardStatus.KNOWN, "review_count": 4})
    store.save("deck", cards)

    clock.advance(hours=3)
    grown = store.load("deck", 4)

    assert len(grown) == 4
    assert grown[0].status == CardStatus.KNOWN
    assert grown[0].review_count == 4
    assert grown[0].next_review_at == START
    assert grown[2].status == CardStatus.NEW
    assert grown[3].next_review_at == START + timedelta(hours=3)


def test_load_ignores_ids_beyond_total(store):
    store.save("deck", store.load("deck", 5))
    assert list(store.load("deck", 3)) == [0, 1, 2]


@pytest.mark.parametrize("payload", ["{not json", "[1, 2, 3]", '"text"', "null"])
def test_load_corrupted_namespace_starts_fresh(store, port, payload):
    port.set(namespace_key("deck"), payload)
    cards = store.load("deck", 3)
    assert len(cards) == 3
    assert all(card.status == CardStatus.NEW for card in cards.values())


def test_load_drops_only_malformed_records(store, port):
    port.set(
        namespace_key("deck"),
        json.dumps(
            {
                "0": {"status": "known", "nextReview": to_epoch_ms(START), "reviewCount": 1},
                "1": {"status": "mastered", "nextReview": 0, "reviewCount": 1},
                "2": {"status": "learning", "nextReview": "soon", "reviewCount": 1},
                "x": {"status": "known", "nextReview": 0, "reviewCount": 1},
                "3": "garbage",
            }
        ),
    )
    cards = store.load("deck", 4)
    assert cards[0].status == CardStatus.KNOWN
    assert [cards[i].status for i in (1, 2, 3)] == [CardStatus.NEW] * 3


def test_namespaces_are_per_deck(store):
    cards = store.load("a.csv", 1)
    cards[0] = CardProgress(id=0, status=CardStatus.KNOWN, next_review_at=START, review_count=1)
    store.save("a.csv", cards)

    assert namespace_key("a.csv") != namespace_key("b.csv")
    assert store.load("b.csv", 1)[0].status == CardStatus.NEW


def test_clear_removes_namespace(store, port):
    store.save("deck", store.load("deck", 2))
    store.clear("deck")
    assert port.get(namespace_key("deck")) is None


def test_clear_missing_namespace_is_noop(store):
    store.clear("never-opened")


def test_peek_stats_unopened_deck(store, port):
    assert store.peek_stats("deck", 4) == DeckStats(known=0, learning=0, new=4)
    assert port.get(namespace_key("deck")) is None


def test_peek_stats_counts_new_from_total(store):
    cards = store.load("deck", 3)
    cards[0] = cards[0].model_copy(update={"status": CardStatus.KNOWN})
    cards[1] = cards[1].model_copy(update={"status": CardStatus.LEARNING})
    store.save("deck", cards)

    # The source grew by two questions since the last session
    assert store.peek_stats("deck", 5) == DeckStats(known=1, learning=1, new=3)


def test_peek_stats_corrupted_namespace(store, port):
    port.set(namespace_key("deck"), "%%%")
    assert store.peek_stats("deck", 2) == DeckStats(known=0, learning=0, new=2)
