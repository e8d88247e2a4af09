import random

import pytest

from models.image_record import ImageRecord, UserCollection
from models.slot_models import ByName, ByOrdinal, parse_slot_reference
from services.slot_store import SlotStore, handle_for_slot, next_slot_index
from utils.errors import DuplicateName, NotFound, QuotaExceeded


def _collection(*slots_and_names):
    return UserCollection(
        user_id="u1",
        records=[ImageRecord(slot, name, "Wooden Sign") for slot, name in slots_and_names],
    )


def test_next_slot_index_empty_collection_starts_at_one():
    assert next_slot_index(UserCollection(user_id="u1")) == 1


def test_next_slot_index_fills_lowest_gap():
    assert next_slot_index(_collection((1, "a"), (3, "b"))) == 2
    assert next_slot_index(_collection((2, "a"), (3, "b"))) == 1
    assert next_slot_index(_collection((3, "a"), (1, "b"), (2, "c"))) == 4


def test_next_slot_index_is_minimum_unused_across_random_adds_and_removes():
    store = SlotStore()
    collection = UserCollection(user_id="u1")
    rng = random.Random(7)
    for step in range(300):
        if collection.records and rng.random() < 0.45:
            victim = rng.choice(collection.records)
            store.remove(collection, victim.name)
        else:
            store.add(collection, f"img{step}", "Sign", limit=1000)
        used = {r.slot_index for r in collection.records}
        expected = min(i for i in range(1, len(used) + 2) if i not in used)
        assert next_slot_index(collection) == expected
        assert expected <= len(collection.records) + 1


def test_add_assigns_slots_and_rejects_over_quota():
    store = SlotStore()
    collection = UserCollection(user_id="u1")
    for name in ("one", "two", "three"):
        store.add(collection, name, "Sign", limit=3)
    assert [r.slot_index for r in collection.records] == [1, 2, 3]

    with pytest.raises(QuotaExceeded):
        store.add(collection, "four", "Sign", limit=3)
    assert len(collection.records) == 3


def test_add_rejects_case_insensitive_duplicate():
    store = SlotStore()
    collection = _collection((1, "Straße"))
    with pytest.raises(DuplicateName):
        store.add(collection, "STRASSE", "Sign", limit=5)
    with pytest.raises(DuplicateName):
        store.add(collection, "straße", "Sign", limit=5)
    assert len(collection.records) == 1


def test_add_reuses_freed_slot():
    store = SlotStore()
    collection = _collection((1, "a"), (2, "b"), (3, "c"))
    store.remove(collection, "B")
    record = store.add(collection, "d", "Sign", limit=5)
    assert record.slot_index == 2


def test_find_by_name_is_case_insensitive():
    store = SlotStore()
    collection = _collection((1, "Barn"))
    assert store.find_by_name(collection, "bArN").slot_index == 1
    with pytest.raises(NotFound):
        store.find_by_name(collection, "barns")


def test_find_by_ordinal_uses_alphabetical_order_without_touching_slots():
    store = SlotStore()
    collection = _collection((2, "Barn"), (1, "Apple"))
    assert store.find_by_ordinal(collection, 1).name == "Apple"
    assert store.find_by_ordinal(collection, 2).name == "Barn"
    assert {r.name: r.slot_index for r in collection.records} == {"Barn": 2, "Apple": 1}
    assert [r.name for r in collection.records] == ["Barn", "Apple"]


@pytest.mark.parametrize("ordinal", [0, -1, 3])
def test_find_by_ordinal_out_of_range(ordinal):
    with pytest.raises(NotFound):
        SlotStore().find_by_ordinal(_collection((1, "a"), (2, "b")), ordinal)


def test_resolve_dispatches_on_reference_kind():
    store = SlotStore()
    collection = _collection((1, "zeta"), (2, "alpha"))
    assert store.resolve(collection, ByOrdinal(1)).name == "alpha"
    assert store.resolve(collection, ByName("ZETA")).slot_index == 1


def test_remove_returns_record_and_raises_when_missing():
    store = SlotStore()
    collection = _collection((1, "a"))
    assert store.remove(collection, "A").slot_index == 1
    assert collection.records == []
    with pytest.raises(NotFound):
        store.remove(collection, "a")


def test_parse_slot_reference():
    assert parse_slot_reference("3") == ByOrdinal(3)
    assert parse_slot_reference(" 12 ") == ByOrdinal(12)
    assert parse_slot_reference("my sign") == ByName("my sign")
    assert parse_slot_reference("3 signs") == ByName("3 signs")


@pytest.mark.parametrize("text", ["+3", "-1", "1_0", "\u0663", "1.5", ""])
def test_parse_slot_reference_only_ascii_digits_are_ordinals(text):
    assert parse_slot_reference(text) == ByName(text)


def test_handle_for_slot():
    handle = handle_for_slot("76561198000000000", 4)
    assert (handle.namespace, handle.bucket, handle.key) == ("users", "76561198000000000", "image_4")
