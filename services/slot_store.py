"""Slot allocation and lookup over a user's image collection.

Slot indexes are stable storage positions. The ordinal view (1-based
position in the alphabetical listing) is recomputed on every lookup and
never changes a record's `slot_index`.
"""

from __future__ import annotations

from typing import List, Protocol, Sequence

from models.image_record import ImageRecord, name_key
from models.slot_models import USER_NAMESPACE, ByName, ByOrdinal, SlotReference, StorageHandle
from utils.errors import DuplicateName, NotFound, QuotaExceeded


class RecordCollection(Protocol):
    records: List[ImageRecord]


def next_slot_index(collection: RecordCollection) -> int:
    """Return the smallest slot index not in use, at most `len(records) + 1`."""
    ordered = sorted(collection.records, key=lambda record: record.slot_index)
    for expected, record in enumerate(ordered, start=1):
        if record.slot_index != expected:
            return expected
    return len(ordered) + 1


def handle_for_slot(user_id: str, slot_index: int) -> StorageHandle:
    """Return the archive handle of a personal slot."""
    return StorageHandle(namespace=USER_NAMESPACE, bucket=user_id, key=f"image_{slot_index}")


def sorted_by_name(records: Sequence[ImageRecord]) -> List[ImageRecord]:
    """Return records in case-insensitive alphabetical order."""
    return sorted(records, key=lambda record: (record.name_key, record.slot_index))


class SlotStore:
    """Quota-gated add/find/remove over a collection's records.

    Args:
        operation: Name reported in `QuotaExceeded` (e.g. "save").
    """

    def __init__(self, operation: str = "save") -> None:
        self.operation = operation

    def ensure_can_add(self, collection: RecordCollection, name: str, limit: int) -> None:
        """Raise if adding `name` would break the quota or name uniqueness."""
        if len(collection.records) >= limit:
            raise QuotaExceeded(self.operation, limit)
        key = name_key(name)
        if any(record.name_key == key for record in collection.records):
            raise DuplicateName(name)

    def add(self, collection: RecordCollection, name: str, source_label: str, limit: int) -> ImageRecord:
        """Insert a new record in the lowest free slot and return it."""
        self.ensure_can_add(collection, name, limit)
        record = ImageRecord(
            slot_index=next_slot_index(collection),
            name=name,
            source_label=source_label,
        )
        collection.records.append(record)
        return record

    def find_by_name(self, collection: RecordCollection, name: str) -> ImageRecord:
        key = name_key(name)
        for record in collection.records:
            if record.name_key == key:
                return record
        raise NotFound(name)

    def find_by_ordinal(self, collection: RecordCollection, ordinal: int) -> ImageRecord:
        """Return the record at 1-based `ordinal` in the alphabetical listing."""
        if ordinal < 1 or ordinal > len(collection.records):
            raise NotFound(str(ordinal))
        return sorted_by_name(collection.records)[ordinal - 1]

    def resolve(self, collection: RecordCollection, reference: SlotReference) -> ImageRecord:
        """Resolve a by-name or by-ordinal reference to a record."""
        if isinstance(reference, ByOrdinal):
            return self.find_by_ordinal(collection, reference.ordinal)
        if isinstance(reference, ByName):
            return self.find_by_name(collection, reference.name)
        raise TypeError(f"Unsupported slot reference: {reference!r}")

    def remove(self, collection: RecordCollection, name: str) -> ImageRecord:
        """Remove the record matching `name` (case-insensitive) and return it.

        The caller clears the freed slot's archived bitmap.
        """
        record = self.find_by_name(collection, name)
        collection.records.remove(record)
        return record
