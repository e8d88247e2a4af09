"""Pending-review submissions, kept apart from personal collections."""

from __future__ import annotations

from typing import Iterable

from models.image_record import ImageRecord, SubmissionCollection
from models.slot_models import SUBMISSION_NAMESPACE, StorageHandle
from services.slot_store import SlotStore

SUBMISSION_BUCKET = SUBMISSION_NAMESPACE


class SubmissionQueue(SlotStore):
    """SlotStore contract over a `SubmissionCollection` with its own quota.

    Submissions are never purged for inactivity; an external review process
    drains them.
    """

    def __init__(self) -> None:
        super().__init__(operation="submit")

    @staticmethod
    def handle_for(user_id: str, record: ImageRecord) -> StorageHandle:
        """Return the archive handle of a submitted image."""
        return StorageHandle(namespace=SUBMISSION_BUCKET, bucket=user_id, key=record.name)

    @staticmethod
    def pending_count(collections: Iterable[SubmissionCollection]) -> int:
        """Return the number of pending submissions across all users."""
        return sum(len(collection.records) for collection in collections)
