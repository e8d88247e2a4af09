"""Remove the image collections of users who have been inactive too long."""

import asyncio
import contextlib
import logging
import time
from typing import AsyncContextManager, Callable, List, Optional

from dal.image_archive_dal import ImageArchive
from models.image_record import UserCollection
from services.collection_repository import CollectionRepository
from services.slot_store import handle_for_slot
from utils.messages import message

LOGGER = logging.getLogger(__name__)

SECONDS_IN_DAY = 86_400


def inactive_days(collection: UserCollection, now: int) -> int:
    """Return whole days elapsed since the owner was last seen."""
    return (int(now) - int(collection.last_seen_at)) // SECONDS_IN_DAY


class PurgeScheduler:
    """Delete collections whose owners exceed their tier's inactivity limit.

    A limit of 0 days exempts the tier. Purging clears every record's archived
    bitmap, drops the collection and marks the user's folder for deletion.
    Pending submissions are never touched.
    """

    def __init__(
        self,
        repository: CollectionRepository,
        archive: ImageArchive,
        is_privileged: Callable[[str], bool],
        standard_days: int,
        privileged_days: int,
        lock_for: Optional[Callable[[str], AsyncContextManager]] = None,
    ) -> None:
        """
        Args:
            repository: Store owning the user collection map.
            archive: Archive holding each slot's bitmap.
            is_privileged: Returns True for users judged by `privileged_days`.
            standard_days: Inactivity limit for standard users (0 disables).
            privileged_days: Inactivity limit for privileged users (0 disables).
            lock_for: Optional per-user lock factory shared with user operations.
        """
        self.repository = repository
        self.archive = archive
        self.is_privileged = is_privileged
        self.standard_days = standard_days
        self.privileged_days = privileged_days
        self.lock_for = lock_for

    def limit_for(self, user_id: str) -> int:
        return self.privileged_days if self.is_privileged(user_id) else self.standard_days

    def is_expired(self, collection: UserCollection, now: int) -> bool:
        limit = self.limit_for(collection.user_id)
        return limit > 0 and inactive_days(collection, now) > limit

    async def sweep(self, now: Optional[int] = None) -> List[str]:
        """Purge every expired collection and return the purged user ids."""
        now = int(time.time()) if now is None else int(now)
        LOGGER.info(message("info_purge_start", self.standard_days, self.privileged_days))

        removed: List[str] = []
        for user_id in self.repository.user_ids():
            lock = self.lock_for(user_id) if self.lock_for else contextlib.nullcontext()
            async with lock:
                collection = self.repository.get_user(user_id)
                if collection is None or not self.is_expired(collection, now):
                    continue
                await self._clear_backing_storage(collection)
                self.repository.drop_user(user_id)
                await self._mark_for_delete(user_id)
                removed.append(user_id)

        LOGGER.info(message("info_purge_end", len(removed)))
        return removed

    async def _clear_backing_storage(self, collection: UserCollection) -> None:
        for record in collection.records:
            handle = handle_for_slot(collection.user_id, record.slot_index)
            try:
                await self.archive.clear(handle)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                LOGGER.warning(
                    "Failed to clear %s/%s while purging user %s: %s",
                    handle.bucket, handle.key, collection.user_id, exc,
                )
        collection.records.clear()

    async def _mark_for_delete(self, user_id: str) -> None:
        try:
            await self.archive.mark_for_delete(user_id)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.warning("Failed to mark folder of user %s for deletion: %s", user_id, exc)

    async def run_periodic(self, interval_seconds: int = 3_600) -> None:
        """
        Repeatedly sweep at the given interval until cancelled.

        Args:
            interval_seconds: Seconds to sleep between sweeps.
        """
        while True:
            try:
                await self.sweep()
                await asyncio.sleep(interval_seconds)
            except asyncio.CancelledError:
                break
            except Exception:
                LOGGER.exception("Purge sweep failed")
                await asyncio.sleep(interval_seconds)
