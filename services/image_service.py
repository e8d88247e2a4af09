"""Save, paste, submit, remove and list images in per-user slot collections.

`ImageService` composes the cooldown tracker, slot store, submission queue
and purge scheduler with the world collaborators (object locator, texture
backend) and the bitmap archive. Every operation either completes or leaves
the collection maps and cooldowns untouched:

- validation (feature flag, permission, cooldown, target object) runs first;
- quota and name checks run before any backend call;
- a record is inserted only after its bitmap was archived;
- a cooldown is recorded only after the operation succeeded.

Mutating operations on the same `(user_id, collection kind)` are serialized
with an `asyncio.Lock`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Dict, List, Optional, Tuple

from dal.image_archive_dal import ImageArchive, build_payload, payload_bytes
from models.image_record import ImageRecord, SubmissionCollection, UserCollection
from models.slot_models import OperationKind, PermissionTier, SlotReference, StorageHandle, WorldObject
from services.collection_repository import CollectionRepository
from services.cooldown_tracker import CooldownTracker
from services.image_resizer import CanvasTable, DEFAULT_CANVAS_TABLE, ImageResizer
from services.purge_scheduler import PurgeScheduler
from services.slot_store import SlotStore, handle_for_slot, next_slot_index, sorted_by_name
from services.submission_queue import SubmissionQueue
from services.world import ObjectLocator, TextureBackend
from utils.errors import (
    BackendError,
    DecodeError,
    FeatureDisabled,
    NoCollection,
    NoEditPermission,
    NotFound,
    NoTargetObject,
    OnCooldown,
    PermissionDenied,
)
from utils.permissions import PermissionOracle, StaticPermissionOracle, is_privileged
from utils.settings import Settings

LOGGER = logging.getLogger(__name__)

IMAGES = "images"
SUBMISSIONS = "submissions"


@dataclass
class _LockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class ImageService:
    """Orchestrate the image store operations for one process."""

    def __init__(
        self,
        repository: CollectionRepository,
        locator: ObjectLocator,
        textures: TextureBackend,
        archive: ImageArchive,
        settings: Optional[Settings] = None,
        oracle: Optional[PermissionOracle] = None,
        resizer: Optional[ImageResizer] = None,
        canvas_table: CanvasTable = DEFAULT_CANVAS_TABLE,
        cooldowns: Optional[CooldownTracker] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.repository = repository
        self.locator = locator
        self.textures = textures
        self.archive = archive
        self.settings = settings or Settings()
        self.oracle = oracle or StaticPermissionOracle.from_settings(self.settings)
        self.resizer = resizer or ImageResizer()
        self.canvas_table = canvas_table
        self.cooldowns = cooldowns or CooldownTracker()
        self.clock = clock
        self.slot_store = SlotStore(operation="save")
        self.submission_queue = SubmissionQueue()
        self._locks: Dict[Tuple[str, str], _LockEntry] = {}
        self.purge_scheduler = PurgeScheduler(
            repository,
            archive,
            is_privileged=lambda user_id: is_privileged(self.oracle, user_id),
            standard_days=self.settings.purge_days,
            privileged_days=self.settings.purge_days_privileged,
            lock_for=lambda user_id: self.lock_for(user_id, IMAGES),
        )

    # ------------------------------------------------------------------ #
    # Operations
    # ------------------------------------------------------------------ #

    async def save(self, user_id: str, target_ref: str, name: str) -> ImageRecord:
        """Copy the bitmap shown on `target_ref` into the user's next free slot."""
        name = self._clean_name(name)
        async with self.lock_for(user_id, IMAGES):
            now = self._now()
            self._check_cooldown(user_id, OperationKind.SAVE, self.settings.save_cooldown, now)
            obj = self._locate(user_id, target_ref)

            existing = self.repository.get_user(user_id)
            collection = existing or UserCollection(user_id=user_id, last_seen_at=now)
            limit = self._limit(user_id, self.settings.save_limit, self.settings.save_limit_privileged)
            self.slot_store.ensure_can_add(collection, name, limit)

            image_bytes = await self._fetch_texture(obj)
            source_label = self.canvas_table.label(obj.object_type)
            handle = handle_for_slot(user_id, next_slot_index(collection))
            await self._archive_write(handle, build_payload(
                name, user_id, obj.owner_id, obj.object_type, source_label, image_bytes,
            ))
            if existing is None:
                await self._unmark(user_id)

            record = self.slot_store.add(collection, name, source_label, limit)
            collection.last_seen_at = now
            self.repository.put_user(collection)
            self.cooldowns.record_use(user_id, OperationKind.SAVE, self.settings.save_cooldown, now)
            LOGGER.info("User %s saved %r into slot %d", user_id, record.name, record.slot_index)
            return record

    async def paste(self, user_id: str, target_ref: str, reference: SlotReference) -> ImageRecord:
        """Resize a stored image to the target's canvas and display it there."""
        async with self.lock_for(user_id, IMAGES):
            now = self._now()
            self._check_cooldown(user_id, OperationKind.PASTE, self.settings.paste_cooldown, now)
            obj = self._locate(user_id, target_ref)

            collection = self.repository.get_user(user_id)
            if collection is None:
                raise NoCollection(f"User {user_id} has no saved images")
            record = self.slot_store.resolve(collection, reference)

            payload = await self._archive_read(handle_for_slot(user_id, record.slot_index))
            if payload is None:
                raise NotFound(record.name)
            try:
                stored = payload_bytes(payload)
            except ValueError as exc:
                raise DecodeError(str(exc)) from exc

            width, height = self.canvas_table.dimensions(obj.object_type)
            resized = self.resizer.resize(stored, width, height)
            try:
                await self.textures.store(obj, resized)
            except Exception as exc:
                LOGGER.error("Texture store failed for object %s: %s", obj.ref, exc)
                raise BackendError("Failed to write the texture.") from exc

            collection.last_seen_at = now
            self.cooldowns.record_use(user_id, OperationKind.PASTE, self.settings.paste_cooldown, now)
            return record

    async def submit(self, user_id: str, target_ref: str, name: str) -> ImageRecord:
        """Queue the bitmap shown on `target_ref` for administrator review."""
        name = self._clean_name(name)
        if not self.settings.submit_enabled:
            raise FeatureDisabled("Submit feature is disabled.")
        if not self.oracle.can_submit(user_id):
            raise PermissionDenied(f"User {user_id} may not submit images")

        async with self.lock_for(user_id, SUBMISSIONS):
            now = self._now()
            self._check_cooldown(user_id, OperationKind.SUBMIT, self.settings.submit_cooldown, now)
            obj = self._locate(user_id, target_ref)

            collection = self.repository.get_submissions(user_id) or SubmissionCollection(user_id=user_id)
            limit = self._limit(user_id, self.settings.submit_limit, self.settings.submit_limit_privileged)
            self.submission_queue.ensure_can_add(collection, name, limit)

            image_bytes = await self._fetch_texture(obj)
            source_label = self.canvas_table.label(obj.object_type)
            pending = ImageRecord(slot_index=next_slot_index(collection), name=name, source_label=source_label)
            await self._archive_write(self.submission_queue.handle_for(user_id, pending), build_payload(
                name, user_id, obj.owner_id, obj.object_type, source_label, image_bytes,
            ))

            record = self.submission_queue.add(collection, name, source_label, limit)
            self.repository.put_submissions(collection)
            self.cooldowns.record_use(user_id, OperationKind.SUBMIT, self.settings.submit_cooldown, now)
            LOGGER.info("User %s submitted %r for review", user_id, record.name)
            return record

    async def remove(self, user_id: str, reference: SlotReference) -> ImageRecord:
        """Delete a stored image and its archived bitmap.

        Removing the last image drops the collection and marks the user's
        archive folder for deletion.
        """
        async with self.lock_for(user_id, IMAGES):
            collection = self.repository.get_user(user_id)
            if collection is None:
                raise NoCollection(f"User {user_id} has no saved images")
            record = self.slot_store.resolve(collection, reference)

            try:
                await self.archive.clear(handle_for_slot(user_id, record.slot_index))
            except Exception as exc:
                LOGGER.error("Archive clear failed for user %s slot %d: %s", user_id, record.slot_index, exc)
                raise BackendError("Failed to clear the stored image.") from exc

            self.slot_store.remove(collection, record.name)
            collection.last_seen_at = self._now()
            if not collection.records:
                self.repository.drop_user(user_id)
                try:
                    await self.archive.mark_for_delete(user_id)
                except Exception as exc:  # pylint: disable=broad-exception-caught
                    LOGGER.warning("Failed to mark folder of user %s for deletion: %s", user_id, exc)
            return record

    def list_images(self, user_id: str) -> List[Tuple[int, ImageRecord]]:
        """Return `(ordinal, record)` pairs sorted by name."""
        collection = self.repository.get_user(user_id)
        if collection is None:
            raise NoCollection(f"User {user_id} has no saved images")
        return list(enumerate(sorted_by_name(list(collection.records)), start=1))

    async def sweep(self, now: Optional[int] = None) -> List[str]:
        """Purge inactive users' collections; returns the purged user ids."""
        return await self.purge_scheduler.sweep(self._now() if now is None else now)

    def record_seen(self, user_id: str, now: Optional[int] = None) -> bool:
        """Refresh the user's last-seen time. Returns False if they have no collection."""
        collection = self.repository.get_user(user_id)
        if collection is None:
            return False
        collection.last_seen_at = self._now() if now is None else int(now)
        return True

    def pending_submission_count(self) -> int:
        return self.submission_queue.pending_count(self.repository.all_submissions())

    def on_party_available(self, user_id: str) -> Optional[int]:
        """Return the pending count an admin who just became available should be told.

        None when notifications are off, the user is not an admin, or nothing
        is pending.
        """
        if not (self.settings.submit_enabled and self.settings.submit_notify):
            return None
        if self.oracle.tier(user_id) is not PermissionTier.ADMIN:
            return None
        count = self.pending_submission_count()
        return count if count > 0 else None

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @asynccontextmanager
    async def lock_for(self, user_id: str, kind: str) -> AsyncIterator[None]:
        """Hold the lock serializing mutations of one user's collection kind.

        Entries are counted per holder and waiter and dropped once unused, so
        the table only covers keys with an operation in flight.
        """
        key = (user_id, kind)
        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = _LockEntry()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    def _now(self) -> int:
        return int(self.clock())

    @staticmethod
    def _clean_name(name: str) -> str:
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValueError("Image name is required.")
        return cleaned

    def _limit(self, user_id: str, standard: int, privileged: int) -> int:
        return privileged if is_privileged(self.oracle, user_id) else standard

    def _check_cooldown(self, user_id: str, kind: OperationKind, cooldown: int, now: int) -> None:
        remaining = self.cooldowns.remaining(user_id, kind, cooldown, now)
        if remaining > 0:
            raise OnCooldown(kind.value, remaining)

    def _locate(self, user_id: str, target_ref: str) -> WorldObject:
        obj = self.locator.find(user_id, target_ref)
        if obj is None:
            raise NoTargetObject(f"Object {target_ref} not found")
        if obj.object_type not in self.canvas_table:
            raise NoTargetObject(f"Object type {obj.object_type!r} cannot display images")
        if not self.locator.can_edit(obj, user_id):
            raise NoEditPermission(f"User {user_id} cannot edit object {target_ref}")
        return obj

    async def _fetch_texture(self, obj: WorldObject) -> bytes:
        try:
            data = await self.textures.fetch(obj)
        except Exception as exc:
            LOGGER.error("Texture fetch failed for object %s: %s", obj.ref, exc)
            raise BackendError("Failed to read the texture.") from exc
        if not data:
            raise DecodeError("Error reading image.")
        return data

    async def _archive_write(self, handle: StorageHandle, payload: dict) -> None:
        try:
            await self.archive.write(handle, payload)
        except Exception as exc:
            LOGGER.error("Archive write failed for %s/%s: %s", handle.bucket, handle.key, exc)
            raise BackendError("Failed to store the image.") from exc

    async def _unmark(self, user_id: str) -> None:
        try:
            await self.archive.unmark(user_id)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.warning("Failed to unmark folder of user %s: %s", user_id, exc)

    async def _archive_read(self, handle: StorageHandle) -> Optional[dict]:
        try:
            return await self.archive.read(handle)
        except Exception as exc:
            LOGGER.error("Archive read failed for %s/%s: %s", handle.bucket, handle.key, exc)
            raise BackendError("Failed to read the stored image.") from exc
