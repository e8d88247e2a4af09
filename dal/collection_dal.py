"""Async Data Access Layer for the collection tables.

Provides CollectionDAL with async load/persist of the two collection maps,
compatible with `utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Tuple

from models.image_record import ImageRecord, SubmissionCollection, UserCollection
from utils.database_init import AsyncDatabaseInitializer


class CollectionDAL:
    """Data access layer for user collections and pending submissions.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    _RECORD_COLUMNS = ("user_id", "slot_index", "name", "source_label")
    _RECORD_COLUMN_LIST = ", ".join(_RECORD_COLUMNS)

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def load_user_collections(self) -> Dict[str, UserCollection]:
        """Return every stored user collection keyed by user id."""
        async with self._db.connection() as conn:
            cur = await conn.execute("SELECT user_id, last_seen_at FROM user_collections")
            owners = await cur.fetchall()
            cur = await conn.execute(
                f"SELECT {self._RECORD_COLUMN_LIST} FROM saved_images ORDER BY user_id, slot_index"
            )
            rows = await cur.fetchall()

        collections = {
            row[0]: UserCollection(user_id=row[0], last_seen_at=int(row[1] or 0)) for row in owners
        }
        for user_id, record in self._rows_to_records(rows):
            collection = collections.get(user_id)
            if collection is None:
                # Records without an owner row load with last_seen_at 0.
                collection = collections[user_id] = UserCollection(user_id=user_id)
            collection.records.append(record)
        return {user_id: c for user_id, c in collections.items() if c.records}

    async def load_submissions(self) -> Dict[str, SubmissionCollection]:
        """Return every pending submission collection keyed by user id."""
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {self._RECORD_COLUMN_LIST} FROM submitted_images ORDER BY user_id, slot_index"
            )
            rows = await cur.fetchall()

        collections: Dict[str, SubmissionCollection] = {}
        for user_id, record in self._rows_to_records(rows):
            collections.setdefault(user_id, SubmissionCollection(user_id=user_id)).records.append(record)
        return collections

    async def replace_all(
        self,
        user_collections: Iterable[UserCollection],
        submissions: Iterable[SubmissionCollection],
    ) -> None:
        """Overwrite the stored state with the given snapshot in one transaction."""
        owner_rows: List[Tuple[str, int]] = []
        saved_rows: List[Tuple[str, int, str, str]] = []
        for collection in user_collections:
            owner_rows.append((collection.user_id, int(collection.last_seen_at)))
            saved_rows.extend(self._record_rows(collection.user_id, collection.records))
        submitted_rows: List[Tuple[str, int, str, str]] = []
        for collection in submissions:
            submitted_rows.extend(self._record_rows(collection.user_id, collection.records))

        placeholders = ", ".join("?" for _ in self._RECORD_COLUMNS)
        async with self._db.connection() as conn:
            await conn.execute("DELETE FROM user_collections")
            await conn.execute("DELETE FROM saved_images")
            await conn.execute("DELETE FROM submitted_images")
            await conn.executemany(
                "INSERT INTO user_collections (user_id, last_seen_at) VALUES (?, ?)", owner_rows
            )
            await conn.executemany(
                f"INSERT INTO saved_images ({self._RECORD_COLUMN_LIST}) VALUES ({placeholders})", saved_rows
            )
            await conn.executemany(
                f"INSERT INTO submitted_images ({self._RECORD_COLUMN_LIST}) VALUES ({placeholders})",
                submitted_rows,
            )
            await conn.commit()

    @staticmethod
    def _record_rows(user_id: str, records: Iterable[ImageRecord]) -> List[Tuple[str, int, str, str]]:
        return [(user_id, r.slot_index, r.name, r.source_label) for r in records]

    @staticmethod
    def _rows_to_records(rows: Sequence[Sequence[object]]) -> List[Tuple[str, ImageRecord]]:
        """Convert DB row tuples into `(user_id, ImageRecord)` pairs."""
        return [
            (str(row[0]), ImageRecord(slot_index=int(row[1]), name=str(row[2]), source_label=str(row[3])))
            for row in rows
        ]
