import os
import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite


class AsyncDatabaseInitializer:
    """
    Manage an async SQLite database using the DATABASE_DIR environment variable.

    - The database file is located at: <DATABASE_DIR>/image_store.db
    - Archived bitmaps live next to it under: <DATABASE_DIR>/images/
    - DATABASE_DIR is required unless a directory is passed explicitly. A
      RuntimeError is raised if it is missing or invalid (not a directory and
      cannot be created).
    - The first call to `ensure_database()` creates the collection tables if
      they do not exist yet. Existing data is kept so collections survive
      restarts. Subsequent calls on the same instance are no-ops, so it is
      safe for `connection()` to call it.
    """

    def __init__(self, database_dir: Optional[Path | str] = None) -> None:
        env_dir = str(database_dir) if database_dir is not None else os.getenv("DATABASE_DIR")

        if env_dir is None or not env_dir.strip():
            raise RuntimeError(
                "DATABASE_DIR environment variable must be set to a writable "
                "directory path where the SQLite database file will be stored."
            )

        db_dir = Path(env_dir).expanduser()

        # If the path exists but is not a directory, that's a configuration error.
        if db_dir.exists() and not db_dir.is_dir():
            raise RuntimeError(
                f"DATABASE_DIR={env_dir!r} points to a file, not a directory "
                f"({db_dir}). Please set DATABASE_DIR to a directory path."
            )

        try:
            db_dir.mkdir(parents=True, exist_ok=True)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to create or access database directory at {db_dir}"
            ) from exc

        self.db_dir = db_dir
        self.db_path = self.db_dir / "image_store.db"
        self.images_dir = self.db_dir / "images"

        self._initialized = False

    async def ensure_database(self) -> None:
        """
        Ensure the SQLite schema exists at `self.db_path`.

        Creates, when missing:
            - `user_collections`: one row per user with a personal collection.
            - `saved_images`: personal image records keyed by (user_id, slot_index).
            - `submitted_images`: pending submissions keyed by (user_id, slot_index).

        Subsequent calls on the same instance are no-ops.
        """
        if self._initialized:
            return

        self.images_dir.mkdir(parents=True, exist_ok=True)

        max_attempts = 3
        for attempt in range(1, max_attempts + 1):
            try:
                async with aiosqlite.connect(self.db_path) as db:
                    await db.execute(
                        """
                        CREATE TABLE IF NOT EXISTS user_collections (
                            user_id TEXT PRIMARY KEY,
                            last_seen_at INTEGER NOT NULL DEFAULT 0
                        )
                        """
                    )
                    await db.execute(
                        """
                        CREATE TABLE IF NOT EXISTS saved_images (
                            user_id TEXT NOT NULL,
                            slot_index INTEGER NOT NULL,
                            name TEXT NOT NULL,
                            source_label TEXT NOT NULL,
                            PRIMARY KEY (user_id, slot_index)
                        )
                        """
                    )
                    await db.execute(
                        """
                        CREATE TABLE IF NOT EXISTS submitted_images (
                            user_id TEXT NOT NULL,
                            slot_index INTEGER NOT NULL,
                            name TEXT NOT NULL,
                            source_label TEXT NOT NULL,
                            PRIMARY KEY (user_id, slot_index)
                        )
                        """
                    )
                    await db.commit()
                break
            except FileNotFoundError:
                # On some platforms a transient missing file error may occur; retry a few times.
                if attempt >= max_attempts:
                    raise
                await asyncio.sleep(0.1 * attempt)

        self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Async context manager yielding an `aiosqlite.Connection`.

        The schema is created on first use via `ensure_database()`.
        """
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        try:
            yield conn
        finally:
            await conn.close()
