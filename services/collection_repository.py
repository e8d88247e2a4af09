"""In-memory store of user collections and pending submissions."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional

from dal.collection_dal import CollectionDAL
from models.image_record import SubmissionCollection, UserCollection

LOGGER = logging.getLogger(__name__)


class CollectionRepository:
	"""Own the `user_id -> UserCollection` and `user_id -> SubmissionCollection` maps.

	The maps live in memory for the process lifetime. `load()` and
	`persist()` are the only points where state crosses to the database.
	"""

	def __init__(self, dal: Optional[CollectionDAL] = None) -> None:
		self.dal = dal
		self.user_collections: Dict[str, UserCollection] = {}
		self.submissions: Dict[str, SubmissionCollection] = {}

	async def load(self) -> None:
		"""Replace the in-memory maps with the persisted state."""
		if self.dal is None:
			return
		self.user_collections = await self.dal.load_user_collections()
		self.submissions = await self.dal.load_submissions()

	async def persist(self) -> None:
		"""Write a snapshot of both maps to the database."""
		if self.dal is None:
			return
		await self.dal.replace_all(
			list(self.user_collections.values()),
			[c for c in self.submissions.values() if c.records],
		)

	async def run_periodic_persist(self, interval_seconds: int = 300) -> None:
		"""Persist a snapshot every `interval_seconds` until cancelled."""
		while True:
			try:
				await asyncio.sleep(interval_seconds)
				await self.persist()
			except asyncio.CancelledError:
				break
			except Exception:
				LOGGER.exception("Persisting collections failed")

	def get_user(self, user_id: str) -> Optional[UserCollection]:
		return self.user_collections.get(user_id)

	def put_user(self, collection: UserCollection) -> UserCollection:
		self.user_collections[collection.user_id] = collection
		return collection

	def drop_user(self, user_id: str) -> Optional[UserCollection]:
		return self.user_collections.pop(user_id, None)

	def user_ids(self) -> List[str]:
		return list(self.user_collections)

	def get_submissions(self, user_id: str) -> Optional[SubmissionCollection]:
		return self.submissions.get(user_id)

	def put_submissions(self, collection: SubmissionCollection) -> SubmissionCollection:
		self.submissions[collection.user_id] = collection
		return collection

	def all_submissions(self) -> List[SubmissionCollection]:
		return list(self.submissions.values())
