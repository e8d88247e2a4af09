"""Domain value types shared by the services and the HTTP layer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class PermissionTier(str, Enum):
	"""Permission tier of a user; decides quotas and purge thresholds."""

	STANDARD = "standard"
	PRIVILEGED = "privileged"
	ADMIN = "admin"


class OperationKind(str, Enum):
	"""Operations that are gated by a cooldown."""

	SAVE = "save"
	PASTE = "paste"
	SUBMIT = "submit"


@dataclass(frozen=True)
class ByName:
	"""Refer to a stored image by its (case-insensitive) name."""

	name: str

	def __str__(self) -> str:
		return self.name


@dataclass(frozen=True)
class ByOrdinal:
	"""Refer to a stored image by its 1-based position in the alphabetical listing."""

	ordinal: int

	def __str__(self) -> str:
		return str(self.ordinal)


SlotReference = Union[ByName, ByOrdinal]


def parse_slot_reference(text: str) -> SlotReference:
	"""Return `ByOrdinal` when `text` is only ASCII digits, else `ByName`."""
	stripped = (text or "").strip()
	if stripped.isascii() and stripped.isdigit():
		return ByOrdinal(int(stripped))
	return ByName(stripped)


@dataclass(frozen=True)
class WorldObject:
	"""Lightweight view of a world object that can display a bitmap.

	Attributes:
		ref: Identifier the host uses for the object.
		object_type: Type id looked up in the canvas table (e.g. `sign.small.wood`).
		owner_id: Optional id of the object's owner.
		texture_id: Id of the texture currently displayed; 0 when blank.
	"""

	ref: str
	object_type: str
	owner_id: Optional[str] = None
	texture_id: int = 0


USER_NAMESPACE = "users"
SUBMISSION_NAMESPACE = "0_submitted"


@dataclass(frozen=True)
class StorageHandle:
	"""Key of an archived bitmap.

	Attributes:
		namespace: Top-level area, `USER_NAMESPACE` or `SUBMISSION_NAMESPACE`.
		bucket: Owner folder inside the namespace (the user id).
		key: File stem inside the bucket.
	"""

	namespace: str
	bucket: str
	key: str
