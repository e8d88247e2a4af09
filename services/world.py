"""World-object collaborators: locating objects and reading/writing their textures.

`ObjectLocator` and `TextureBackend` are the interfaces the image service
consumes. `InMemoryWorld` implements both for the HTTP host, which registers
objects and their textures through the `/objects` routes.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, Optional, Protocol, Set

from models.slot_models import WorldObject
from services.image_resizer import CanvasTable, DEFAULT_CANVAS_TABLE


class ObjectLocator(Protocol):
	def find(self, user_id: str, target_ref: str) -> Optional[WorldObject]: ...

	def can_edit(self, obj: WorldObject, user_id: str) -> bool: ...


class TextureBackend(Protocol):
	async def fetch(self, obj: WorldObject) -> Optional[bytes]: ...

	async def store(self, obj: WorldObject, data: bytes) -> int: ...


@dataclass
class _ObjectState:
	obj: WorldObject
	editors: Set[str] = field(default_factory=set)
	texture: Optional[bytes] = None


class InMemoryWorld:
	"""Registry of displayable objects with per-object editors and textures.

	Only object types present in the canvas table can be registered, so every
	object the locator returns has known canvas dimensions. The owner can
	always edit; additional editors are listed per object.
	"""

	def __init__(self, canvas_table: CanvasTable = DEFAULT_CANVAS_TABLE) -> None:
		self.canvas_table = canvas_table
		self._objects: Dict[str, _ObjectState] = {}
		self._texture_ids = itertools.count(1)

	def register(
		self,
		ref: str,
		object_type: str,
		owner_id: Optional[str] = None,
		editors: Iterable[str] = (),
	) -> WorldObject:
		"""Add or replace an object. Raises ValueError for unknown object types."""
		if object_type not in self.canvas_table:
			raise ValueError(f"Unknown object type: {object_type!r}")
		obj = WorldObject(ref=ref, object_type=object_type, owner_id=owner_id)
		self._objects[ref] = _ObjectState(obj=obj, editors=set(editors))
		return obj

	def find(self, user_id: str, target_ref: str) -> Optional[WorldObject]:
		state = self._objects.get(target_ref)
		return state.obj if state else None

	def can_edit(self, obj: WorldObject, user_id: str) -> bool:
		state = self._objects.get(obj.ref)
		if state is None:
			return False
		return user_id == obj.owner_id or user_id in state.editors

	async def fetch(self, obj: WorldObject) -> Optional[bytes]:
		state = self._objects.get(obj.ref)
		if state is None or state.obj.texture_id <= 0:
			return None
		return state.texture

	async def store(self, obj: WorldObject, data: bytes) -> int:
		"""Display `data` on the object and return its new texture id."""
		state = self._objects.get(obj.ref)
		if state is None:
			raise KeyError(f"Object {obj.ref} not found")
		texture_id = next(self._texture_ids)
		state.texture = data
		state.obj = replace(state.obj, texture_id=texture_id)
		return texture_id
