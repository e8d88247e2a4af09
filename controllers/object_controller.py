"""Controller for the host world: registering objects and their textures."""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request
from fastapi.responses import Response

from services.world import InMemoryWorld


def _world(request: Request) -> InMemoryWorld:
	world = getattr(request.app.state, "world", None)
	if world is None:
		raise HTTPException(status_code=500, detail="World not initialized.")
	return world


async def register_object(
	request: Request,
	ref: str,
	object_type: str,
	owner_id: Optional[str],
	editors: List[str],
) -> Dict[str, Any]:
	"""Register (or replace) a displayable object."""
	try:
		obj = _world(request).register(ref, object_type, owner_id=owner_id, editors=editors)
	except ValueError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	return {"ref": obj.ref, "object_type": obj.object_type, "owner_id": obj.owner_id}


async def set_texture(request: Request, ref: str, image_bytes: bytes) -> Dict[str, Any]:
	"""Display raw image bytes on an object, as an in-world edit would."""
	world = _world(request)
	obj = world.find("", ref)
	if obj is None:
		raise HTTPException(status_code=404, detail="Object not found")
	if not image_bytes:
		raise HTTPException(status_code=400, detail="Texture is empty.")
	texture_id = await world.store(obj, image_bytes)
	return {"ref": ref, "texture_id": texture_id}


async def get_texture(request: Request, ref: str) -> Response:
	"""Return the bytes currently displayed on an object."""
	world = _world(request)
	obj = world.find("", ref)
	if obj is None:
		raise HTTPException(status_code=404, detail="Object not found")
	data = await world.fetch(obj)
	if not data:
		raise HTTPException(status_code=404, detail="Object has no texture")
	return Response(content=data, media_type="image/png")
