"""FastAPI routes for the host world's displayable objects."""

from typing import List, Optional

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from pydantic import BaseModel

from controllers.object_controller import get_texture, register_object, set_texture

router = APIRouter(prefix="/objects", tags=["objects"])


class ObjectPayload(BaseModel):
    object_type: str
    owner_id: Optional[str] = None
    editors: List[str] = []


@router.put("/{ref}")
async def register_object_route(request: Request, ref: str, payload: ObjectPayload):
    """Register a sign-like object the image commands can target."""
    return await register_object(request, ref, payload.object_type, payload.owner_id, payload.editors)


@router.put("/{ref}/texture")
async def set_texture_route(request: Request, ref: str, image: UploadFile = File(...)):
    """Upload the image an object displays.

    Raises:
        HTTPException: If the upload cannot be read or the object is unknown.
    """
    try:
        image_bytes = await image.read()
    except Exception as exc:  # pylint: disable=broad-exception-caught
        raise HTTPException(status_code=400, detail="Unable to read uploaded image.") from exc
    return await set_texture(request, ref, image_bytes)


@router.get("/{ref}/texture")
async def get_texture_route(request: Request, ref: str):
    """Return the PNG bytes currently displayed on the object."""
    return await get_texture(request, ref)
