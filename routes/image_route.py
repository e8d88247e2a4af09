"""FastAPI routes for saving, pasting, submitting, removing and listing images."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from controllers.image_controller import (
	get_notifications,
	get_pending_count,
	list_images,
	paste_image,
	purge_inactive,
	record_seen,
	remove_image,
	save_image,
	submit_image,
)

router = APIRouter(tags=["images"])


class SavePayload(BaseModel):
	target_ref: str
	name: str


class PastePayload(BaseModel):
	target_ref: str
	reference: str


class SeenPayload(BaseModel):
	now: Optional[int] = None


class PurgePayload(BaseModel):
	now: Optional[int] = None


@router.post("/users/{user_id}/images")
async def save_image_route(request: Request, user_id: str, payload: SavePayload):
	"""Save the image shown on the target object into the user's collection."""
	try:
		return await save_image(request, user_id, payload.target_ref, payload.name)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/users/{user_id}/images/paste")
async def paste_image_route(request: Request, user_id: str, payload: PastePayload):
	"""Paste a stored image onto the target object; `reference` is a name or list number."""
	try:
		return await paste_image(request, user_id, payload.target_ref, payload.reference)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/users/{user_id}/images")
async def list_images_route(request: Request, user_id: str):
	try:
		return await list_images(request, user_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.delete("/users/{user_id}/images/{reference}")
async def remove_image_route(request: Request, user_id: str, reference: str):
	try:
		return await remove_image(request, user_id, reference)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/users/{user_id}/submissions")
async def submit_image_route(request: Request, user_id: str, payload: SavePayload):
	"""Submit the image shown on the target object for admin review."""
	try:
		return await submit_image(request, user_id, payload.target_ref, payload.name)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/users/{user_id}/seen")
async def record_seen_route(request: Request, user_id: str, payload: Optional[SeenPayload] = None):
	return await record_seen(request, user_id, payload.now if payload else None)


@router.get("/users/{user_id}/notifications")
async def notifications_route(request: Request, user_id: str):
	return await get_notifications(request, user_id)


@router.get("/submissions/pending-count")
async def pending_count_route(request: Request):
	return await get_pending_count(request)


@router.post("/admin/purge")
async def purge_route(request: Request, payload: Optional[PurgePayload] = None):
	"""Run the inactivity purge now instead of waiting for the background sweep."""
	try:
		return await purge_inactive(request, payload.now if payload else None)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
