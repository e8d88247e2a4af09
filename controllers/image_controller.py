from fastapi import Request, HTTPException
from typing import Dict, Any, List, NoReturn, Optional

from models.image_record import ImageRecord
from models.slot_models import parse_slot_reference
from services.image_service import ImageService
from utils.errors import ImageStoreError, OnCooldown
from utils.messages import error_message, message


def _service(request: Request) -> ImageService:
    """Return the shared ImageService from app.state."""
    service = getattr(request.app.state, "image_service", None)
    if service is None:
        raise HTTPException(status_code=500, detail="Image service not initialized.")
    return service


def raise_http(exc: ImageStoreError) -> NoReturn:
    """Translate an image store error into an HTTPException carrying its code and message."""
    detail: Dict[str, Any] = {"code": exc.code, "detail": error_message(exc)}
    if isinstance(exc, OnCooldown):
        detail["remaining_seconds"] = exc.remaining_seconds
    raise HTTPException(status_code=exc.status_code, detail=detail) from exc


def _record_dict(record: ImageRecord, ordinal: Optional[int] = None) -> Dict[str, Any]:
    result: Dict[str, Any] = {
        "slot_index": record.slot_index,
        "name": record.name,
        "source_label": record.source_label,
    }
    if ordinal is not None:
        result["ordinal"] = ordinal
    return result


async def save_image(request: Request, user_id: str, target_ref: str, name: str) -> Dict[str, Any]:
    """Save the image displayed on `target_ref` under `name` in the user's collection.

    Returns:
        A dict containing the stored record and a confirmation message.

    Raises:
        HTTPException with the error's status if the save is rejected.
    """
    try:
        record = await _service(request).save(user_id, target_ref, name)
    except ImageStoreError as exc:
        raise_http(exc)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {**_record_dict(record), "message": message("success_save", record.name)}


async def paste_image(request: Request, user_id: str, target_ref: str, reference: str) -> Dict[str, Any]:
    """Paste a stored image (by name or list number) onto `target_ref`."""
    try:
        record = await _service(request).paste(user_id, target_ref, parse_slot_reference(reference))
    except ImageStoreError as exc:
        raise_http(exc)
    return {**_record_dict(record), "message": message("success_paste", record.name)}


async def submit_image(request: Request, user_id: str, target_ref: str, name: str) -> Dict[str, Any]:
    """Submit the image displayed on `target_ref` for administrator review."""
    try:
        record = await _service(request).submit(user_id, target_ref, name)
    except ImageStoreError as exc:
        raise_http(exc)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {**_record_dict(record), "message": message("success_submit", record.name)}


async def remove_image(request: Request, user_id: str, reference: str) -> Dict[str, Any]:
    """Remove a stored image (by name or list number) from the user's collection."""
    try:
        record = await _service(request).remove(user_id, parse_slot_reference(reference))
    except ImageStoreError as exc:
        raise_http(exc)
    return {**_record_dict(record), "message": message("success_remove", record.name)}


async def list_images(request: Request, user_id: str) -> Dict[str, Any]:
    """List the user's images alphabetically with their list numbers.

    Returns:
        A dict with `images` (ordinal, name, source label, slot index) and
        `text`, the listing rendered as chat lines.
    """
    try:
        entries = _service(request).list_images(user_id)
    except ImageStoreError as exc:
        raise_http(exc)

    lines: List[str] = [message("list_header")]
    lines.extend(message("list_image", ordinal, record.name, record.source_label) for ordinal, record in entries)
    return {
        "user_id": user_id,
        "images": [_record_dict(record, ordinal) for ordinal, record in entries],
        "text": "\n".join(lines),
    }


async def record_seen(request: Request, user_id: str, now: Optional[int] = None) -> Dict[str, Any]:
    """Refresh a user's last-seen time."""
    updated = _service(request).record_seen(user_id, now)
    return {"user_id": user_id, "updated": updated}


async def get_notifications(request: Request, user_id: str) -> Dict[str, Any]:
    """Return the pending-submission notice for an admin who became available."""
    count = _service(request).on_party_available(user_id)
    return {
        "user_id": user_id,
        "pending_submissions": count,
        "message": message("info_submissions", count) if count else None,
    }


async def get_pending_count(request: Request) -> Dict[str, Any]:
    return {"pending_submissions": _service(request).pending_submission_count()}


async def purge_inactive(request: Request, now: Optional[int] = None) -> Dict[str, Any]:
    """Run one inactivity sweep and persist the result."""
    service = _service(request)
    removed = await service.sweep(now)
    await service.repository.persist()
    return {"purged_users": removed, "message": message("info_purge_end", len(removed))}
