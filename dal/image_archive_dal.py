
"""Async file archive for stored bitmaps.

Each archived bitmap is one JSON file at `<base_dir>/<namespace>/<bucket>/<key>.json`
holding the image metadata and the base64-encoded bitmap. Files are written
and read with `aiofiles` so request handlers never block on disk I/O.
"""

from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import quote

import aiofiles
import aiofiles.os

from models.slot_models import USER_NAMESPACE, StorageHandle

MARKED_SUFFIX = ".MARKED"


def path_segment(text: str) -> str:
	"""Encode `text` as a single path component.

	Percent-encoding with no safe characters, plus `.`, keeps distinct inputs
	distinct and never yields `.`, `..` or a name ending in `MARKED_SUFFIX`.
	"""
	if not text:
		raise ValueError("Storage path segments must not be empty")
	return quote(text, safe="").replace(".", "%2E")


class ImageArchive:
	"""Store, read and clear archived bitmaps keyed by `StorageHandle`.

	Usage:
		archive = ImageArchive(db_initializer.images_dir)
		await archive.write(handle, payload)
		payload = await archive.read(handle)
		await archive.clear(handle)

	Files live at `<base_dir>/<namespace>/<bucket>/<key>.json`, with bucket and
	key encoded by `path_segment`, so every handle maps to its own file inside
	`base_dir`.
	"""

	def __init__(self, base_dir: Path | str):
		self.base_dir = Path(base_dir)

	def path_for(self, handle: StorageHandle) -> Path:
		"""Return the file path backing `handle`."""
		folder = self.base_dir / path_segment(handle.namespace) / path_segment(handle.bucket)
		return folder / f"{path_segment(handle.key)}.json"

	async def write(self, handle: StorageHandle, payload: Dict[str, Any]) -> Path:
		"""Write `payload` (JSON-serializable) for `handle` and return the file path."""
		path = self.path_for(handle)
		await aiofiles.os.makedirs(path.parent, exist_ok=True)
		async with aiofiles.open(path, "w", encoding="utf-8") as f:
			await f.write(json.dumps(payload))
		return path

	async def read(self, handle: StorageHandle) -> Optional[Dict[str, Any]]:
		"""Return the payload stored for `handle`, or None if nothing is stored."""
		path = self.path_for(handle)
		if not await aiofiles.os.path.exists(path):
			return None
		async with aiofiles.open(path, "r", encoding="utf-8") as f:
			text = await f.read()
		if not text.strip():
			return None
		return json.loads(text)

	async def clear(self, handle: StorageHandle) -> bool:
		"""Delete the file for `handle`. Returns True if a file was removed."""
		path = self.path_for(handle)
		if not await aiofiles.os.path.exists(path):
			return False
		await aiofiles.os.remove(path)
		return True

	def marker_for(self, bucket: str, namespace: str = USER_NAMESPACE) -> Path:
		return self.base_dir / path_segment(namespace) / f"{path_segment(bucket)}{MARKED_SUFFIX}"

	async def mark_for_delete(self, bucket: str, namespace: str = USER_NAMESPACE) -> Path:
		"""Create a `<bucket>.MARKED` folder so an operator can drop the emptied bucket."""
		marker = self.marker_for(bucket, namespace)
		await aiofiles.os.makedirs(marker, exist_ok=True)
		return marker

	async def unmark(self, bucket: str, namespace: str = USER_NAMESPACE) -> bool:
		"""Remove the deletion marker of a bucket that holds data again."""
		marker = self.marker_for(bucket, namespace)
		if not await aiofiles.os.path.isdir(marker):
			return False
		await aiofiles.os.rmdir(marker)
		return True


def build_payload(
	image_name: str,
	submitter_id: str,
	owner_id: Optional[str],
	object_type: str,
	object_label: str,
	image_bytes: bytes,
) -> Dict[str, Any]:
	"""Assemble the archived JSON document for one bitmap."""
	return {
		"image_name": image_name,
		"submitter_id": submitter_id,
		"object_owner_id": owner_id,
		"original_object": object_type,
		"original_object_label": object_label,
		"image_data": base64.b64encode(image_bytes).decode("utf-8"),
	}


def payload_bytes(payload: Dict[str, Any]) -> bytes:
	"""Return the decoded bitmap bytes from an archived payload."""
	try:
		return base64.b64decode(payload["image_data"], validate=True)
	except (KeyError, TypeError, ValueError) as exc:
		raise ValueError("Archived payload has no valid image data") from exc
