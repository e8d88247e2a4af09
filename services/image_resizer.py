"""Image resizer service.

Provides a small wrapper around Pillow to stretch a bitmap to the exact
canvas size of a destination object, plus the lookup table of canvas sizes
and display names per object type.

Public classes: `ImageResizer`, `CanvasTable`

Example:
    resizer = ImageResizer()
    width, height = DEFAULT_CANVAS_TABLE.dimensions("sign.small.wood")
    png_bytes = resizer.resize(raw_bytes, width, height)
"""
from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from utils.errors import DecodeError


@dataclass(frozen=True)
class CanvasDetail:
    """Canvas width/height and display name of one object type."""

    width: int
    height: int
    label: str


SIGN_CANVASES: Dict[str, CanvasDetail] = {
    "sign.hanging": CanvasDetail(128, 256, "Two Sided Hanging Sign"),
    "sign.hanging.banner.large": CanvasDetail(64, 256, "Large Banner Hanging"),
    "sign.hanging.ornate": CanvasDetail(256, 128, "Two Sided Ornate Hanging Sign"),
    "sign.huge.wood": CanvasDetail(512, 128, "Huge Wooden Sign"),
    "sign.large.wood": CanvasDetail(256, 128, "Large Wooden Sign"),
    "sign.medium.wood": CanvasDetail(256, 128, "Wooden Sign"),
    "sign.pictureframe.landscape": CanvasDetail(256, 128, "Landscape Picture Frame"),
    "sign.pictureframe.portrait": CanvasDetail(128, 256, "Portrait Picture Frame"),
    "sign.pictureframe.tall": CanvasDetail(128, 512, "Tall Picture Frame"),
    "sign.pictureframe.xl": CanvasDetail(512, 512, "XL Picture Frame"),
    "sign.pictureframe.xxl": CanvasDetail(1024, 512, "XXL Picture Frame"),
    "sign.pole.banner.large": CanvasDetail(64, 256, "Large Banner on pole"),
    "sign.post.double": CanvasDetail(256, 256, "Double Sign Post"),
    "sign.post.single": CanvasDetail(128, 64, "Single Sign Post"),
    "sign.post.town": CanvasDetail(256, 128, "One Sided Town Sign Post"),
    "sign.post.town.roof": CanvasDetail(256, 128, "Two Sided Town Sign Post"),
    "sign.small.wood": CanvasDetail(128, 64, "Small Wooden Sign"),
}


class CanvasTable:
    """Static lookup of object type -> canvas dimensions and display name."""

    def __init__(self, canvases: Mapping[str, CanvasDetail]) -> None:
        self._canvases = dict(canvases)

    def dimensions(self, object_type: str) -> Optional[Tuple[int, int]]:
        """Return `(width, height)` for `object_type`, or None if unknown."""
        detail = self._canvases.get(object_type)
        return (detail.width, detail.height) if detail else None

    def label(self, object_type: str) -> str:
        """Return the display name for `object_type`, falling back to the raw id."""
        detail = self._canvases.get(object_type)
        return detail.label if detail else object_type

    def __contains__(self, object_type: object) -> bool:
        return object_type in self._canvases


DEFAULT_CANVAS_TABLE = CanvasTable(SIGN_CANVASES)


class ImageResizer:
    """Stretch bitmaps to an exact target size.

    Aspect ratio is not preserved: the output always matches the destination
    canvas exactly. Output is PNG.

    Args:
        resample: Pillow resampling filter. Defaults to bilinear.
    """

    def __init__(self, resample: int = Image.BILINEAR):
        self.resample = resample

    def resize(self, data: bytes, width: int, height: int) -> bytes:
        """Return `data` scaled to `width` x `height` as PNG bytes.

        Raises:
            DecodeError: If `data` is not an image Pillow can decode.
            ValueError: If the target dimensions are not positive.
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Target dimensions must be positive, got {width}x{height}")
        if not data:
            raise DecodeError("Empty image data")

        try:
            src = Image.open(io.BytesIO(data))
            src.load()
        except (UnidentifiedImageError, OSError, SyntaxError) as exc:
            raise DecodeError("Bytes are not a supported image format") from exc

        if src.mode not in ("RGBA", "RGB"):
            src = src.convert("RGBA")

        resized = src.resize((width, height), self.resample)

        out_io = io.BytesIO()
        resized.save(out_io, format="PNG")
        return out_io.getvalue()
