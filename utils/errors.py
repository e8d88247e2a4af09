"""Errors surfaced to callers of the image store.

Every error carries a stable `code` and an HTTP status so the route layer can
translate it without knowing each subclass. None of them is retried.
"""

from __future__ import annotations

from typing import Optional


class ImageStoreError(Exception):
    """Base class for all caller-facing image store errors."""

    code = "error"
    status_code = 400

    def __init__(self, detail: Optional[str] = None) -> None:
        super().__init__(detail or self.code)
        self.detail = detail


class NoTargetObject(ImageStoreError):
    code = "no_target_object"
    status_code = 404


class NoEditPermission(ImageStoreError):
    code = "no_edit_permission"
    status_code = 403


class PermissionDenied(ImageStoreError):
    code = "permission_denied"
    status_code = 403


class FeatureDisabled(ImageStoreError):
    code = "feature_disabled"
    status_code = 403


class OnCooldown(ImageStoreError):
    """The operation was used too recently by the same user."""

    code = "on_cooldown"
    status_code = 429

    def __init__(self, operation: str, remaining_seconds: int) -> None:
        super().__init__(f"{operation} on cooldown for {remaining_seconds}s")
        self.operation = operation
        self.remaining_seconds = remaining_seconds


class QuotaExceeded(ImageStoreError):
    code = "quota_exceeded"
    status_code = 409

    def __init__(self, operation: str, limit: int) -> None:
        super().__init__(f"{operation} limit of {limit} reached")
        self.operation = operation
        self.limit = limit


class DuplicateName(ImageStoreError):
    code = "duplicate_name"
    status_code = 409

    def __init__(self, name: str) -> None:
        super().__init__(f"An image named {name!r} already exists")
        self.name = name


class NotFound(ImageStoreError):
    code = "not_found"
    status_code = 404

    def __init__(self, query: str) -> None:
        super().__init__(f"No match found with {query}")
        self.query = query


class NoCollection(ImageStoreError):
    code = "no_collection"
    status_code = 404


class DecodeError(ImageStoreError):
    code = "decode_error"
    status_code = 422


class BackendError(ImageStoreError):
    """A texture or archive backend call failed; nothing was written."""

    code = "backend_error"
    status_code = 502
