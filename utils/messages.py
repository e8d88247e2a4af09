"""User-facing message table and formatting helpers."""

from typing import Any, Dict

from utils.errors import (
    ImageStoreError,
    NotFound,
    OnCooldown,
    QuotaExceeded,
)

MESSAGES: Dict[str, str] = {
    "backend_error": "Error reading image.",
    "decode_error": "Error reading image.",
    "duplicate_name": "Saved image already exists with this name.",
    "feature_disabled": "Submit feature is disabled.",
    "no_collection": "Player directory not found.",
    "no_edit_permission": "You do not have permission for this sign.",
    "no_target_object": "Didn't find a sign.",
    "not_found": "No match found with {0}",
    "on_cooldown": "{0} can't be used for another {1}.",
    "permission_denied": "You do not have permission to use this command.",
    "quota_exceeded": "You are already at your {0} limit.",
    "list_header": "Saved Signs\n------------------",
    "list_image": "{0}.  {1} - {2}",
    "success_paste": 'Sign image "{0}" pasted.',
    "success_remove": 'Sign image "{0}" removed.',
    "success_save": 'Sign image "{0}" saved.',
    "success_submit": 'Sign image "{0}" submitted for admin review.',
    "info_submissions": "{0} pending submissions.",
    "info_purge_start": "Purging {0}({1} privileged)+ inactive days of user data...",
    "info_purge_end": "... Purged {0} user's data.",
}


def message(key: str, *args: Any) -> str:
    """Return the message for `key` formatted with positional `args`."""
    return MESSAGES[key].format(*args)


def seconds_to_readable(seconds: int) -> str:
    """Format a duration as `1h 5min`, `2min 10s` or `40s`."""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours >= 1:
        return f"{hours}h {minutes}min"
    if minutes >= 1:
        return f"{minutes}min {secs}s"
    return f"{secs}s"


def error_message(exc: ImageStoreError) -> str:
    """Map an image store error to its user-facing message."""
    if isinstance(exc, OnCooldown):
        return message(exc.code, exc.operation, seconds_to_readable(exc.remaining_seconds))
    if isinstance(exc, QuotaExceeded):
        return message(exc.code, exc.operation)
    if isinstance(exc, NotFound):
        return message(exc.code, exc.query)
    return MESSAGES.get(exc.code, exc.detail or exc.code)
