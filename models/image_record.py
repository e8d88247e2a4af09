from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class ImageRecord:
    """A named image stored in one of a user's slots.

    Attributes:
        slot_index: Stable per-user storage index (>= 1), reused after removal.
        name: Case-insensitive unique key within the owning collection.
        source_label: Human-readable name of the object type the bitmap came from.
    """

    slot_index: int
    name: str
    source_label: str

    @property
    def name_key(self) -> str:
        """Return the case-folded name used for every name comparison."""
        return name_key(self.name)


def name_key(name: str) -> str:
    """Normalize an image name for case-insensitive matching."""
    return name.casefold()


@dataclass
class UserCollection:
    """A user's personal collection of saved images.

    Attributes:
        user_id: Owner of the collection.
        last_seen_at: Unix timestamp (seconds) of the owner's last activity.
        records: Stored images, unique by case-insensitive name.
    """

    user_id: str
    last_seen_at: int = 0
    records: List[ImageRecord] = field(default_factory=list)


@dataclass
class SubmissionCollection:
    """Images a user has submitted for administrator review."""

    user_id: str
    records: List[ImageRecord] = field(default_factory=list)
