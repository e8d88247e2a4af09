"""Per-user cooldown bookkeeping for gated operations."""

from __future__ import annotations

from typing import Dict, Tuple

from models.slot_models import OperationKind


class CooldownTracker:
    """Remember when each user last used each operation successfully.

    State lives only in memory and resets when the process restarts.
    """

    def __init__(self) -> None:
        self._last_use: Dict[Tuple[str, OperationKind], int] = {}

    def record_use(self, user_id: str, kind: OperationKind, cooldown_seconds: int, now: int) -> None:
        """Store `now` as the last use; no-op when the cooldown is disabled."""
        if cooldown_seconds == 0:
            return
        self._last_use[(user_id, kind)] = int(now)

    def remaining(self, user_id: str, kind: OperationKind, cooldown_seconds: int, now: int) -> int:
        """Return seconds left before `kind` may be used again (0 when ready)."""
        if cooldown_seconds == 0:
            return 0
        last = self._last_use.get((user_id, kind))
        if last is None:
            return 0
        return max(0, cooldown_seconds - (int(now) - last))
