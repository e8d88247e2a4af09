"""Permission tier lookup."""

from __future__ import annotations

from typing import Iterable, Protocol

from models.slot_models import PermissionTier
from utils.settings import Settings


class PermissionOracle(Protocol):
    def tier(self, user_id: str) -> PermissionTier: ...

    def can_submit(self, user_id: str) -> bool: ...


class StaticPermissionOracle:
    """Resolve tiers from fixed sets of user ids (admin wins over privileged)."""

    def __init__(
        self,
        privileged_users: Iterable[str] = (),
        admin_users: Iterable[str] = (),
        submit_users: Iterable[str] = (),
    ) -> None:
        self.privileged_users = frozenset(privileged_users)
        self.admin_users = frozenset(admin_users)
        self.submit_users = frozenset(submit_users)

    @classmethod
    def from_settings(cls, settings: Settings) -> "StaticPermissionOracle":
        return cls(settings.privileged_users, settings.admin_users, settings.submit_users)

    def tier(self, user_id: str) -> PermissionTier:
        if user_id in self.admin_users:
            return PermissionTier.ADMIN
        if user_id in self.privileged_users:
            return PermissionTier.PRIVILEGED
        return PermissionTier.STANDARD

    def can_submit(self, user_id: str) -> bool:
        return user_id in self.submit_users or user_id in self.admin_users


def is_privileged(oracle: PermissionOracle, user_id: str) -> bool:
    """Return True when the user gets the privileged quotas and purge threshold."""
    return oracle.tier(user_id) in (PermissionTier.PRIVILEGED, PermissionTier.ADMIN)
