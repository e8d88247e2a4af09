"""Runtime configuration read from environment variables.

Values are read with `os.getenv` after `load_dotenv()` so a local `.env` file
can provide them. Every numeric option must be zero or positive; a value of 0
disables the corresponding cooldown or purge threshold.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import FrozenSet, Mapping, Optional

from dotenv import load_dotenv


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 0:
        raise ValueError(f"{name} must be zero or positive, got {value}")
    return value


def _bool_env(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _set_env(env: Mapping[str, str], name: str) -> FrozenSet[str]:
    raw = env.get(name) or ""
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    """Quota, cooldown, submission and purge options.

    Attributes:
        save_limit: Personal image limit for standard users.
        save_limit_privileged: Personal image limit for privileged and admin users.
        save_cooldown: Seconds between saves (0 disables).
        paste_cooldown: Seconds between pastes (0 disables).
        submit_enabled: Whether the submission workflow is available.
        submit_notify: Whether admins are told about pending submissions.
        submit_limit: Pending submission limit for standard users.
        submit_limit_privileged: Pending submission limit for privileged and admin users.
        submit_cooldown: Seconds between submissions (0 disables).
        purge_days: Inactive days before a standard user's images are purged (0 disables).
        purge_days_privileged: Same threshold for privileged and admin users (0 disables).
        purge_interval: Seconds between background purge sweeps.
        persist_interval: Seconds between background writes of collection state.
        privileged_users: User ids with the privileged tier.
        admin_users: User ids with the admin tier.
        submit_users: User ids allowed to submit images.
    """

    save_limit: int = 3
    save_limit_privileged: int = 5
    save_cooldown: int = 120
    paste_cooldown: int = 60
    submit_enabled: bool = False
    submit_notify: bool = False
    submit_limit: int = 2
    submit_limit_privileged: int = 4
    submit_cooldown: int = 120
    purge_days: int = 90
    purge_days_privileged: int = 0
    purge_interval: int = 3_600
    persist_interval: int = 300
    privileged_users: FrozenSet[str] = field(default_factory=frozenset)
    admin_users: FrozenSet[str] = field(default_factory=frozenset)
    submit_users: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from `env` (defaults to `os.environ` after loading `.env`)."""
        if env is None:
            load_dotenv()
            env = os.environ
        defaults = cls()
        return cls(
            save_limit=_int_env(env, "IMAGE_SAVE_LIMIT", defaults.save_limit),
            save_limit_privileged=_int_env(env, "IMAGE_SAVE_LIMIT_PRIVILEGED", defaults.save_limit_privileged),
            save_cooldown=_int_env(env, "IMAGE_SAVE_COOLDOWN", defaults.save_cooldown),
            paste_cooldown=_int_env(env, "IMAGE_PASTE_COOLDOWN", defaults.paste_cooldown),
            submit_enabled=_bool_env(env, "IMAGE_SUBMIT_ENABLED", defaults.submit_enabled),
            submit_notify=_bool_env(env, "IMAGE_SUBMIT_NOTIFY", defaults.submit_notify),
            submit_limit=_int_env(env, "IMAGE_SUBMIT_LIMIT", defaults.submit_limit),
            submit_limit_privileged=_int_env(env, "IMAGE_SUBMIT_LIMIT_PRIVILEGED", defaults.submit_limit_privileged),
            submit_cooldown=_int_env(env, "IMAGE_SUBMIT_COOLDOWN", defaults.submit_cooldown),
            purge_days=_int_env(env, "IMAGE_PURGE_DAYS", defaults.purge_days),
            purge_days_privileged=_int_env(env, "IMAGE_PURGE_DAYS_PRIVILEGED", defaults.purge_days_privileged),
            purge_interval=_int_env(env, "IMAGE_PURGE_INTERVAL", defaults.purge_interval),
            persist_interval=_int_env(env, "IMAGE_PERSIST_INTERVAL", defaults.persist_interval),
            privileged_users=_set_env(env, "PRIVILEGED_USERS"),
            admin_users=_set_env(env, "ADMIN_USERS"),
            submit_users=_set_env(env, "SUBMIT_USERS"),
        )
