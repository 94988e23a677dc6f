"""Dataclass-based domain configuration.

The collaboration core keeps its switches and defaults in a frozen
dataclass with nested sections. The membership integrity switches
default to off; ``from_env`` overrides any setting from DONEO_*
variables.
"""

import os
from dataclasses import dataclass, field


# ---------------------------------------------------------------------------
# Nested config sections
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ActivityConfig:
    """Project activity and unread tracking."""

    track_unread: bool = True  # mark tasks unread for everyone but the actor


@dataclass(frozen=True)
class MembershipConfig:
    """Integrity switches for the member/assignee graph."""

    enforce_assignee_membership: bool = False
    cascade_deletes: bool = False  # unlink attachments from deleted subtasks


@dataclass(frozen=True)
class SeedConfig:
    """Mock data provider settings."""

    enabled: bool = True
    current_user_index: int = 0


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    json: bool = False


# ---------------------------------------------------------------------------
# Top-level domain config
# ---------------------------------------------------------------------------

def _env_bool(name: str) -> bool | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class CollabConfig:
    """Complete configuration for the collaboration core.

    Usage::

        config = CollabConfig.default()
        if config.membership.enforce_assignee_membership:
            reject_outsiders(task)
    """

    activity: ActivityConfig = field(default_factory=ActivityConfig)
    membership: MembershipConfig = field(default_factory=MembershipConfig)
    seed: SeedConfig = field(default_factory=SeedConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    cors_origins: tuple[str, ...] = ("http://localhost:3000",)
    max_page_size: int = 100

    @classmethod
    def default(cls) -> "CollabConfig":
        """Create config with all defaults."""
        return cls()

    @classmethod
    def from_env(cls, prefix: str = "DONEO_") -> "CollabConfig":
        """Create config from environment variables.

        Example: DONEO_ENFORCE_ASSIGNEE_MEMBERSHIP=true
        """
        defaults = cls()

        track_unread = _env_bool(f"{prefix}TRACK_UNREAD")
        activity = ActivityConfig(
            track_unread=defaults.activity.track_unread if track_unread is None else track_unread,
        )

        enforce = _env_bool(f"{prefix}ENFORCE_ASSIGNEE_MEMBERSHIP")
        cascade = _env_bool(f"{prefix}CASCADE_DELETES")
        membership = MembershipConfig(
            enforce_assignee_membership=(
                defaults.membership.enforce_assignee_membership if enforce is None else enforce
            ),
            cascade_deletes=defaults.membership.cascade_deletes if cascade is None else cascade,
        )

        seed_enabled = _env_bool(f"{prefix}SEED")
        user_index = os.getenv(f"{prefix}CURRENT_USER_INDEX")
        seed = SeedConfig(
            enabled=defaults.seed.enabled if seed_enabled is None else seed_enabled,
            current_user_index=int(user_index) if user_index else defaults.seed.current_user_index,
        )

        log_json = _env_bool(f"{prefix}LOG_JSON")
        logging = LoggingConfig(
            level=os.getenv(f"{prefix}LOG_LEVEL", defaults.logging.level).upper(),
            json=defaults.logging.json if log_json is None else log_json,
        )

        overrides = {}
        origins = os.getenv(f"{prefix}CORS_ORIGINS")
        if origins:
            overrides["cors_origins"] = tuple(o.strip() for o in origins.split(",") if o.strip())
        max_page = os.getenv(f"{prefix}MAX_PAGE_SIZE")
        if max_page:
            overrides["max_page_size"] = int(max_page)

        return cls(
            activity=activity,
            membership=membership,
            seed=seed,
            logging=logging,
            **overrides,
        )
