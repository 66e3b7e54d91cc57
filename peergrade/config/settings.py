"""
Settings

Centralized configuration for the grading engine.
Values are read from the environment exactly once, in Settings.from_env(),
and the resulting object is handed to every component that needs it.
"""
import os
from dataclasses import dataclass, replace
from typing import Optional

from dotenv import load_dotenv


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ('true', '1', 'yes', 'on', 'enabled')


def get_optional_int_env(key: str) -> Optional[int]:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return None
    return int(value)


@dataclass(frozen=True)
class Settings:
    """
    Application settings.

    Grading policy switches:
    - prevent_duplicate_assignment: never give one evaluator two assignments
      for the same deliverable across selection rounds
    - restrict_selection_to_pending_or_open: refuse jury selection once
      grading for the deliverable has been closed
    """

    database_url: str = "sqlite+aiosqlite:///./peergrade.db"
    jwt_secret_key: str = "dev-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    default_jury_size: int = 5
    edit_window_hours: int = 24
    prevent_duplicate_assignment: bool = True
    restrict_selection_to_pending_or_open: bool = False

    # None means an OS-seeded random source
    random_seed: Optional[int] = None

    environment: str = "development"

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """Build settings from environment variables (after loading .env)."""
        load_dotenv(dotenv_path=env_file)
        defaults = cls()
        return cls(
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            jwt_secret_key=os.getenv("JWT_SECRET_KEY", defaults.jwt_secret_key),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", defaults.jwt_algorithm),
            access_token_expire_minutes=int(
                os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", defaults.access_token_expire_minutes)
            ),
            default_jury_size=int(os.getenv("DEFAULT_JURY_SIZE", defaults.default_jury_size)),
            edit_window_hours=int(os.getenv("EDIT_WINDOW_HOURS", defaults.edit_window_hours)),
            prevent_duplicate_assignment=get_bool_env(
                "PREVENT_DUPLICATE_ASSIGNMENT", defaults.prevent_duplicate_assignment
            ),
            restrict_selection_to_pending_or_open=get_bool_env(
                "RESTRICT_SELECTION_TO_PENDING_OR_OPEN", defaults.restrict_selection_to_pending_or_open
            ),
            random_seed=get_optional_int_env("JURY_RANDOM_SEED"),
            environment=os.getenv("ENVIRONMENT", defaults.environment),
        )

    def with_overrides(self, **changes) -> "Settings":
        return replace(self, **changes)
