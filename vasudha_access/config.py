"""
Application Configuration.

Pydantic Settings model for the vasudha-access layer.  All configuration
is loaded from environment variables and ``.env`` files.  Inject an
``AppConfig`` instance wherever a setting is needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings

from vasudha_access.models.enums import ApprovalPolicy


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Supabase ---
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: SecretStr = SecretStr("")
    SUPABASE_SERVICE_ROLE_KEY: SecretStr = SecretStr("")  # Registration proxy only

    # --- Admission policy ---
    APPROVAL_POLICY: ApprovalPolicy = ApprovalPolicy.MANUAL
    MIN_PASSWORD_LENGTH: int = 8
    USERNAME_MIN_LENGTH: int = 3
    DEFAULT_ROLE: str = "buyer"
    PRIVILEGED_ROLES: list[str] = Field(default_factory=lambda: ["admin"])
    PHONE_REQUIRED_ROLES: list[str] = Field(
        default_factory=lambda: ["project_owner", "field_user"],
    )
    DISPOSABLE_EMAIL_DOMAINS: list[str] = Field(default_factory=lambda: [
        "mailinator.com",
        "10minutemail.com",
        "guerrillamail",
        "tempmail",
        "trashmail",
        "dispostable.com",
        "yopmail.com",
        "maildrop.cc",
        "sharklasers",
    ])
    BANNED_USERNAME_TERMS: list[str] = Field(default_factory=lambda: [
        "admin",
        "moderator",
        "root",
        "support",
        "test",
        "null",
        "undefined",
        "fuck",
        "shit",
        "bitch",
    ])

    # --- Navigation ---
    ROLE_DESTINATIONS: dict[str, str] = Field(default_factory=lambda: {
        "admin": "/admin/index.html",
        "verifier": "/verifier.html",
        "field_user": "/field-user.html",
        "buyer": "/buyer.html",
    })
    LOGIN_PATH: str = "/login.html"
    REGISTER_PATH: str = "/register.html"
    REDIRECT_DELAY_MS: int = 900

    # --- Registration proxy ---
    HOST: str = "0.0.0.0"
    PORT: int = 8787
    CORS_ORIGIN: str = "*"
    REGISTER_RATE_LIMIT: str = "10/minute"

    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "vasudha_access.log"  # Empty string disables the file handler
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when critical configuration is empty.

        Pydantic silently falls back to defaults when ``.env`` is missing,
        so operators get a hint that every remote call is going to fail.
        """
        _log = logging.getLogger("vasudha_access.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found; all configuration loaded from "
                "environment variables or defaults."
            )

        if not self.SUPABASE_URL or not self.SUPABASE_ANON_KEY.get_secret_value():
            _log.warning(
                "SUPABASE_URL or SUPABASE_ANON_KEY is empty; identity and "
                "profile calls will fail as service unavailable."
            )

        if self.DEFAULT_ROLE in self.PRIVILEGED_ROLES:
            raise ValueError("DEFAULT_ROLE must not be a privileged role")

        if self.DEFAULT_ROLE not in self.ROLE_DESTINATIONS:
            raise ValueError("ROLE_DESTINATIONS must contain an entry for DEFAULT_ROLE")

        return self

    @property
    def approved_by_default(self) -> bool:
        """Initial ``approved`` flag for every newly created profile."""
        return self.APPROVAL_POLICY == ApprovalPolicy.AUTO

    def validate_admin_config(self) -> None:
        """Validate that the elevated registration proxy can start.

        Raises:
            ValueError: If the project URL or service-role key is missing.
        """
        if not self.SUPABASE_URL or not self.SUPABASE_SERVICE_ROLE_KEY.get_secret_value():
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    Uses a check-lock-check pattern so the fast path skips the lock while
    first initialisation stays thread-safe.  Prefer constructor injection
    of ``AppConfig`` in new code.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
