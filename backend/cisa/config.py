from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Placeholder values that have shipped in sample configs; never valid in production.
_KNOWN_PLACEHOLDER_SECRETS = frozenset({
    "your-secret-key-change-in-production",
    "changeme",
    "secret",
})

_HEX_KEY_RE = re.compile(r"^[0-9a-fA-F]{64}$")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: str = "development"  # "development" | "production"
    jwt_secret: str = ""  # HS256 signing secret for the admin-token cookie
    encryption_key: str = ""  # 64 hex chars = 256-bit AES key for national IDs

    @model_validator(mode="after")
    def _check_secrets(self) -> Settings:
        self.jwt_secret = self.jwt_secret.strip()
        if not self.jwt_secret:
            raise ValueError(
                "JWT_SECRET is not set. An empty JWT secret allows attackers to "
                "forge admin session tokens. Set JWT_SECRET in .env."
            )
        if self.is_production and self.jwt_secret in _KNOWN_PLACEHOLDER_SECRETS:
            raise ValueError(
                "JWT_SECRET is a known placeholder value and cannot be used in production."
            )

        self.encryption_key = self.encryption_key.strip()
        if not self.encryption_key:
            raise ValueError(
                "ENCRYPTION_KEY is not set. National IDs cannot be stored without a "
                "256-bit key supplied as 64 hex characters."
            )
        if not _HEX_KEY_RE.match(self.encryption_key):
            raise ValueError("ENCRYPTION_KEY must be exactly 64 hex characters (256 bits).")
        if self.is_production and set(self.encryption_key) == {"0"}:
            raise ValueError("ENCRYPTION_KEY is all zeros and cannot be used in production.")
        return self

    # Session cookie / token
    token_ttl_hours: int = 24
    cookie_secure: bool | None = None  # None: follow environment
    revalidate_principal: bool = True  # re-check Admin.is_active on admin API calls

    # Storage
    data_dir: Path = Path("./data")
    db_url: str = "sqlite:///./data/cisa.db"

    # Logging
    log_level: str = "INFO"

    # Server (when run with `python -m cisa.main`)
    host: str = "127.0.0.1"
    port: int = 8000

    # Optional first-admin bootstrap (applied at startup when both are set)
    admin_username: str = ""
    admin_password: str = ""

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    @property
    def secure_cookies(self) -> bool:
        if self.cookie_secure is not None:
            return self.cookie_secure
        return self.is_production


@lru_cache
def get_settings() -> Settings:
    return Settings()
