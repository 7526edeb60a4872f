"""
shelter_core.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (e.g., JWT secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SHELTER_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "shelter-core"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Auth
    jwt_alg: str = "HS256"
    jwt_issuer: str = "shelter-core"
    jwt_audience: str = "shelter-app"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)
    jwt_ttl_minutes: int = Field(default=60, ge=1)

    # Persistence (document store)
    database_url: str = "sqlite+aiosqlite:///./shelter.db"

    # Case papers
    case_number_prefix: str = Field(default="CS", pattern=r"^[A-Z]+$")

    # Session bootstrap. An empty value means "no role" for users without a profile.
    new_user_default_role: str = "admin"
    repair_max_attempts: int = Field(default=3, ge=1)
    repair_backoff_seconds: float = Field(default=0.5, ge=0)

    # Local identity provider
    password_min_length: int = Field(default=6, ge=1)
    login_max_failures: int = Field(default=5, ge=1)
    login_lockout_minutes: int = Field(default=15, ge=1)
    pbkdf2_iterations: int = Field(default=260_000, ge=1000)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


# --- Module Notes -----------------------------------------------------------
# `new_user_default_role` feeds `NewUserDefaultRolePolicy`; changing it does not touch
# bootstrap logic.
