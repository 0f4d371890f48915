"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    access_token_secret: str
    password_hash_rounds: int = Field(default=12, ge=4, le=31)
    federated_domain: str | None = None
    federated_audience: str | None = None
    key_lookup_timeout_seconds: float = Field(default=5.0, gt=0)
    base_api_url: str = "/api"
    cors_origins: list[str] = ["*"]
    note_title_scope: Literal["owner", "global"] = "owner"

    model_config = SettingsConfigDict(env_prefix="NOTES_", extra="ignore")

    @field_validator("federated_domain")
    @classmethod
    def bare_domain(cls, value: str | None) -> str | None:
        """Reduce `https://tenant.idp/` to the bare host the issuer URLs are built from."""
        if value is None:
            return None
        host = value.strip().split("://", 1)[-1].strip("/")
        return host or None

    @property
    def federation_enabled(self) -> bool:
        return bool(self.federated_domain)

    @property
    def federated_issuer(self) -> str | None:
        if not self.federated_domain:
            return None
        return f"https://{self.federated_domain}/"

    @property
    def jwks_url(self) -> str | None:
        if not self.federated_domain:
            return None
        return f"https://{self.federated_domain}/.well-known/jwks.json"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
