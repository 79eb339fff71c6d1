"""Configuration from environment variables and an optional ``.env`` file."""

from functools import lru_cache
import json
from typing import Annotated, Any

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Values shipped in .env.example; treated the same as "not set".
RAKUTEN_PLACEHOLDERS = {
    "RAKUTEN_CLIENT_ID": "YOUR_CLIENT_ID_HERE",
    "RAKUTEN_CLIENT_SECRET": "YOUR_CLIENT_SECRET_HERE",
    "RAKUTEN_REFRESH_TOKEN": "YOUR_REFRESH_TOKEN_HERE",
    "RAKUTEN_ACCOUNT_ID": "YOUR_ACCOUNT_ID_HERE",
}


def _split_origins(raw: Any) -> list[str]:
    """CORS origins from a list, a JSON array string or a CSV string."""
    if raw is None:
        return []
    if isinstance(raw, str):
        text = raw.strip()
        items: Any = text.split(",")
        if text.startswith("["):
            try:
                items = json.loads(text)
            except json.JSONDecodeError:
                items = text.strip("[]").split(",")
    else:
        items = raw
    if not isinstance(items, list):
        items = [items]
    return [str(item).strip().strip('"') for item in items if str(item).strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Affiliate Storefront API"
    app_version: str = "0.1.0"
    debug: bool = False

    host: str = "0.0.0.0"
    port: int = 8080

    # NoDecode: the env value may be CSV, which is not JSON.
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        validation_alias=AliasChoices("CORS_ORIGINS", "ALLOWED_ORIGINS"),
    )

    # Rakuten Advertising publisher API
    rakuten_client_id: str = ""
    rakuten_client_secret: str = ""
    rakuten_refresh_token: str = Field(
        default="",
        description="Long-lived refresh token exchanged for a bearer token on every operation",
    )
    rakuten_account_id: str = Field(default="", description="Publisher account id, sent as the token scope")
    rakuten_base_url: str = "https://api.linksynergy.com"
    rakuten_timeout_sec: float = Field(default=30.0, gt=0)

    # logo.dev publishable token for brand logos
    logo_dev_token: str = ""

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v: object) -> list[str]:
        return _split_origins(v)

    def missing_rakuten_credentials(self) -> list[str]:
        """Env names of credentials that are unset or still hold a placeholder."""
        values = {
            "RAKUTEN_CLIENT_ID": self.rakuten_client_id,
            "RAKUTEN_CLIENT_SECRET": self.rakuten_client_secret,
            "RAKUTEN_REFRESH_TOKEN": self.rakuten_refresh_token,
            "RAKUTEN_ACCOUNT_ID": self.rakuten_account_id,
        }
        return [
            name
            for name, value in values.items()
            if not value.strip() or value.strip() == RAKUTEN_PLACEHOLDERS[name]
        ]


@lru_cache
def get_settings() -> Settings:
    return Settings()
