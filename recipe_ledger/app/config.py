from __future__ import annotations

from typing import Literal, Optional

from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    SUPABASE_URL: Optional[AnyUrl] = None
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    APP_ENV: str = "local"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
    )
    LEDGER_PERSISTENCE: Literal["memory", "supabase"] = "memory"
    EVENT_LOG_SIZE: int = Field(default=200, ge=1)
    LOG_LEVEL: str = "INFO"

    @property
    def supabase_configured(self) -> bool:
        return self.SUPABASE_URL is not None and bool(self.SUPABASE_SERVICE_ROLE_KEY)

    def validate_ledger(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if self.LEDGER_PERSISTENCE == "supabase":
            if self.SUPABASE_URL is None:
                errors.append("SUPABASE_URL is required for supabase persistence")
            if not self.SUPABASE_SERVICE_ROLE_KEY:
                errors.append("SUPABASE_SERVICE_ROLE_KEY is required for supabase persistence")

        return errors


settings = Settings()
