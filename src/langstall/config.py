from typing import Annotated

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    - environment: runtime environment (development/staging/production)
    - database_path: SQLite file holding vocabulary and review history
    - default_user_id: identity used when a request carries no X-User-Id
    """

    environment: str = Field(
        default="development",
        description="Runtime environment",
    )

    # --- persistence ---
    database_path: str = Field(
        default=".data/langstall.sqlite3",
        description="Path to the vocabulary SQLite database",
    )
    default_user_id: str = Field(
        default="anonymous",
        description="User id applied when the request has no X-User-Id header",
    )
    due_limit: int = Field(
        default=100,
        ge=1,
        description="Max items returned by the due-for-review listing",
    )

    # --- logging / HTTP ---
    log_level: str = Field(
        default="INFO",
        description="Root log level for stdlib logging",
    )
    allowed_cors_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=("*",),
        description="Origins allowed by the CORS middleware",
    )

    # --- Strict mode ---
    strict_mode: bool = Field(
        default=True,
        description="Fail fast on missing/invalid configuration (disable only for tests)",
    )

    # - env_file: read .env
    # - extra: ignore unrelated keys in .env
    # - case_sensitive: environment keys are matched case-insensitively
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("allowed_cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        """Split a comma separated env value into a deduplicated tuple."""
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, (list, tuple)):
            seen: list[str] = []
            for part in value:
                text = str(part).strip()
                if text and text not in seen:
                    seen.append(text)
            return tuple(seen)
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @model_validator(mode="after")
    def _check_strict(self) -> "Settings":
        if self.strict_mode and not self.database_path.strip():
            raise ValueError("DATABASE_PATH must be set when STRICT_MODE=true")
        return self


settings = Settings()
