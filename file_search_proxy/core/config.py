"""Application configuration objects and helpers."""
import json
from functools import lru_cache
from typing import Annotated, Any, List, Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from file_search_proxy.core.models import DEFAULT_MODEL

# Load .env early so pydantic can pick up defaults
load_dotenv()


class Settings(BaseSettings):
    """Central application settings loaded from environment variables."""

    gemini_api_key: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_API_KEY"),
        description="API key for the Gemini File Search API",
    )
    default_model: str = Field(
        DEFAULT_MODEL,
        alias="DEFAULT_MODEL",
        description="Default Gemini model to use for queries",
    )
    request_timeout_seconds: float = Field(
        60.0,
        alias="REQUEST_TIMEOUT_SECONDS",
        gt=0,
        description="Transport timeout applied to every remote call",
    )
    poll_interval_seconds: float = Field(
        3.0,
        alias="POLL_INTERVAL_SECONDS",
        gt=0,
        description="Polling interval (seconds) for long-running operations",
    )
    poll_timeout_seconds: float = Field(
        300.0,
        alias="POLL_TIMEOUT_SECONDS",
        gt=0,
        description="Give up polling an operation after this many seconds",
    )
    query_history_file: Optional[str] = Field(
        None,
        alias="QUERY_HISTORY_FILE",
        description="JSON file backing the query history; in-memory when unset",
    )
    query_history_limit: int = Field(50, alias="QUERY_HISTORY_LIMIT", ge=1)
    max_upload_bytes: int = Field(100 * 1024 * 1024, alias="MAX_UPLOAD_BYTES", gt=0)
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_file: Optional[str] = Field(None, alias="LOG_FILE", description="Rotating log file path")
    cors_origins: Annotated[List[str], NoDecode] = Field(
        ["*"],
        alias="CORS_ORIGINS",
        description="Comma-separated origins, or a JSON array",
    )
    api_prefix: str = Field("", alias="API_PREFIX", description="Mount prefix for the API router")

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            text = value.strip()
            if text.startswith("["):
                return json.loads(text)
            return [origin.strip() for origin in text.split(",") if origin.strip()]
        return value

    @property
    def api_key_configured(self) -> bool:
        return bool(self.gemini_api_key)


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
