from pydantic_settings import BaseSettings, NoDecode
from pydantic import ConfigDict, field_validator
from pathlib import Path
from typing import Annotated, Literal
from functools import lru_cache
from ..validators.config_validators import to_uppercase, to_lowercase, split_csv


class Settings(BaseSettings):
    """
    Logging settings loaded from the environment.

    Only the logging backend is configured here. Middleware behaviour is set in
    code through LoggerConfig / RecoverConfig when the middleware is registered.
    """

    # Environment
    ENV: Literal["development", "testing", "staging", "production"] = "development"
    SERVICE_NAME: str = "reqlog"

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"
    LOG_TO_STDOUT: bool = True
    LOG_DIR: Path = Path("/var/log/reqlog")
    LOG_MAX_BYTES: int = 10_000_000  # 10 MB
    LOG_BACKUP_COUNT: int = 5

    # Queue-backed logging (writes happen on a QueueListener thread)
    LOG_USE_QUEUE: bool = False
    LOG_QUEUE_MAX_SIZE: int = 0  # 0 -> unbounded

    # Record attributes masked by RedactFilter
    LOG_REDACT_KEYS: Annotated[list[str], NoDecode] = [
        "authorization",
        "cookie",
        "set_cookie",
        "password",
        "secret",
        "token",
        "access_token",
        "refresh_token",
    ]

    # --- Validators ---
    @field_validator("LOG_LEVEL", mode="before")
    def normalize_log_level(cls, v: str | None) -> str | None:
        """
        Normalize LOG_LEVEL to uppercase so "debug" and "DEBUG" are both accepted.
        """
        return to_uppercase(v)

    @field_validator("LOG_FORMAT", mode="before")
    def normalize_log_format(cls, v: str | None) -> str | None:
        """
        Normalize the LOG_FORMAT environment variable value to lowercase.
        """
        return to_lowercase(v)

    @field_validator("LOG_REDACT_KEYS", mode="before")
    def parse_redact_keys(cls, v):
        return split_csv(v)

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# get_settings() takes no arguments and always returns the same settings from the environment,
# so caching it with @lru_cache() avoids re-reading the environment.
@lru_cache()
def get_settings() -> Settings:
    return Settings()
