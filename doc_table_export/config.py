from pathlib import Path
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

SERVICE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Configuration for the table export service."""

    # Service metadata
    SERVICE_NAME: str = "DocumentAI Table Export Agent"
    SERVICE_VERSION: str = "1.0.0"
    APP_HOST: str = Field(
        default="0.0.0.0",
        validation_alias=AliasChoices("HOST", "APP_HOST"),
    )
    APP_PORT: int = Field(
        default=5000,
        validation_alias=AliasChoices("PORT", "APP_PORT"),
    )
    APP_ENV: str = "development"
    DEBUG: bool = Field(
        default=False,
        validation_alias=AliasChoices("DEBUG", "APP_DEBUG"),
    )

    # Gemini
    GEMINI_API_KEY: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY"),
    )
    GEMINI_MODEL: str = "gemini-1.5-flash"
    GEMINI_RESPONSE_MIME_TYPE: Optional[str] = "application/json"

    # Storage
    UPLOAD_DIR: Path = Field(
        default=Path("uploads"),
        validation_alias=AliasChoices("UPLOAD_DIR", "UPLOAD_ROOT"),
    )
    PUBLIC_DIR: Path = Field(
        default=Path("public"),
        validation_alias=AliasChoices("PUBLIC_DIR", "OUTPUT_DIR"),
    )
    PUBLIC_URL_PREFIX: str = "/public"
    MAX_FILE_SIZE_MB: int = 25

    # Retention
    RETENTION_SECONDS: int = 3600
    SWEEP_INTERVAL_SECONDS: int = 600
    SWEEPER_ENABLED: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Path = Path("logs")

    # CORS
    CORS_ORIGINS: str = "*"
    CORS_ALLOW_CREDENTIALS: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",
    )

    @property
    def cors_origins_list(self) -> List[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def upload_dir_path(self) -> Path:
        return self._resolve(self.UPLOAD_DIR)

    @property
    def public_dir_path(self) -> Path:
        return self._resolve(self.PUBLIC_DIR)

    @property
    def log_dir_path(self) -> Path:
        return self._resolve(self.LOG_DIR)

    @property
    def public_url_prefix(self) -> str:
        return "/" + self.PUBLIC_URL_PREFIX.strip("/")

    @staticmethod
    def _resolve(path: Path) -> Path:
        path = Path(path)
        if path.is_absolute():
            return path
        return (SERVICE_DIR / path).resolve()


settings = Settings()
