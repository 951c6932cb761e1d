from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_CONTENT_TYPES = [
    # Audio
    "audio/mpeg",
    "audio/mp4",
    "audio/wav",
    "audio/x-wav",
    "audio/webm",
    "audio/ogg",
    "audio/x-m4a",
    # Video
    "video/mp4",
    "video/webm",
    "video/quicktime",
    "video/x-msvideo",
]


class RevAiConfig(BaseSettings):
    """Rev.ai speech-to-text configuration."""

    access_token: Optional[SecretStr] = None
    base_url: str = "https://api.rev.ai/speechtotext/v1"
    language: str = "fr"
    poll_interval_seconds: float = Field(default=7.0, ge=0.0)
    deadline_seconds: float = Field(default=900.0, ge=0.0)
    request_timeout_seconds: float = Field(default=60.0, gt=0.0)

    model_config = SettingsConfigDict(
        env_prefix="REV_AI_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class GeminiConfig(BaseSettings):
    """Google Gemini configuration."""

    api_keys: SecretStr = Field(
        default=SecretStr(""),
        description="Comma separated pool of API keys tried in order.",
    )
    model: str = "gemini-2.5-pro"
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    request_timeout_seconds: float = Field(default=300.0, gt=0.0)

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def key_pool(self) -> list[str]:
        """Return the configured API keys, skipping blanks."""
        raw = self.api_keys.get_secret_value()
        return [key.strip() for key in raw.split(",") if key.strip()]


class JobConfig(BaseSettings):
    """Lifetime of in-memory coaching jobs."""

    ttl_seconds: float = Field(default=24 * 60 * 60, gt=0.0)

    model_config = SettingsConfigDict(
        env_prefix="JOB_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class UploadConfig(BaseSettings):
    """Media upload limits."""

    directory: str = "uploads"
    max_bytes: int = Field(default=100 * 1024 * 1024, ge=1)
    allowed_content_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_CONTENT_TYPES)
    )

    model_config = SettingsConfigDict(
        env_prefix="UPLOAD_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class LibraryConfig(BaseSettings):
    """Location of the reference books offered to callers."""

    root: str = "books"

    model_config = SettingsConfigDict(
        env_prefix="LIBRARY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "Sales Coach Backend"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000
    log_file: str = "logs/app.log"
    jobs_log_file: str = "logs/jobs.log"

    # Rev.ai
    rev_ai: RevAiConfig = Field(default_factory=RevAiConfig)

    # Gemini
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)

    # Jobs
    jobs: JobConfig = Field(default_factory=JobConfig)

    # Uploads
    upload: UploadConfig = Field(default_factory=UploadConfig)

    # Reference books
    library: LibraryConfig = Field(default_factory=LibraryConfig)

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = False
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
