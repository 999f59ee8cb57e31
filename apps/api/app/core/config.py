"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./post_call.db"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Voice agent webhook (ElevenLabs post-call events)
    ELEVENLABS_WEBHOOK_SECRET: str = ""
    WEBHOOK_TOLERANCE_SECONDS: int = 30 * 60
    WEBHOOK_MAX_PAYLOAD_BYTES: int = 5_000_000  # transcripts can be large

    # Resend (transactional email)
    RESEND_API_KEY: str = ""
    FROM_EMAIL: str = ""
    DOCTOR_EMAIL: str = ""
    RESEND_TIMEOUT_SECONDS: float = 20.0

    # Gemini video generation
    GEMINI_API_KEY: str = ""
    VIDEO_MODEL: str = "veo-3.1-generate-preview"
    VIDEO_ASPECT_RATIO: str = "16:9"
    VIDEO_POLL_INTERVAL_SECONDS: float = 10.0
    VIDEO_MAX_POLL_ATTEMPTS: int = 60  # ~10 minutes at the default interval

    # Generated video rehosting (S3-compatible, optional)
    VIDEO_S3_BUCKET: str = ""
    VIDEO_PUBLIC_BASE_URL: str = ""
    S3_REGION: str = ""
    S3_ENDPOINT_URL: str = ""
    S3_URL_STYLE: str = ""
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def video_generation_configured(self) -> bool:
        return bool(self.GEMINI_API_KEY)

    @property
    def video_rehost_configured(self) -> bool:
        return bool(self.VIDEO_S3_BUCKET and self.VIDEO_PUBLIC_BASE_URL)


settings = Settings()
