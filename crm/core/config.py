"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"
    VERSION: str = "0.1.0"

    # Database
    DATABASE_URL: str = "sqlite:///./crm.db"

    # Session cookie (opaque random token, stored server-side)
    SESSION_COOKIE_NAME: str = "vecta_session"
    SESSION_DURATION_DAYS: int = 30
    SESSION_TOKEN_BYTES: int = 32

    # Invitations
    INVITE_EXPIRES_DAYS: int = 7

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:3001"

    # Rate Limiting (requests per minute)
    RATE_LIMIT_AUTH: int = 5

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    LOG_LEVEL: str = "INFO"

    # Check the fine-grained action table on the server, not only route role lists
    ENFORCE_ACTION_PERMISSIONS: bool = True

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def cookie_secure(self) -> bool:
        """Secure cookies only outside dev."""
        return self.ENV != "dev"

    @property
    def session_max_age_seconds(self) -> int:
        return self.SESSION_DURATION_DAYS * 24 * 60 * 60

    @property
    def expose_error_details(self) -> bool:
        """Internal error messages are only returned to clients in dev."""
        return self.ENV == "dev"


settings = Settings()
