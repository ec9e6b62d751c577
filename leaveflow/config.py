from typing import Literal, Self

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "dev-only-insecure-secret-change-me-0123456789"
MIN_JWT_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "LeaveFlow"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    database_url: str = "postgresql+asyncpg://leaveflow:leaveflow@db:5432/leaveflow"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    app_base_url: str = "http://localhost:8000"
    frontend_url: str = "http://localhost:5173"

    # Tokens
    jwt_secret: str = DEV_JWT_SECRET
    jwt_issuer: str = "leaveflow"
    jwt_audience: str = "leaveflow-clients"
    jwt_algorithm: str = "HS256"
    session_token_ttl_minutes: int = 120
    decision_token_ttl_minutes: int = 720

    # Leave rules
    reason_min_length: int = 10
    email_decision_confidence_threshold: int = 70

    # Classifier (OpenAI-compatible chat completions, DeepSeek by default)
    deepseek_api_key: str | None = None
    deepseek_base_url: str = "https://api.deepseek.com"
    deepseek_model: str = "deepseek-chat"
    ai_kill_switch: bool = False
    classifier_timeout_seconds: float = 20.0

    # Gmail
    gmail_client_id: str | None = None
    gmail_client_secret: str | None = None
    gmail_redirect_uri: str = "http://localhost:8000/gmail/oauth/callback"
    service_mailbox: str = "leave-desk@example.com"
    mail_sender_name: str = "LeaveFlow"
    gmail_timeout_seconds: float = 15.0
    oauth_state_ttl_minutes: int = 10
    email_poll_query: str = "subject:leave"
    # "memory" keeps mail in-process (development); "gmail" uses the REST API.
    mail_backend: Literal["gmail", "memory"] = "gmail"

    @model_validator(mode="after")
    def _require_real_jwt_secret(self) -> Self:
        """Outside development the signing secret must be set and long enough."""
        if self.environment == "development":
            return self
        if self.jwt_secret == DEV_JWT_SECRET or len(self.jwt_secret) < MIN_JWT_SECRET_LENGTH:
            msg = f"JWT_SECRET must be set to at least {MIN_JWT_SECRET_LENGTH} characters in {self.environment}"
            raise ValueError(msg)
        return self


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
