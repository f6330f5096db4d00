"""
Tavara.care Coordination Service - Application Settings

Settings management using Pydantic Settings.
Validates environment variables and provides type-safe configuration.
"""

from typing import List, Optional, Union
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Credentials for PayPal, Resend and WhatsApp must come from the environment.
    """

    # Application Metadata
    APP_VERSION: str = Field(default="1.0.0", description="Application version")
    ENVIRONMENT: str = Field(default="development", description="Environment name")
    DEBUG: bool = Field(default=False, description="Debug mode")

    # Server Configuration
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8000, description="Server port")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: str = Field(default="json", description="Log format: json or text")

    # CORS
    CORS_ORIGINS: Union[str, List[str]] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    # Security
    API_KEY_ENABLED: bool = Field(default=False, description="Enable API key authentication")
    API_KEY: Optional[str] = Field(default=None, description="API key for authentication")

    # Database
    DATABASE_URL: str = Field(
        default="sqlite:///./tavara.db",
        description="SQLAlchemy database connection string"
    )

    # Monitoring
    ENABLE_METRICS: bool = Field(default=True, description="Enable Prometheus metrics")
    ENABLE_AUDIT_LOGGING: bool = Field(default=True, description="Enable audit logging")
    AUDIT_LOG_DIR: str = Field(default="logs", description="Directory for JSONL audit files")

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = Field(
        default=60,
        description="Public endpoint rate limit per minute per client IP"
    )

    # Matching
    MATCH_THRESHOLD: int = Field(
        default=60,
        ge=0,
        le=100,
        description="Minimum overall score for an assignment created on availability change"
    )
    AUTO_ASSIGNMENT_LIMIT: int = Field(
        default=3,
        ge=1,
        description="Number of caregivers kept by automatic assignment"
    )
    AUTO_ASSIGNMENT_CANDIDATE_POOL: int = Field(
        default=5,
        ge=1,
        description="Number of available caregivers scored by automatic assignment"
    )

    # Care operations
    MEDICATION_CONFLICT_WINDOW_HOURS: int = Field(
        default=2,
        ge=0,
        description="Window in hours for duplicate medication administration detection"
    )
    DEFAULT_BASE_RATE: float = Field(default=25.0, ge=0.0, description="Fallback hourly pay rate")
    COVERAGE_REQUEST_TTL_HOURS: int = Field(
        default=24,
        ge=1,
        description="Hours before an unanswered time-off request expires"
    )
    SHIFT_REMINDER_LEAD_HOURS: int = Field(
        default=24,
        ge=1,
        description="How far ahead shift reminders are sent"
    )

    # Visits & payments
    VISIT_FEE_TTD: float = Field(default=300.00, description="In-person visit fee")
    TRIAL_FEE_TTD: float = Field(default=320.00, description="Trial day fee")
    PAYMENT_CURRENCY: str = Field(default="TTD", description="Payment currency code")
    PAYPAL_CLIENT_ID: Optional[str] = Field(default=None, description="PayPal REST client id")
    PAYPAL_CLIENT_SECRET: Optional[str] = Field(default=None, description="PayPal REST secret")
    PAYPAL_API_URL: str = Field(
        default="https://api-m.sandbox.paypal.com",
        description="PayPal REST API base URL"
    )
    PAYMENT_POLL_INTERVAL_SECONDS: float = Field(default=3.0, gt=0, description="Payment poll interval")
    PAYMENT_POLL_TIMEOUT_SECONDS: float = Field(default=300.0, gt=0, description="Payment poll timeout")
    FRONTEND_URL: str = Field(default="http://localhost:3000", description="Web app origin for payment redirects")

    # Email (Resend)
    RESEND_API_KEY: Optional[str] = Field(default=None, description="Resend API key")
    EMAIL_FROM: str = Field(default="Tavara Care <noreply@tavara.care>", description="Sender address")
    ADMIN_EMAIL: str = Field(default="admin@tavara.care", description="Inbox for leads and feedback")

    # WhatsApp Business
    WHATSAPP_ACCESS_TOKEN: Optional[str] = Field(default=None, description="WhatsApp Cloud API token")
    WHATSAPP_PHONE_NUMBER_ID: Optional[str] = Field(default=None, description="WhatsApp sender phone id")
    WHATSAPP_API_URL: str = Field(default="https://graph.facebook.com", description="Graph API base URL")
    WHATSAPP_API_VERSION: str = Field(default="v18.0", description="Graph API version")
    VERIFICATION_CODE_TTL_MINUTES: int = Field(default=10, ge=1, description="Phone code lifetime")
    VERIFICATION_MAX_ATTEMPTS: int = Field(default=5, ge=1, description="Wrong codes allowed")

    # Outbound HTTP
    HTTP_TIMEOUT_SECONDS: float = Field(default=15.0, gt=0, description="Timeout for outbound calls")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures settings are loaded once and reused across the application.
    """
    return Settings()
