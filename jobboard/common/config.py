"""
Job Board Configuration Module

Centralized configuration management with Pydantic validation.
All environment variables are validated at startup to catch misconfigurations early.
"""

import logging
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Job board configuration with validation.

    All settings can be overridden via environment variables
    (MONGODB_URI -> mongodb_uri, SMTP_HOST -> smtp_host, ...).
    """

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False, extra="ignore")

    # === Environment ===
    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )

    # === MongoDB ===
    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    mongo_db_name: str = Field(
        default="jobboard",
        description="MongoDB database name"
    )

    # === Web ===
    flask_secret_key: Optional[str] = Field(
        default=None,
        min_length=16,
        description="Secret used to sign session cookies (min 16 chars)"
    )
    jobs_page_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Default number of jobs per listing page"
    )

    # === Verification codes ===
    verification_code_ttl_minutes: int = Field(
        default=10,
        ge=1,
        le=1440,
        description="Lifetime of registration verification codes"
    )
    login_code_ttl_minutes: int = Field(
        default=5,
        ge=1,
        le=60,
        description="Lifetime of login verification codes"
    )

    # === E-mail (optional) ===
    smtp_host: Optional[str] = Field(default=None, description="SMTP server host")
    smtp_port: int = Field(default=587, ge=1, le=65535, description="SMTP server port")
    smtp_username: Optional[str] = Field(default=None, description="SMTP login")
    smtp_password: Optional[str] = Field(default=None, description="SMTP password")
    mail_sender: str = Field(
        default="no-reply@jobboard.local",
        description="From address for outgoing mail"
    )

    # === Logging ===
    log_level: str = Field(default="INFO", description="Root log level")
    log_format: str = Field(default="simple", description="Log format: simple or json")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is a known value."""
        allowed = {"development", "staging", "production"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of: {', '.join(sorted(allowed))}")
        return v_lower

    @field_validator("mongodb_uri")
    @classmethod
    def validate_url_format(cls, v: str) -> str:
        """Basic URL format validation."""
        if not v.startswith(("mongodb://", "mongodb+srv://")):
            raise ValueError(f"Invalid MongoDB URI format: {v}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v not in ("simple", "json"):
            raise ValueError("log_format must be 'simple' or 'json'")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def email_enabled(self) -> bool:
        """SMTP delivery is only attempted when a host is configured."""
        return bool(self.smtp_host)

    def validate_production_config(self) -> List[str]:
        """
        Validate configuration is suitable for production.

        Returns list of warning/error messages.
        """
        issues = []

        if self.is_production:
            if not self.flask_secret_key:
                issues.append("CRITICAL: FLASK_SECRET_KEY required in production")
            if "localhost" in self.mongodb_uri:
                issues.append("WARNING: Using localhost MongoDB in production")
            if not self.email_enabled:
                issues.append("WARNING: SMTP_HOST not configured, verification codes will only be logged")

        return issues


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once and cached. Call get_settings.cache_clear()
    in tests after changing the environment.
    """
    return Settings()


def validate_config_on_startup() -> None:
    """
    Validate configuration at application startup.

    Raises ValueError with details if config is invalid.
    Logs warnings for non-critical issues.
    """
    try:
        settings = get_settings()
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")

    for issue in settings.validate_production_config():
        if issue.startswith("CRITICAL"):
            raise ValueError(issue)
        logger.warning(issue)

    logger.info(f"Configuration loaded: environment={settings.environment}")
    logger.info(f"  mongo_db_name={settings.mongo_db_name}")
    logger.info(f"  mongodb_uri={'*****' if 'localhost' not in settings.mongodb_uri else settings.mongodb_uri}")
    logger.info(f"  email_enabled={settings.email_enabled}")
