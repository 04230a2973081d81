# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for CourseNotify.
Settings are loaded from environment variables with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from coursenotify.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.environment)
    'development'
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import AliasChoices, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Platform database configuration.

    The platform database holds users, groups, courses, course runs,
    activities, submissions and push subscriptions. CourseNotify only
    reads from it, except for deadline auto-submission.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        extra="ignore",
    )

    user: str = "coursenotify"
    password: SecretStr = SecretStr("coursenotify_password")
    host: str = "localhost"
    port: int = 5432
    database: str = "learning_platform"
    pool_size: int = 10
    max_overflow: int = 20

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class RedisSettings(BaseSettings):
    """Redis configuration for the Dramatiq broker.

    Attributes:
        host: Redis server host.
        port: Redis server port.
        password: Redis password.
        database: Redis database number.
    """

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        extra="ignore",
    )

    host: str = "localhost"
    port: int = 6379
    password: SecretStr = SecretStr("")
    database: int = 0

    @property
    def url(self) -> str:
        """Build the Redis connection URL."""
        pwd = self.password.get_secret_value()
        if pwd:
            return f"redis://:{pwd}@{self.host}:{self.port}/{self.database}"
        return f"redis://{self.host}:{self.port}/{self.database}"


class PushSettings(BaseSettings):
    """Push delivery configuration.

    Device registrations go through Firebase Cloud Messaging. Browser
    subscriptions (endpoint plus p256dh/auth keys) go through Web Push,
    signed with the VAPID key pair the browsers subscribed with.

    Attributes:
        credentials_path: Path to the Firebase service account JSON file.
        project_id: Firebase project ID.
        request_timeout: HTTP timeout for push requests in seconds.
        vapid_public_key: VAPID application server public key.
        vapid_private_key: VAPID private key signing Web Push requests.
        vapid_subject: VAPID contact, a mailto: or https: URL.
        web_push_ttl: Seconds a push service keeps an undelivered message.
    """

    model_config = SettingsConfigDict(
        env_prefix="FIREBASE_",
        extra="ignore",
    )

    credentials_path: str | None = None
    project_id: str | None = None
    request_timeout: float = 30.0
    vapid_public_key: str | None = Field(
        default=None, validation_alias=AliasChoices("vapid_public_key", "VAPID_PUBLIC_KEY")
    )
    vapid_private_key: SecretStr | None = Field(
        default=None, validation_alias=AliasChoices("vapid_private_key", "VAPID_PRIVATE_KEY")
    )
    vapid_subject: str | None = Field(
        default=None, validation_alias=AliasChoices("vapid_subject", "VAPID_SUBJECT")
    )
    web_push_ttl: int = Field(
        default=86400, validation_alias=AliasChoices("web_push_ttl", "WEB_PUSH_TTL")
    )

    @property
    def fcm_configured(self) -> bool:
        """Check whether FCM delivery can be attempted."""
        return bool(self.credentials_path and self.project_id)

    @property
    def web_push_configured(self) -> bool:
        """Check whether Web Push delivery can be attempted."""
        return bool(self.vapid_public_key and self.vapid_private_key and self.vapid_subject)

    @property
    def is_configured(self) -> bool:
        """Check whether any push transport is configured."""
        return self.fcm_configured or self.web_push_configured


class SMTPSettings(BaseSettings):
    """SMTP configuration for email delivery.

    Attributes:
        host: SMTP server hostname.
        port: SMTP server port.
        username: SMTP authentication username.
        password: SMTP authentication password.
        use_tls: Use STARTTLS.
        from_email: Sender email address.
        from_name: Sender display name.
    """

    model_config = SettingsConfigDict(
        env_prefix="SMTP_",
        extra="ignore",
    )

    host: str | None = None
    port: int = 587
    username: str | None = None
    password: SecretStr | None = None
    use_tls: bool = True
    from_email: str | None = None
    from_name: str = "CourseNotify"

    @property
    def is_configured(self) -> bool:
        """Check whether email delivery can be attempted."""
        return bool(self.host and self.username and self.password and self.from_email)


class NotificationSettings(BaseSettings):
    """Notification content and scheduling configuration.

    Attributes:
        display_timezone: IANA timezone deadlines are rendered in.
        app_name: Product name shown in emails.
        app_url: Link target of the email call-to-action button.
        support_email: Contact address shown in the email footer.
        student_reminder_lead_minutes: How long before a deadline students are reminded.
        manager_warning_lead_minutes: How long before a deadline managers are warned.
    """

    model_config = SettingsConfigDict(
        env_prefix="NOTIFY_",
        extra="ignore",
    )

    display_timezone: str = "Asia/Kolkata"
    app_name: str = "CourseNotify"
    app_url: str = "http://localhost:3000"
    support_email: str = "support@example.com"
    student_reminder_lead_minutes: int = 120
    manager_warning_lead_minutes: int = 30


class WorkerSettings(BaseSettings):
    """Background worker configuration.

    Attributes:
        processes: Number of worker processes.
        threads: Number of threads per process.
        max_retries: Retries for a failed notification task.
    """

    model_config = SettingsConfigDict(
        env_prefix="WORKER_",
        extra="ignore",
    )

    processes: int = 2
    threads: int = 4
    max_retries: int = 3


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        database: Platform database settings.
        redis: Redis settings.
        push: Push delivery settings.
        smtp: Email delivery settings.
        notifications: Notification content and scheduling settings.
        worker: Background worker settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    # Subsettings - loaded with their own env prefixes
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    push: PushSettings = Field(default_factory=PushSettings)
    smtp: SMTPSettings = Field(default_factory=SMTPSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    worker: WorkerSettings = Field(default_factory=WorkerSettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            if self.database.password.get_secret_value() == "coursenotify_password":
                raise ValueError(
                    "Database password must be changed from default in production. "
                    "Set DB_PASSWORD environment variable."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
