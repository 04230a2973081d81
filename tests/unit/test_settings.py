# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for application settings."""

import pytest
from pydantic import SecretStr, ValidationError

from coursenotify.core.config import (
    DatabaseSettings,
    PushSettings,
    RedisSettings,
    Settings,
    SMTPSettings,
    clear_settings_cache,
    get_settings,
)


class TestSubSettings:
    """Tests for the per-concern settings."""

    def test_database_url(self) -> None:
        """Test that the asyncpg URL is built from components."""
        settings = DatabaseSettings(
            user="notify",
            password=SecretStr("secret"),
            host="db",
            port=5433,
            database="lms",
        )

        assert settings.url == "postgresql+asyncpg://notify:secret@db:5433/lms"

    def test_redis_url_with_and_without_password(self) -> None:
        """Test that the Redis URL includes the password only when set."""
        assert RedisSettings(host="cache").url == "redis://cache:6379/0"
        assert (
            RedisSettings(host="cache", password=SecretStr("pw"), database=2).url
            == "redis://:pw@cache:6379/2"
        )

    def test_push_configured(self) -> None:
        """Test that push needs both credentials and a project."""
        assert not PushSettings().is_configured
        assert not PushSettings(project_id="proj").is_configured
        assert PushSettings(credentials_path="/tmp/sa.json", project_id="proj").is_configured

    def test_vapid_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that unprefixed VAPID_ variables configure Web Push."""
        monkeypatch.setenv("VAPID_PUBLIC_KEY", "BPublicKey")
        monkeypatch.setenv("VAPID_PRIVATE_KEY", "private-key")
        monkeypatch.setenv("VAPID_SUBJECT", "mailto:ops@example.com")

        settings = PushSettings()

        assert settings.web_push_configured
        assert not settings.fcm_configured
        assert settings.is_configured
        assert settings.vapid_private_key.get_secret_value() == "private-key"

    def test_smtp_configured(self) -> None:
        """Test that SMTP needs host, credentials and sender."""
        assert not SMTPSettings(host="smtp.example.com").is_configured
        assert SMTPSettings(
            host="smtp.example.com",
            username="mailer",
            password=SecretStr("pw"),
            from_email="noreply@example.com",
        ).is_configured

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that NOTIFY_ variables configure notification settings."""
        monkeypatch.setenv("NOTIFY_STUDENT_REMINDER_LEAD_MINUTES", "90")
        monkeypatch.setenv("NOTIFY_DISPLAY_TIMEZONE", "UTC")

        settings = Settings()

        assert settings.notifications.student_reminder_lead_minutes == 90
        assert settings.notifications.display_timezone == "UTC"


class TestSettings:
    """Tests for the aggregate settings."""

    def test_defaults(self) -> None:
        """Test the default lead times and timezone."""
        settings = Settings()

        assert settings.notifications.student_reminder_lead_minutes == 120
        assert settings.notifications.manager_warning_lead_minutes == 30
        assert settings.notifications.display_timezone == "Asia/Kolkata"
        assert settings.worker.max_retries == 3

    def test_production_rejects_default_password(self) -> None:
        """Test that production refuses the default database password."""
        with pytest.raises(ValidationError):
            Settings(environment="production")

    def test_get_settings_is_cached(self) -> None:
        """Test that get_settings returns one instance until cleared."""
        clear_settings_cache()
        first = get_settings()

        assert get_settings() is first

        clear_settings_cache()
        assert get_settings() is not first
