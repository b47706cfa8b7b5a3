"""
Tests for configuration, logging and the error helpers.
"""

import logging

import pytest
from pydantic import ValidationError

from jobboard.common.config import Settings, get_settings, validate_config_on_startup
from jobboard.common.error_handling import Conflict, JobBoardError, NotFound, service_operation
from jobboard.common.logger import AppLogger, get_logger, request_logger


class TestSettings:
    """Tests for Settings validation."""

    def test_defaults(self):
        settings = Settings()

        assert settings.environment == "development"
        assert settings.mongo_db_name == "jobboard"
        assert settings.verification_code_ttl_minutes == 10
        assert settings.login_code_ttl_minutes == 5
        assert settings.email_enabled is False

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
        monkeypatch.setenv("JOBS_PAGE_SIZE", "25")

        settings = Settings()

        assert settings.email_enabled is True
        assert settings.jobs_page_size == 25

    @pytest.mark.parametrize("overrides", [
        {"environment": "qa"},
        {"mongodb_uri": "postgres://db"},
        {"log_format": "xml"},
        {"jobs_page_size": 0},
        {"flask_secret_key": "short"},
    ])
    def test_invalid_values_rejected(self, overrides):
        with pytest.raises(ValidationError):
            Settings(**overrides)

    def test_production_issues(self):
        settings = Settings(environment="production")

        issues = settings.validate_production_config()

        assert any(issue.startswith("CRITICAL") for issue in issues)
        assert any("SMTP_HOST" in issue for issue in issues)

    def test_startup_fails_without_secret_in_production(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        get_settings.cache_clear()

        try:
            with pytest.raises(ValueError, match="FLASK_SECRET_KEY"):
                validate_config_on_startup()
        finally:
            get_settings.cache_clear()


class TestErrors:
    def test_status_codes_and_envelope(self):
        assert NotFound("Job not found").status_code == 404
        assert Conflict("dup").status_code == 409
        assert JobBoardError("x", status_code=418).status_code == 418
        assert NotFound("Job not found").to_dict() == {"success": False, "error": "Job not found"}

    def test_service_operation_returns_fallback(self, caplog):
        @service_operation("flaky step", fallback_value="fallback")
        def flaky():
            raise RuntimeError("boom")

        with caplog.at_level(logging.WARNING):
            assert flaky() == "fallback"
        assert "[flaky step] Failed: boom" in caplog.text

    def test_service_operation_reraise(self):
        @service_operation("strict step", reraise=True)
        def strict():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            strict()


class TestAppLogger:
    def test_prefixes_request_and_account(self, caplog):
        logger = get_logger("jobboard.test", request_id="abcdef123456", account_id="acct-1")

        with caplog.at_level(logging.INFO, logger="jobboard.test"):
            logger.info("hello")

        assert isinstance(logger, AppLogger)
        assert "[req:abcdef12] [acct:acct-1] hello" in caplog.text

    def test_debug_mode_lowers_level(self):
        logger = get_logger("jobboard.test.debug", debug_mode=True)

        assert logger.level == logging.DEBUG

    def test_ids_attached_to_record(self, caplog):
        logger = get_logger("jobboard.test", request_id="abcdef123456")

        with caplog.at_level(logging.INFO, logger="jobboard.test"):
            logger.info("hello", extra={"job_id": "j1"})

        record = caplog.records[-1]
        assert record.request_id == "abcdef123456"
        assert record.account_id == "-"
        assert record.job_id == "j1"

    def test_without_context_no_prefix(self, caplog):
        with caplog.at_level(logging.INFO, logger="jobboard.test"):
            get_logger("jobboard.test").info("plain")

        assert caplog.records[-1].getMessage() == "plain"

    def test_request_logger_uses_context(self, caplog, jobseeker_ctx):
        with caplog.at_level(logging.INFO, logger="jobboard.test"):
            request_logger("jobboard.test", jobseeker_ctx).info("saved")

        assert caplog.records[-1].getMessage() == f"[req:req-seek] [acct:{jobseeker_ctx.account_id}] saved"
