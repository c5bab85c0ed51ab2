import pytest
from pydantic import ValidationError

from doccompare.config.settings import Settings


class TestSettingsDefaults:
    def test_default_app_env(self) -> None:
        s = Settings()
        assert s.app_env == "dev"

    def test_default_db_port(self) -> None:
        s = Settings()
        assert s.db_port == 5432

    def test_default_db_create_access(self) -> None:
        s = Settings()
        assert s.db_create_access is False

    def test_default_max_job_attempts(self) -> None:
        s = Settings()
        assert s.max_job_attempts == 3

    def test_default_job_poll_interval(self) -> None:
        s = Settings()
        assert s.job_poll_interval_seconds == 5

    def test_default_queue_retry_delay(self) -> None:
        s = Settings()
        assert s.queue_retry_delay_seconds == 60

    def test_default_pdf_engine(self) -> None:
        s = Settings()
        assert s.pdf_engine == "pdfplumber"

    def test_default_comparison_provider(self) -> None:
        s = Settings()
        assert s.comparison_provider == "openai"

    def test_default_openai_timeout(self) -> None:
        s = Settings()
        assert s.openai_timeout_seconds == 30


class TestSettingsFromEnv:
    def test_loads_app_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_ENV", "production")
        s = Settings()
        assert s.app_env == "production"

    def test_loads_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        s = Settings()
        assert s.log_level == "DEBUG"

    def test_loads_db_host(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_HOST", "db.example.com")
        s = Settings()
        assert s.db_host == "db.example.com"

    def test_loads_db_create_access(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_CREATE_ACCESS", "true")
        s = Settings()
        assert s.db_create_access is True

    def test_loads_comparison_provider(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("COMPARISON_PROVIDER", "similarity")
        s = Settings()
        assert s.comparison_provider == "similarity"


class TestSettingsValidation:
    def test_invalid_db_port_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DB_PORT", "not_a_number")
        with pytest.raises(ValidationError):
            Settings()

    def test_invalid_max_attempts_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAX_JOB_ATTEMPTS", "abc")
        with pytest.raises(ValidationError):
            Settings()
