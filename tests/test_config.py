"""Tests for environment-driven settings."""

from nomina_engine.config import Settings


class TestSettings:
    """Settings.from_env."""

    def test_defaults(self, monkeypatch):
        for key in ("ENGINE_VERSION", "HOST", "PORT", "DEBUG", "LOG_LEVEL"):
            monkeypatch.delenv(key, raising=False)
        monkeypatch.setattr("nomina_engine.config.load_dotenv", lambda: False)

        settings = Settings.from_env()

        assert settings.port == 8000
        assert settings.debug is False
        assert settings.log_level == "INFO"

    def test_overrides(self, monkeypatch):
        monkeypatch.setattr("nomina_engine.config.load_dotenv", lambda: False)
        monkeypatch.setenv("PORT", "9001")
        monkeypatch.setenv("DEBUG", "True")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("ENGINE_VERSION", "2026.1")

        settings = Settings.from_env()

        assert settings.port == 9001
        assert settings.debug is True
        assert settings.log_level == "DEBUG"
        assert settings.engine_version == "2026.1"
