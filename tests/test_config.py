import logging

from uhi_app.config import Settings, configure_logging


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env({})

        assert settings.api_base_url == "http://localhost:8000"
        assert settings.request_timeout == 20.0
        assert settings.debounce_seconds == 0.5
        assert settings.log_level == "INFO"

    def test_overrides(self):
        settings = Settings.from_env(
            {
                "UHI_API_BASE_URL": "https://uhi.example.org/",
                "UHI_REQUEST_TIMEOUT": "7.5",
                "UHI_DEBOUNCE_SECONDS": "0.25",
                "UHI_LOG_LEVEL": "debug",
            }
        )

        assert settings.api_base_url == "https://uhi.example.org"
        assert settings.request_timeout == 7.5
        assert settings.debounce_seconds == 0.25
        assert settings.log_level == "DEBUG"

    def test_invalid_numbers_fall_back(self, caplog):
        with caplog.at_level(logging.WARNING):
            settings = Settings.from_env({"UHI_REQUEST_TIMEOUT": "soon", "UHI_DEBOUNCE_SECONDS": "-1"})

        assert settings.request_timeout == 20.0
        assert settings.debounce_seconds == 0.5
        assert "UHI_REQUEST_TIMEOUT" in caplog.text

    def test_configure_logging_accepts_unknown_level(self):
        configure_logging("chatty")
