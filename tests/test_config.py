import dataclasses

import pytest

from src.config import ProviderCredentials, Settings, settings


def _settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


class TestConfigDefaults:
    def test_app_name(self) -> None:
        assert settings.app_name == "image-edit-dispatcher"

    def test_debug_default(self) -> None:
        assert _settings().debug is False

    def test_port_default(self) -> None:
        assert _settings().port == 8000

    def test_host_default(self) -> None:
        assert _settings().host == "0.0.0.0"

    def test_log_level_default(self) -> None:
        assert _settings().log_level == "info"

    def test_cors_origins_default(self) -> None:
        assert _settings().cors_origins == ["*"]

    def test_max_fetch_bytes(self) -> None:
        assert _settings().max_fetch_bytes == 10485760

    def test_fetch_timeout(self) -> None:
        assert _settings().fetch_timeout == 15.0

    def test_local_failure_falls_back_by_default(self) -> None:
        assert _settings().allow_remote_after_local_failure is True


class TestCredentials:
    def test_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("FAL_KEY", "fal-123")
        monkeypatch.setenv("IMAGE_API_PROVIDER", "  FAL ")
        credentials = _settings().credentials()
        assert credentials.fal_key == "fal-123"
        assert credentials.default_provider == "fal"
        assert credentials.is_configured("fal")

    def test_unconfigured(self) -> None:
        credentials = ProviderCredentials(openai_api_key="   ")
        assert not credentials.is_configured("openai")
        assert not credentials.is_configured("gemini")
        assert not credentials.is_configured("unknown")

    def test_blank_default_provider(self) -> None:
        assert _settings(image_api_provider="").credentials().default_provider is None

    def test_credentials_are_immutable(self) -> None:
        credentials = ProviderCredentials(openai_api_key="sk")
        with pytest.raises(dataclasses.FrozenInstanceError):
            credentials.openai_api_key = "other"  # type: ignore[misc]
