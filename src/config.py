from dataclasses import dataclass

from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class ProviderCredentials:
    openai_api_key: str = ""
    gemini_api_key: str = ""
    fal_key: str = ""
    replicate_api_token: str = ""
    default_provider: str | None = None

    def for_provider(self, provider: str) -> str:
        return {
            "openai": self.openai_api_key,
            "gemini": self.gemini_api_key,
            "fal": self.fal_key,
            "replicate": self.replicate_api_token,
        }.get(provider, "")

    def is_configured(self, provider: str) -> bool:
        return bool(self.for_provider(provider).strip())


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "image-edit-dispatcher"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "info"
    cors_origins: list[str] = ["*"]

    openai_api_key: str = ""
    gemini_api_key: str = ""
    fal_key: str = ""
    replicate_api_token: str = ""
    image_api_provider: str | None = None

    openai_base_url: str = "https://api.openai.com"
    openai_model: str = "gpt-image-1"
    openai_size: str = "1024x1024"
    gemini_base_url: str = "https://generativelanguage.googleapis.com"
    fal_model: str = "fal-ai/transparent-background"
    replicate_model: str = "cjwbw/rembg:fb8af171cfa1616ddcf1242c093f9c46bcada5ad4cf6f2fbe8b81b330ec5c003"
    provider_timeout: float = 120.0

    fetch_timeout: float = 15.0
    max_fetch_bytes: int = 10 * 1024 * 1024

    rembg_model: str = "u2net"
    allow_remote_after_local_failure: bool = True

    def credentials(self) -> ProviderCredentials:
        default = (self.image_api_provider or "").strip().lower() or None
        return ProviderCredentials(
            openai_api_key=self.openai_api_key,
            gemini_api_key=self.gemini_api_key,
            fal_key=self.fal_key,
            replicate_api_token=self.replicate_api_token,
            default_provider=default,
        )


settings = Settings()
