from src.config import ProviderCredentials, Settings
from src.services.providers.base import ImageEditProvider, ProviderId
from src.services.providers.fal import FalProvider
from src.services.providers.gemini import GeminiProvider
from src.services.providers.openai import OpenAIProvider
from src.services.providers.replicate import ReplicateProvider


def build_providers(settings: Settings, credentials: ProviderCredentials) -> dict[ProviderId, ImageEditProvider]:
    return {
        ProviderId.OPENAI: OpenAIProvider(
            api_key=credentials.openai_api_key,
            base_url=settings.openai_base_url,
            model=settings.openai_model,
            size=settings.openai_size,
            timeout=settings.provider_timeout,
        ),
        ProviderId.GEMINI: GeminiProvider(
            api_key=credentials.gemini_api_key,
            base_url=settings.gemini_base_url,
            timeout=settings.provider_timeout,
        ),
        ProviderId.FAL: FalProvider(
            api_key=credentials.fal_key,
            model=settings.fal_model,
            timeout=settings.provider_timeout,
        ),
        ProviderId.REPLICATE: ReplicateProvider(
            api_token=credentials.replicate_api_token,
            model=settings.replicate_model,
            timeout=settings.provider_timeout,
        ),
    }
