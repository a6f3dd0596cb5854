import httpx
import structlog
from pydantic import BaseModel, ValidationError

from src.core.exceptions import ProviderError
from src.services.image_payload import ImagePayload
from src.services.providers.base import ProviderId, raise_for_response, require_credential

logger = structlog.get_logger()

DEFAULT_PROMPT = "Photo with background removed"


class OpenAIImage(BaseModel):
    url: str | None = None
    b64_json: str | None = None


class OpenAIImagesResponse(BaseModel):
    data: list[OpenAIImage] = []

    def extract(self) -> ImagePayload:
        """``data[0].url`` when present, otherwise ``data[0].b64_json`` as a PNG data URL."""
        if not self.data:
            raise ProviderError(ProviderId.OPENAI.value, "OpenAI returned no image")
        first = self.data[0]
        if first.url:
            return ImagePayload(url=first.url)
        if first.b64_json:
            return ImagePayload.from_base64(first.b64_json, "image/png")
        raise ProviderError(ProviderId.OPENAI.value, "OpenAI returned no image")


class OpenAIProvider:
    """Prompt-only image generation; the source image is not sent."""

    provider_id = ProviderId.OPENAI

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com",
        model: str = "gpt-image-1",
        size: str = "1024x1024",
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.size = size
        self.timeout = timeout
        self._transport = transport

    async def invoke(self, image: ImagePayload, prompt: str | None = None) -> ImagePayload:
        api_key = require_credential(self.provider_id, self.api_key, "OPENAI_API_KEY")
        payload = {
            "model": self.model,
            "prompt": prompt or DEFAULT_PROMPT,
            "size": self.size,
        }
        headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(f"{self.base_url}/v1/images/generations", json=payload, headers=headers)

        body = raise_for_response(self.provider_id, response, "OpenAI request failed")
        if not isinstance(body, dict):
            raise ProviderError(self.provider_id.value, f"OpenAI returned a non-JSON response: {str(body)[:500]}")
        try:
            parsed = OpenAIImagesResponse.model_validate(body)
        except ValidationError as e:
            raise ProviderError(self.provider_id.value, f"Unexpected OpenAI response format: {e}") from e
        logger.info("openai_image_generated", model=self.model)
        return parsed.extract()
