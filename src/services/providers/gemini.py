import httpx
import structlog
from pydantic import BaseModel, ValidationError

from src.core.exceptions import ProviderError
from src.services.image_payload import ImagePayload
from src.services.providers.base import ProviderId, raise_for_response, require_credential

logger = structlog.get_logger()

DEFAULT_PROMPT = "Create an image with the background removed"


class GeminiImage(BaseModel):
    data: str | None = None
    mime_type: str | None = None


class GeminiImagesResponse(BaseModel):
    images: list[GeminiImage] = []

    def extract(self) -> ImagePayload:
        if not self.images or not self.images[0].data:
            raise ProviderError(ProviderId.GEMINI.value, "Gemini returned no image data.")
        first = self.images[0]
        return ImagePayload.from_base64(first.data, first.mime_type or "image/png")


class GeminiProvider:
    provider_id = ProviderId.GEMINI

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com",
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def invoke(self, image: ImagePayload, prompt: str | None = None) -> ImagePayload:
        api_key = require_credential(self.provider_id, self.api_key, "GEMINI_API_KEY")
        url = f"{self.base_url}/v1beta/models/imagegeneration:generate"
        payload = {"prompt": {"text": prompt or DEFAULT_PROMPT}}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(url, params={"key": api_key}, json=payload)

        body = raise_for_response(self.provider_id, response, "Gemini request failed")
        if not isinstance(body, dict):
            extra = f" Response: {body}" if body else ""
            raise ProviderError(self.provider_id.value, f"Gemini returned no image data.{extra}")
        try:
            parsed = GeminiImagesResponse.model_validate(body)
        except ValidationError as e:
            raise ProviderError(self.provider_id.value, f"Unexpected Gemini response format: {e}") from e
        logger.info("gemini_image_generated")
        return parsed.extract()
