from collections.abc import Callable
from typing import Any

import fal_client
import structlog
from pydantic import BaseModel, ValidationError

from src.core.exceptions import ProviderError
from src.services.image_payload import ImagePayload
from src.services.providers.base import ProviderId, require_credential

logger = structlog.get_logger()


class FalImage(BaseModel):
    url: str | None = None


class FalImageHolder(BaseModel):
    image: FalImage | None = None


class FalResult(BaseModel):
    """The response shapes fal models are known to return.

    ``extract`` reads ``data.image.url``, then ``image.url``, then ``output.url``.
    """

    data: FalImageHolder | None = None
    image: FalImage | None = None
    output: FalImage | None = None

    def extract(self) -> ImagePayload:
        candidates = (
            self.data.image if self.data else None,
            self.image,
            self.output,
        )
        for candidate in candidates:
            if candidate is not None and candidate.url:
                return ImagePayload(url=candidate.url)
        raise ProviderError(ProviderId.FAL.value, "fal.ai did not return an image URL")


class FalProvider:
    provider_id = ProviderId.FAL

    def __init__(
        self,
        api_key: str,
        model: str = "fal-ai/transparent-background",
        timeout: float = 120.0,
        client_factory: Callable[[str], Any] | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client_factory = client_factory or (lambda key: fal_client.AsyncClient(key=key))

    async def _resolve_image_url(self, client: Any, image: ImagePayload) -> str:
        if image.is_remote:
            return image.as_reference()
        data, mime_type = await image.load_bytes()
        url = await client.upload(data, mime_type)
        if isinstance(url, str) and url:
            logger.info("fal_image_uploaded", size=len(data))
            return url
        if isinstance(url, dict) and url.get("url"):
            return url["url"]
        raise ProviderError(self.provider_id.value, "Failed to upload image to fal storage")

    async def invoke(self, image: ImagePayload, prompt: str | None = None) -> ImagePayload:
        api_key = require_credential(self.provider_id, self.api_key, "FAL_KEY")
        client = self._client_factory(api_key)

        image_url = await self._resolve_image_url(client, image)
        arguments: dict[str, Any] = {"image_url": image_url}
        if prompt:
            arguments["prompt"] = prompt
        result = await client.run(self.model, arguments=arguments, timeout=self.timeout)

        if not isinstance(result, dict):
            raise ProviderError(self.provider_id.value, f"Unexpected fal.ai response: {str(result)[:500]}")
        try:
            parsed = FalResult.model_validate(result)
        except ValidationError as e:
            raise ProviderError(self.provider_id.value, f"Unexpected fal.ai response format: {e}") from e
        logger.info("fal_image_processed", model=self.model)
        return parsed.extract()
