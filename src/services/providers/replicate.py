from collections.abc import Callable
from typing import Any

import replicate
import structlog

from src.core.exceptions import ProviderError
from src.services.image_payload import ImagePayload
from src.services.providers.base import ProviderId, require_credential

logger = structlog.get_logger()


def extract_output(output: Any) -> ImagePayload:
    """First element of a list output, else the scalar output.

    Outputs are either URL strings or file objects exposing ``url``.
    """
    first = output[0] if isinstance(output, (list, tuple)) and output else output
    if isinstance(first, (list, tuple)):
        first = None
    url = first if isinstance(first, str) else getattr(first, "url", None)
    if not url:
        raise ProviderError(ProviderId.REPLICATE.value, "Replicate did not return a result")
    return ImagePayload.parse(str(url))


class ReplicateProvider:
    provider_id = ProviderId.REPLICATE

    def __init__(
        self,
        api_token: str,
        model: str = "cjwbw/rembg:fb8af171cfa1616ddcf1242c093f9c46bcada5ad4cf6f2fbe8b81b330ec5c003",
        timeout: float = 120.0,
        client_factory: Callable[[str], Any] | None = None,
    ) -> None:
        self.api_token = api_token
        self.model = model
        self.timeout = timeout
        self._client_factory = client_factory or (lambda token: replicate.Client(api_token=token, timeout=timeout))

    async def invoke(self, image: ImagePayload, prompt: str | None = None) -> ImagePayload:
        api_token = require_credential(self.provider_id, self.api_token, "REPLICATE_API_TOKEN")
        client = self._client_factory(api_token)
        model_input: dict[str, Any] = {"image": image.as_reference()}
        if prompt:
            model_input["prompt"] = prompt
        output = await client.async_run(self.model, input=model_input)
        logger.info("replicate_image_processed", model=self.model)
        return extract_output(output)
