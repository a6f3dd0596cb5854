import json
from enum import Enum
from typing import Any, Protocol

import httpx

from src.core.exceptions import ProviderError
from src.services.image_payload import ImagePayload


class ProviderId(str, Enum):
    OPENAI = "openai"
    GEMINI = "gemini"
    FAL = "fal"
    REPLICATE = "replicate"

    @classmethod
    def parse(cls, value: str | None) -> "ProviderId | None":
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


# Order in which configured providers are tried after any explicit choice.
DEFAULT_PROVIDER_ORDER = (ProviderId.OPENAI, ProviderId.GEMINI, ProviderId.FAL, ProviderId.REPLICATE)


class ImageEditProvider(Protocol):
    provider_id: ProviderId

    async def invoke(self, image: ImagePayload, prompt: str | None = None) -> ImagePayload: ...


def require_credential(provider: ProviderId, credential: str, env_name: str) -> str:
    if not credential or not credential.strip():
        raise ProviderError(provider.value, f"{env_name} is missing.")
    return credential


def parse_json_body(response: httpx.Response) -> Any:
    """Decode a JSON body, returning the raw text when it is empty or not JSON."""
    raw = response.text
    if not raw:
        return raw
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def error_detail(payload: Any) -> str | None:
    if isinstance(payload, str):
        return payload.strip() or None
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str) and error:
        return error
    detail = payload.get("detail")
    if detail:
        return detail if isinstance(detail, str) else json.dumps(detail)
    if error:
        return json.dumps(error)
    return None


def raise_for_response(provider: ProviderId, response: httpx.Response, fallback: str) -> Any:
    payload = parse_json_body(response)
    if response.is_error:
        message = error_detail(payload) or f"{fallback} (HTTP {response.status_code})"
        raise ProviderError(provider.value, message)
    return payload


def describe_exception(exc: BaseException) -> str:
    if isinstance(exc, ProviderError):
        return exc.message
    message = str(exc) or type(exc).__name__
    response = getattr(exc, "response", None)
    if isinstance(response, httpx.Response):
        try:
            body = response.text
        except httpx.ResponseNotRead:
            body = ""
        if body:
            return f"{message} | extra: {body[:500]}"
    detail = getattr(exc, "detail", None)
    if detail and str(detail) not in message:
        return f"{message} | extra: {detail}"
    return message
