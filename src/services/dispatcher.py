from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

import structlog

from src.config import ProviderCredentials, Settings
from src.core.exceptions import (
    AllProvidersFailedError,
    InvalidImageError,
    LocalFallbackDisabledError,
    LocalTransformError,
    NoProviderAvailableError,
)
from src.services.classifier import Intent, classify
from src.services.image_payload import ImagePayload
from src.services.local_transforms import LocalTransformEngine
from src.services.providers.base import DEFAULT_PROVIDER_ORDER, ImageEditProvider, ProviderId, describe_exception
from src.services.providers.registry import build_providers

logger = structlog.get_logger()

LOCAL_SOURCE = "local"


class LocalEngine(Protocol):
    async def apply(self, image: ImagePayload, intent: Intent) -> ImagePayload | None: ...


@dataclass(frozen=True)
class EditRequest:
    image: ImagePayload | None
    prompt: str = ""
    explicit_provider: ProviderId | None = None


@dataclass(frozen=True)
class EditResult:
    result_image: ImagePayload
    source: str


@dataclass(frozen=True)
class ProviderFailure:
    provider: ProviderId
    message: str


@dataclass
class FailureLog:
    entries: list[ProviderFailure] = field(default_factory=list)
    local: list[str] = field(default_factory=list)

    def record(self, provider: ProviderId, message: str) -> None:
        self.entries.append(ProviderFailure(provider, message))

    def as_pairs(self) -> list[tuple[str, str]]:
        return [(entry.provider.value, entry.message) for entry in self.entries]


def build_provider_order(explicit: ProviderId | None, credentials: ProviderCredentials) -> list[ProviderId]:
    """Explicit provider first (when configured), then the default order, without duplicates."""
    order: list[ProviderId] = []
    if explicit is not None and credentials.is_configured(explicit.value):
        order.append(explicit)
    for provider in DEFAULT_PROVIDER_ORDER:
        if provider not in order and credentials.is_configured(provider.value):
            order.append(provider)
    return order


class EditDispatcher:
    def __init__(
        self,
        credentials: ProviderCredentials,
        providers: Mapping[ProviderId, ImageEditProvider],
        local_engine: LocalEngine | None = None,
        allow_remote_after_local_failure: bool = True,
    ) -> None:
        self.credentials = credentials
        self.providers = dict(providers)
        self.local_engine = local_engine or LocalTransformEngine()
        self.allow_remote_after_local_failure = allow_remote_after_local_failure

    @classmethod
    def from_settings(cls, settings: Settings) -> "EditDispatcher":
        credentials = settings.credentials()
        return cls(
            credentials=credentials,
            providers=build_providers(settings, credentials),
            allow_remote_after_local_failure=settings.allow_remote_after_local_failure,
        )

    def provider_order(self, explicit: ProviderId | None) -> list[ProviderId]:
        if explicit is None:
            explicit = ProviderId.parse(self.credentials.default_provider)
        return [p for p in build_provider_order(explicit, self.credentials) if p in self.providers]

    async def _try_local(self, image: ImagePayload, intent: Intent, failures: FailureLog) -> EditResult | None:
        try:
            result = await self.local_engine.apply(image, intent)
        except LocalTransformError as e:
            logger.warning("local_transform_failed", intent=intent.value, error=e.message)
            failures.local.append(e.message)
            return None
        if result is None:
            return None
        return EditResult(result_image=result, source=LOCAL_SOURCE)

    async def resolve(self, request: EditRequest) -> EditResult:
        if request.image is None or request.image.is_empty:
            raise InvalidImageError("Missing image")

        prompt = (request.prompt or "").strip()
        intent = classify(prompt)
        failures = FailureLog()

        if intent is not Intent.NONE:
            local = await self._try_local(request.image, intent, failures)
            if local is not None:
                logger.info("edit_resolved", source=LOCAL_SOURCE, intent=intent.value)
                return local
            if (
                intent is Intent.BACKGROUND_REMOVAL
                and failures.local
                and not self.allow_remote_after_local_failure
            ):
                raise LocalFallbackDisabledError([], failures.local)

        order = self.provider_order(request.explicit_provider)
        if not order:
            raise NoProviderAvailableError([], failures.local)

        for provider_id in order:
            adapter = self.providers[provider_id]
            try:
                result_image = await adapter.invoke(request.image, prompt or None)
            except Exception as e:
                message = describe_exception(e)
                logger.warning("provider_failed", provider=provider_id.value, error=message)
                failures.record(provider_id, message)
                continue
            logger.info("edit_resolved", source=provider_id.value, attempts=len(failures.entries) + 1)
            return EditResult(result_image=result_image, source=provider_id.value)

        raise AllProvidersFailedError(failures.as_pairs(), failures.local)
