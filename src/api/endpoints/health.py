from fastapi import APIRouter, Request

from src.schemas.edit import HealthResponse
from src.services.providers.base import DEFAULT_PROVIDER_ORDER

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    credentials = request.app.state.dispatcher.credentials
    return HealthResponse(
        status="ok",
        providers={p.value: credentials.is_configured(p.value) for p in DEFAULT_PROVIDER_ORDER},
        default_provider=credentials.default_provider,
    )
