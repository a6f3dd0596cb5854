import asyncio
from collections.abc import Awaitable
from typing import TypeVar

import structlog
from fastapi import APIRouter, Depends, Request

from src.core.exceptions import AppError
from src.schemas.edit import EditRequestBody, EditResponse, ErrorResponse
from src.services.dispatcher import EditDispatcher, EditRequest
from src.services.image_payload import ImagePayload
from src.services.providers.base import ProviderId

logger = structlog.get_logger()

router = APIRouter()

T = TypeVar("T")

_DISCONNECT_POLL_INTERVAL = 0.5


def get_dispatcher(request: Request) -> EditDispatcher:
    return request.app.state.dispatcher


async def _run_until_disconnect(request: Request, work: Awaitable[T]) -> T:
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=_DISCONNECT_POLL_INTERVAL)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("edit_abandoned", path=request.url.path)
                task.cancel()
                raise AppError(status_code=499, detail="Client disconnected")
    finally:
        if not task.done():
            task.cancel()


@router.post(
    "/edit",
    response_model=EditResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def edit_image(
    request: Request,
    body: EditRequestBody,
    dispatcher: EditDispatcher = Depends(get_dispatcher),
) -> EditResponse:
    image = ImagePayload.parse(body.image)

    explicit = ProviderId.parse(body.provider)
    if body.provider and explicit is None:
        logger.warning("unknown_provider_ignored", provider=body.provider)

    edit_request = EditRequest(image=image, prompt=body.prompt or "", explicit_provider=explicit)
    result = await _run_until_disconnect(request, dispatcher.resolve(edit_request))
    return EditResponse(result=result.result_image.as_reference(), provider=result.source)
