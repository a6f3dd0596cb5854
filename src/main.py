from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.router import router
from src.config import settings
from src.core.exceptions import register_exception_handlers
from src.core.logging import configure_logging
from src.services.dispatcher import EditDispatcher
from src.services.providers.base import DEFAULT_PROVIDER_ORDER

configure_logging(settings.log_level, settings.debug)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    credentials = app.state.dispatcher.credentials
    logger.info(
        "app_starting",
        app_name=settings.app_name,
        configured_providers=[p.value for p in DEFAULT_PROVIDER_ORDER if credentials.is_configured(p.value)],
        default_provider=credentials.default_provider,
    )
    yield
    logger.info("app_stopping")


def create_app(dispatcher: EditDispatcher | None = None) -> FastAPI:
    app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)
    app.state.dispatcher = dispatcher or EditDispatcher.from_settings(settings)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("src.main:app", host=settings.host, port=settings.port, log_level=settings.log_level)
