from collections.abc import AsyncIterator, Callable

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from src.config import ProviderCredentials
from src.main import create_app
from src.services.dispatcher import EditDispatcher
from tests.fakes import FakeLocalEngine, fake_providers


@pytest.fixture
def all_credentials() -> ProviderCredentials:
    return ProviderCredentials(
        openai_api_key="sk-test",
        gemini_api_key="gm-test",
        fal_key="fal-test",
        replicate_api_token="r8-test",
    )


@pytest.fixture
def make_client() -> Callable[[EditDispatcher], AsyncClient]:
    def _make(dispatcher: EditDispatcher) -> AsyncClient:
        app: FastAPI = create_app(dispatcher)
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        return AsyncClient(transport=transport, base_url="http://test")

    return _make


@pytest.fixture
async def client(make_client, all_credentials: ProviderCredentials) -> AsyncIterator[AsyncClient]:
    dispatcher = EditDispatcher(all_credentials, fake_providers(), local_engine=FakeLocalEngine())
    async with make_client(dispatcher) as ac:
        yield ac
