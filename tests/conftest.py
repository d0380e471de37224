import pytest_asyncio
from httpx import AsyncClient

from onward.app import App
from onward.testing import create_test_client


@pytest_asyncio.fixture
async def app() -> App:
    return App()


@pytest_asyncio.fixture
async def client(app: App) -> AsyncClient:
    async with create_test_client(app) as c:
        yield c
