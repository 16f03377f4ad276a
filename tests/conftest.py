"""pytest fixtures for the image generation backend tests.

Provides:
- utc_timezone: Autouse fixture enforcing UTC timezone
- engine: Function-scoped in-memory SQLite engine with the schema created
- session: Function-scoped database session
- uow_factory: Function-scoped UnitOfWork factory
- gemini: Scriptable fake Gemini endpoint (httpx.MockTransport)
- job_handler / test_client: Handler and ASGI client wired to the above
"""

import json
import os
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from imagegen.core.database import create_schema, create_session_factory
from imagegen.services.image_generation.gemini_client import GeminiClient
from imagegen.services.image_generation.job_handler import ImageJobHandler
from imagegen.uow import create_uow_factory

TEST_API_KEY = "test-gemini-key"


@pytest.fixture(scope="session", autouse=True)
def utc_timezone():
    """Enforce UTC timezone for all tests."""
    os.environ["TZ"] = "UTC"
    yield


@pytest_asyncio.fixture(scope="function")
async def engine():
    """Provide an in-memory SQLite engine shared across sessions of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture(scope="function")
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide function-scoped database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def uow_factory(session_factory):
    """Provide function-scoped UnitOfWork factory."""
    return create_uow_factory(session_factory)


class FakeGemini:
    """Scriptable stand-in for the generateContent endpoint.

    Set `status_code` and `body` (dict or str) before a request, or `error`
    to an httpx exception to simulate a transport failure. Received requests
    are kept in `requests`.
    """

    def __init__(self):
        self.status_code = 200
        self.body: dict | str = image_response("Zm9v", "image/jpeg")
        self.error: Exception | None = None
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        content = self.body if isinstance(self.body, str) else json.dumps(self.body)
        return httpx.Response(self.status_code, text=content)

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


def image_response(data: str, mime_type: str) -> dict:
    """Build a generateContent response with one inline image part."""
    return {
        "candidates": [
            {
                "content": {
                    "parts": [{"inlineData": {"mimeType": mime_type, "data": data}}],
                    "role": "model",
                }
            }
        ]
    }


@pytest.fixture
def gemini():
    return FakeGemini()


@pytest_asyncio.fixture
async def gemini_client(gemini):
    """Provide a GeminiClient whose HTTP traffic goes to the fake endpoint."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(gemini.handler)) as http_client:
        yield GeminiClient(api_key=TEST_API_KEY, http_client=http_client)


@pytest.fixture
def job_handler(uow_factory, gemini_client):
    return ImageJobHandler(uow_factory, gemini_client)


@pytest_asyncio.fixture
async def test_client(session_factory, job_handler):
    """Provide AsyncClient for testing API endpoints with database access."""
    from imagegen.app import app

    # Inject state directly; the lifespan is not run by ASGITransport
    app.state.session_factory = session_factory
    app.state.job_handler = job_handler

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
