import os
import sys

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from src.api.payments.cache import PaymentsCache
from src.api.payments.repository import PaymentRepository
from src.api.payments.routes import get_payment_webhook_service
from src.api.payments.service import PaymentWebhookService
from src.api.payments.signature import WebhookSignatureVerifier
from src.database.base import Base
from src.shared.cache_invalidation import CacheInvalidationManager
from src.shared.core_cache import CoreCacheClient
from tests.helpers import WEBHOOK_API_KEY, WEBHOOK_SECRET, PaymentStore


@pytest_asyncio.fixture
async def session_factory():
    """In-memory SQLite shared by every session through a single static connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    await engine.dispose()


@pytest.fixture
def store(session_factory) -> PaymentStore:
    return PaymentStore(session_factory)


@pytest.fixture
def repository(session_factory) -> PaymentRepository:
    return PaymentRepository(session_factory)


@pytest.fixture
def verifier() -> WebhookSignatureVerifier:
    return WebhookSignatureVerifier(
        secret=WEBHOOK_SECRET, api_key=WEBHOOK_API_KEY, production=True
    )


@pytest.fixture
def payments_cache() -> PaymentsCache:
    return PaymentsCache(CacheInvalidationManager(CoreCacheClient()))


@pytest_asyncio.fixture
async def client(repository, verifier, payments_cache):
    """httpx.AsyncClient against the app with the webhook service wired to the test database."""
    from main import app

    app.dependency_overrides[get_payment_webhook_service] = lambda: PaymentWebhookService(
        repository, verifier=verifier, cache=payments_cache
    )
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test", timeout=20
    ) as client:
        yield client
    app.dependency_overrides.clear()
