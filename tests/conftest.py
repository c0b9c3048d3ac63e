"""Test config and shared fixtures."""
import pytest
from typing import AsyncGenerator, List
import httpx
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from main import app
from framework.config import Settings
from framework.repository.unit_of_work import UnitOfWork, UnitOfWorkFactory
from apps.banking.cache import TokenCache
from apps.banking.encryption import RsaEncryptionService
from sample_models import Item, Note


BANK_URL = "https://bank.test"

OAUTH_PAYLOAD = {
    "access_token": "cc-access-token",
    "token_type": "bearer",
    "expires_in": 3600,
    "refresh_token": "cc-refresh-token",
    "scope": "cards",
    "bankId": "69",
    "channel": "WEB",
    "authorities": ["ROLE_CLIENT"],
    "deposits": ["0100-1"],
    "jti": "jti-1",
}

LOGIN_PAYLOAD = {
    "status": "0",
    "referenceNumber": "ref-1",
    "transactionDate": "2026-10-19T10:00:00",
    "token": "login-token",
}

CARDS_PAYLOAD = {
    "status": 0,
    "referenceNumber": "7b2a3c2e-7f0e-4f57-9f0a-1b7f6f1c2d3e",
    "transactionDate": "2026-10-19T10:00:00+03:30",
    "cards": [
        {
            "cardStatus": "OK",
            "cardType": "DEBIT",
            "customerFirstName": "Sara",
            "customerLastName": "Ahmadi",
            "depositNumber": "0100-1",
            "expireDate": "2028-01-01T00:00:00+03:30",
            "issueDate": "2024-01-01T00:00:00+03:30",
            "pan": "6037991234567890",
        }
    ],
}


class FakeRedis:
    """Minimal async stand-in for the redis client calls TokenCache makes."""

    def __init__(self):
        self.store = {}
        self.expiry = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        self.expiry[key] = ex

    async def delete(self, key):
        self.expiry.pop(key, None)
        return 1 if self.store.pop(key, None) is not None else 0


@pytest.fixture
def test_settings() -> Settings:
    return Settings(AUTH_ADDRESS=BANK_URL, APP_KEY="key", APP_SECRET="secret", BANK_ID="69")


@pytest.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite so separate units of work see each other's commits."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def uow_factory(engine: AsyncEngine) -> UnitOfWorkFactory:
    session_factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return UnitOfWorkFactory(session_factory, engine)


@pytest.fixture
async def uow(uow_factory: UnitOfWorkFactory) -> AsyncGenerator[UnitOfWork, None]:
    async with uow_factory.scope() as uow:
        yield uow


@pytest.fixture
async def sample_items(uow_factory: UnitOfWorkFactory) -> List[Item]:
    """Items {1,"a"}, {2,"b"}, {3,"c"}."""
    async with uow_factory.scope() as uow:
        items = [Item(name="a"), Item(name="b"), Item(name="c")]
        await uow.get_repository(Item).add_range(items)
        await uow.save_changes()
        return items


@pytest.fixture
async def sample_notes(uow_factory: UnitOfWorkFactory) -> List[Note]:
    async with uow_factory.scope() as uow:
        notes = [Note(title="first"), Note(title="second")]
        await uow.get_repository(Note).add_range(notes)
        await uow.save_changes()
        return notes


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def token_cache(fake_redis: FakeRedis, test_settings: Settings) -> TokenCache:
    return TokenCache(fake_redis, test_settings)


@pytest.fixture(scope="session")
def rsa_private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def public_key_path(tmp_path, rsa_private_key) -> str:
    pem = rsa_private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    path = tmp_path / "bank_public.pem"
    path.write_bytes(pem)
    return str(path)


@pytest.fixture
def bank_calls() -> List[httpx.Request]:
    return []


@pytest.fixture
def bank_transport(bank_calls: List[httpx.Request]) -> httpx.MockTransport:
    """Partner bank double: answers the three endpoints, records every request."""
    def handler(request: httpx.Request) -> httpx.Response:
        bank_calls.append(request)
        path = request.url.path
        if path == "/oauth/token":
            payload = dict(OAUTH_PAYLOAD, mobileNumber=request.url.params.get("mobileNumber"))
            return httpx.Response(200, json=payload)
        if path == "/login/v1/mobileLogin":
            return httpx.Response(200, json=LOGIN_PAYLOAD)
        if path == "/private/card/v1/getCards":
            return httpx.Response(200, json=CARDS_PAYLOAD)
        return httpx.Response(404, json={"error": "not found"})

    return httpx.MockTransport(handler)


@pytest.fixture
async def bank_http(bank_transport: httpx.MockTransport) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=bank_transport) as http:
        yield http


@pytest.fixture
async def client(
    uow_factory: UnitOfWorkFactory,
    bank_transport: httpx.MockTransport,
    token_cache: TokenCache,
    public_key_path: str,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database, partner bank, cache and key overridden."""
    from apps.banking.api.router import (
        get_encryption_service,
        get_http_client,
        get_token_cache,
        get_uow,
    )

    async def _get_uow():
        async with uow_factory.scope() as uow:
            yield uow

    async def _get_http_client():
        async with httpx.AsyncClient(transport=bank_transport) as http:
            yield http

    app.dependency_overrides[get_uow] = _get_uow
    app.dependency_overrides[get_http_client] = _get_http_client
    app.dependency_overrides[get_token_cache] = lambda: token_cache
    app.dependency_overrides[get_encryption_service] = lambda: RsaEncryptionService.from_file(public_key_path)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
