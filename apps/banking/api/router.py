from functools import lru_cache
from typing import AsyncIterator, Optional
import httpx
from fastapi import APIRouter, Depends, Query
from framework.config import settings
from framework.database.manager import DatabaseManager
from framework.repository.unit_of_work import UnitOfWork
from framework.response import ResponseModel
from ..cache import TokenCache
from ..clients import AuthClient, CardClient, OAuthClient
from ..encryption import EncryptionService, RsaEncryptionService
from ..schemas import CardsSchema, LoginSchema, TokenOut
from ..service import AcquireTokenUseCase, GetCardsUseCase, TokenService

router = APIRouter()


async def get_uow() -> AsyncIterator[UnitOfWork]:
    """Dependency: one UnitOfWork per request, closed when the request ends."""
    manager = DatabaseManager.get_instance()
    async with manager.sql.uow_factory.scope() as uow:
        yield uow


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """Dependency: HTTP client for partner bank calls."""
    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
        yield client


async def get_token_cache() -> TokenCache:
    manager = DatabaseManager.get_instance()
    return TokenCache(await manager.redis.get_client())


@lru_cache(maxsize=1)
def get_encryption_service() -> EncryptionService:
    """Dependency: RSA encryption with the key at PUBLIC_KEY_PATH (loaded once)."""
    return RsaEncryptionService.from_file(settings.PUBLIC_KEY_PATH)


def get_token_service(
    uow: UnitOfWork = Depends(get_uow),
    http: httpx.AsyncClient = Depends(get_http_client),
    cache: TokenCache = Depends(get_token_cache),
) -> TokenService:
    return TokenService(uow, OAuthClient(http), cache)


def get_acquire_token_use_case(
    http: httpx.AsyncClient = Depends(get_http_client),
    encryption: EncryptionService = Depends(get_encryption_service),
) -> AcquireTokenUseCase:
    return AcquireTokenUseCase(encryption, AuthClient(http))


def get_cards_use_case(http: httpx.AsyncClient = Depends(get_http_client)) -> GetCardsUseCase:
    return GetCardsUseCase(CardClient(http))


@router.post("/oauth/token/client_credentials")
async def client_credentials(
    mobile_number: str = Query(..., min_length=4, max_length=20),
    state: str = Query("true"),
    service: TokenService = Depends(get_token_service),
):
    """Client-credentials token for a mobile number (cached until it expires)."""
    token = await service.get_client_credentials_token(mobile_number, state)
    return ResponseModel.success(data=token.model_dump(mode="json"))


@router.post("/login")
async def login(
    data: LoginSchema,
    use_case: AcquireTokenUseCase = Depends(get_acquire_token_use_case),
):
    """Mobile login with RSA-encrypted credentials."""
    token = await use_case.execute(data.username, data.password)
    return ResponseModel.success(data={"token": token})


@router.post("/cards")
async def cards(
    data: CardsSchema,
    use_case: GetCardsUseCase = Depends(get_cards_use_case),
):
    """Cards of the user behind a login token."""
    card_list = await use_case.execute(data.token)
    return ResponseModel.success(data=[card.model_dump(mode="json") for card in card_list])


@router.get("/tokens")
async def list_tokens(
    page_number: int = Query(1),
    page_size: int = Query(10),
    mobile_number: Optional[str] = Query(None),
    service: TokenService = Depends(get_token_service),
):
    """Stored tokens, newest first."""
    result = await service.list_tokens(page_number, page_size, mobile_number)
    items = [TokenOut.from_entity(token).model_dump(mode="json") for token in result.items]
    return ResponseModel.paged(result, items=items)


@router.delete("/tokens/{token_id}")
async def revoke_token(
    token_id: int,
    service: TokenService = Depends(get_token_service),
):
    """Revoke (soft-delete) a stored token."""
    await service.revoke_token(token_id)
    return ResponseModel.success(data={"id": token_id, "revoked": True})
