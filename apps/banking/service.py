from datetime import datetime, timedelta, timezone
from typing import List, Optional
from framework.config import Settings, settings as default_settings
from framework.exceptions.handler import BusinessException, EntityNotFoundError
from framework.logging.logger import get_logger
from framework.repository.pagination import PagedResult
from framework.repository.unit_of_work import UnitOfWork
from .cache import TokenCache
from .clients import AuthClient, CardClient, OAuthClient
from .encryption import EncryptionService
from .models import UserToken
from .repository import UserTokenRepository
from .schemas import CardDto, OAuthTokenResponse, TokenOut

logger = get_logger("banking_service")


def _mask(mobile_number: str) -> str:
    return f"{mobile_number[:4]}***{mobile_number[-2:]}" if len(mobile_number) > 6 else "***"


class AcquireTokenUseCase:
    """Mobile login: encrypt the credentials and exchange them for a partner token."""

    def __init__(self, encryption: EncryptionService, auth: AuthClient):
        self.encryption = encryption
        self.auth = auth

    async def execute(self, username: str, password: str) -> str:
        credentials = f"{username}|{password}|"
        encrypted = self.encryption.encrypt(credentials)
        login = await self.auth.get_token(encrypted)
        if not login.token:
            raise BusinessException("Login rejected by bank", code=401, detail={"status": login.status})
        return login.token


class GetCardsUseCase:
    def __init__(self, cards: CardClient):
        self.cards = cards

    async def execute(self, token: str) -> List[CardDto]:
        card_list = await self.cards.get_cards(token)
        return card_list.cards or []


class TokenService:
    """Client-credentials tokens: served from cache, then database, then the bank."""

    def __init__(
        self,
        uow: UnitOfWork,
        oauth: OAuthClient,
        cache: TokenCache,
        settings: Optional[Settings] = None,
    ):
        self.uow = uow
        self.oauth = oauth
        self.cache = cache
        self.settings = settings or default_settings

    def _repository(self) -> UserTokenRepository:
        return self.uow.get_repository(UserToken, UserTokenRepository)

    async def get_client_credentials_token(self, mobile_number: str, state: str = "true") -> TokenOut:
        cached = await self.cache.get(mobile_number)
        if cached is not None:
            logger.debug(f"Token cache hit for {_mask(mobile_number)}")
            return cached

        repo = self._repository()
        stored = await repo.get_active_for_mobile(mobile_number)
        if stored is not None:
            token = TokenOut.from_entity(stored)
            await self.cache.set(token)
            return token

        issued = await self.oauth.request_client_credentials(
            mobile_number, self.settings.BANK_ID_VALUE, state
        )
        entity = await repo.add_and_save(self._to_entity(issued, mobile_number))
        logger.info(f"Stored new token {entity.id} for {_mask(mobile_number)}")

        token = TokenOut.from_entity(entity)
        await self.cache.set(token)
        return token

    def _to_entity(self, issued: OAuthTokenResponse, mobile_number: str) -> UserToken:
        now = datetime.now(timezone.utc)
        lifetime = issued.expires_in if issued.expires_in is not None else self.settings.TOKEN_CACHE_DEFAULT_TTL
        return UserToken(
            access_token=issued.access_token,
            token_type=issued.token_type,
            expires_at=now + timedelta(seconds=lifetime),
            refresh_token=issued.refresh_token,
            scope=issued.scope,
            bank_id=issued.bank_id or str(self.settings.BANK_ID_VALUE),
            mobile_number=issued.mobile_number or mobile_number,
            channel=issued.channel,
            creation_date=now,
            authorities=issued.authorities,
            deposits=issued.deposits,
            jti=issued.jti,
            csrf_token=issued.csrf_token,
        )

    async def list_tokens(
        self, page_number: int, page_size: int, mobile_number: Optional[str] = None
    ) -> PagedResult:
        return await self._repository().list_tokens(page_number, page_size, mobile_number)

    async def revoke_token(self, token_id: int) -> None:
        repo = self._repository()
        token = await repo.get_by_id(token_id)
        if token is None:
            raise EntityNotFoundError(f"Token {token_id} not found")
        await repo.delete(token)
        await self.uow.save_changes()
        await self.cache.invalidate(token.mobile_number)
        logger.info(f"Revoked token {token_id}")
