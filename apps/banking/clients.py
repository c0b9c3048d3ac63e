"""
HTTP clients for the partner bank.

Each client wraps a shared httpx.AsyncClient; non-2xx responses raise
httpx.HTTPStatusError and are left to the global exception handler.
"""

from typing import Optional
import httpx
from framework.config import Settings, settings as default_settings
from framework.logging.logger import get_logger
from .schemas import CardListDto, LoginResponseDto, OAuthTokenResponse

logger = get_logger("bank_clients")

JSON_HEADERS = {"Accept": "application/json"}


class PartnerClient:
    def __init__(self, http: httpx.AsyncClient, settings: Optional[Settings] = None):
        self._http = http
        self._settings = settings or default_settings
        self._base_url = self._settings.AUTH_ADDRESS.rstrip("/")

    def _basic_auth(self) -> httpx.BasicAuth:
        return httpx.BasicAuth(self._settings.APP_KEY, self._settings.APP_SECRET)


class OAuthClient(PartnerClient):
    """Client-credentials grant against the partner's OAuth server."""

    async def request_client_credentials(
        self, mobile_number: str, bank_id: int, state: str = "true"
    ) -> OAuthTokenResponse:
        response = await self._http.post(
            f"{self._base_url}/oauth/token",
            params={
                "grant_type": "client_credentials",
                "mobileNumber": mobile_number,
                "bankId": bank_id,
                "state": state,
            },
            headers=JSON_HEADERS,
            auth=self._basic_auth(),
        )
        response.raise_for_status()
        logger.info(f"Client-credentials token issued for bank {bank_id}")
        return OAuthTokenResponse.model_validate(response.json())


class AuthClient(PartnerClient):
    """Mobile login with RSA-encrypted credentials."""

    async def get_token(self, encrypted_credentials: str) -> LoginResponseDto:
        payload = {
            "acceptorCode": self._settings.ACCEPTOR_CODE,
            "clientAddress": self._settings.CLIENT_ADDRESS,
            "encryptedCredentials": encrypted_credentials,
        }
        response = await self._http.post(
            f"{self._base_url}/login/v1/mobileLogin",
            json=payload,
            headers=JSON_HEADERS,
            auth=self._basic_auth(),
        )
        response.raise_for_status()
        return LoginResponseDto.model_validate(response.json())


class CardClient(PartnerClient):
    """Card listing for an authorized user token."""

    async def get_cards(self, token: str, offset: int = 0) -> CardListDto:
        payload = {
            "acceptorCode": self._settings.ACCEPTOR_CODE,
            "clientAddress": self._settings.CLIENT_ADDRESS,
            "channel": self._settings.CARD_CHANNEL,
            "authorizedUserInfo": token,
            "cardStatus": "OK",
            "length": self._settings.CARD_PAGE_LENGTH,
            "offset": offset,
        }
        response = await self._http.post(
            f"{self._base_url}/private/card/v1/getCards",
            json=payload,
            headers=JSON_HEADERS,
        )
        response.raise_for_status()
        return CardListDto.model_validate(response.json())
