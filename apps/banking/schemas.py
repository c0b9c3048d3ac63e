"""Wire schemas for the partner bank and for this gateway's API."""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from .models import UserToken


class PartnerModel(BaseModel):
    """Partner payloads use camelCase keys; unknown keys are ignored."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# --- partner bank responses ---

class OAuthTokenResponse(PartnerModel):
    access_token: str
    token_type: Optional[str] = "bearer"
    expires_in: Optional[int] = None
    refresh_token: Optional[str] = None
    scope: Optional[str] = None
    bank_id: Optional[str] = Field(default=None, alias="bankId")
    mobile_number: Optional[str] = Field(default=None, alias="mobileNumber")
    channel: Optional[str] = None
    authorities: List[str] = Field(default_factory=list)
    deposits: List[str] = Field(default_factory=list)
    jti: Optional[str] = None
    csrf_token: Optional[str] = Field(default=None, alias="csrfToken")


class LoginResponseDto(PartnerModel):
    status: Optional[str] = None
    reference_number: Optional[str] = Field(default=None, alias="referenceNumber")
    transaction_date: Optional[str] = Field(default=None, alias="transactionDate")
    token: Optional[str] = None


class CardDto(PartnerModel):
    card_status: Optional[str] = Field(default=None, alias="cardStatus")
    card_type: Optional[str] = Field(default=None, alias="cardType")
    card_type_response: Optional[str] = Field(default=None, alias="cardTypeResponse")
    customer_first_name: Optional[str] = Field(default=None, alias="customerFirstName")
    customer_last_name: Optional[str] = Field(default=None, alias="customerLastName")
    deposit_number: Optional[str] = Field(default=None, alias="depositNumber")
    expire_date: Optional[datetime] = Field(default=None, alias="expireDate")
    issue_date: Optional[datetime] = Field(default=None, alias="issueDate")
    pan: Optional[str] = None


class CardListDto(PartnerModel):
    status: Optional[int] = None
    reference_number: Optional[str] = Field(default=None, alias="referenceNumber")
    transaction_date: Optional[datetime] = Field(default=None, alias="transactionDate")
    cards: Optional[List[CardDto]] = None


# --- gateway API ---

class LoginSchema(BaseModel):
    username: str
    password: str


class CardsSchema(BaseModel):
    token: str


class TokenOut(BaseModel):
    """Token as returned to callers and kept in the cache."""
    id: Optional[int] = None
    access_token: str
    token_type: Optional[str] = None
    expires_at: datetime
    scope: Optional[str] = None
    bank_id: Optional[str] = None
    mobile_number: str
    channel: Optional[str] = None

    @classmethod
    def from_entity(cls, token: UserToken) -> "TokenOut":
        return cls(
            id=token.id,
            access_token=token.access_token,
            token_type=token.token_type,
            expires_at=token.expires_at,
            scope=token.scope,
            bank_id=token.bank_id,
            mobile_number=token.mobile_number,
            channel=token.channel,
        )
