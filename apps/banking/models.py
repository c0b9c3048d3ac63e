from sqlmodel import Field, JSON, Column
from typing import Optional, List
from datetime import datetime, timezone
from framework.repository.base import SoftDeleteMixin


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserToken(SoftDeleteMixin, table=True):
    """OAuth token issued by the partner bank for a mobile number (revoked = soft-deleted)."""
    __tablename__ = "user_tokens"

    id: Optional[int] = Field(default=None, primary_key=True)
    access_token: str = Field(max_length=2048, description="Bearer token for partner APIs")
    token_type: Optional[str] = Field(default="bearer", max_length=32)
    expires_at: datetime = Field(description="Absolute expiry computed from expires_in")
    refresh_token: Optional[str] = Field(default=None, max_length=2048)
    scope: Optional[str] = Field(default=None, max_length=512)
    bank_id: Optional[str] = Field(default=None, max_length=16)
    mobile_number: str = Field(index=True, max_length=20)
    channel: Optional[str] = Field(default=None, max_length=32)
    creation_date: datetime = Field(default_factory=_utcnow)
    authorities: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    deposits: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    jti: Optional[str] = Field(default=None, max_length=128, description="JWT id of the token")
    csrf_token: Optional[str] = Field(default=None, max_length=256)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or _utcnow()
        expires_at = self.expires_at
        # SQLite hands datetimes back naive
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= now
