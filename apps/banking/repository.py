"""Banking module repository implementations."""

from datetime import datetime, timezone
from typing import Optional
from framework.repository.base import Repository
from framework.repository.pagination import PagedResult
from .models import UserToken


class UserTokenRepository(Repository[UserToken]):
    """Stored partner tokens."""

    def __init__(self, session):
        super().__init__(session, UserToken)

    async def get_active_for_mobile(self, mobile_number: str, now: Optional[datetime] = None) -> Optional[UserToken]:
        """Most recently issued, not yet expired, not revoked token for a mobile number."""
        now = now or datetime.now(timezone.utc)
        return await self.get_last_entity(
            lambda m: (m.mobile_number == mobile_number) & (m.expires_at > now)
        )

    async def list_tokens(
        self,
        page_number: int,
        page_size: int,
        mobile_number: Optional[str] = None,
    ) -> PagedResult:
        """Newest tokens first, optionally for one mobile number."""
        predicate = None
        if mobile_number:
            predicate = UserToken.mobile_number == mobile_number
        return await self.get_paged(
            page_number,
            page_size,
            ascending=False,
            predicate=predicate,
            order_by=UserToken.creation_date,
        )
