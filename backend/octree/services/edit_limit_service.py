"""
Edit usage tracking and the edit-limit gate consulted before every accepted suggestion.

Free users get FREE_EDIT_LIMIT edits in total; pro users get PRO_MONTHLY_EDIT_LIMIT edits per
month, with the monthly counter reset every USAGE_RESET_DAYS.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Callable, Optional, Protocol

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from octree.core.config import settings
from octree.core.database import AsyncSessionLocal
from octree.models.usage import UserUsage
from octree.schemas.usage import UsageResponse


class EditLimitGate(Protocol):
    async def can_perform_edit(self) -> bool: ...


class EditLimitService:
    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        self.session_factory = session_factory or AsyncSessionLocal

    async def _get_or_create(self, db: AsyncSession, user_id: str) -> UserUsage:
        usage = await db.get(UserUsage, user_id)
        if usage is None:
            logger.info(f"Creating new usage record for user {user_id}")
            usage = UserUsage(
                user_id=user_id,
                edit_count=0,
                monthly_edit_count=0,
                monthly_reset_date=date.today() + timedelta(days=settings.USAGE_RESET_DAYS),
                is_pro=False,
            )
            db.add(usage)
            await db.flush()
        if date.today() >= usage.monthly_reset_date:
            usage.monthly_edit_count = 0
            usage.monthly_reset_date = date.today() + timedelta(days=settings.USAGE_RESET_DAYS)
        return usage

    @staticmethod
    def _allowed(usage: UserUsage) -> bool:
        if usage.is_pro:
            return usage.monthly_edit_count < settings.PRO_MONTHLY_EDIT_LIMIT
        return usage.edit_count < settings.FREE_EDIT_LIMIT

    async def can_perform_edit(self, user_id: str) -> bool:
        """Count one edit for the user if the limit allows it."""
        async with self.session_factory() as db:
            usage = await self._get_or_create(db, user_id)
            allowed = self._allowed(usage)
            if allowed:
                usage.edit_count += 1
                usage.monthly_edit_count += 1
            await db.commit()
        if not allowed:
            logger.info(f"Edit limit reached for user {user_id}")
        return allowed

    async def usage(self, user_id: str) -> UsageResponse:
        async with self.session_factory() as db:
            usage = await self._get_or_create(db, user_id)
            await db.commit()
            return UsageResponse(
                user_id=user_id,
                edit_count=usage.edit_count,
                monthly_edit_count=usage.monthly_edit_count,
                remaining_edits=max(0, settings.FREE_EDIT_LIMIT - usage.edit_count),
                remaining_monthly_edits=max(0, settings.PRO_MONTHLY_EDIT_LIMIT - usage.monthly_edit_count),
                is_pro=usage.is_pro,
                limit_reached=not self._allowed(usage),
                monthly_reset_date=usage.monthly_reset_date,
            )

    async def set_pro(self, user_id: str, is_pro: bool) -> None:
        async with self.session_factory() as db:
            usage = await self._get_or_create(db, user_id)
            usage.is_pro = is_pro
            await db.commit()

    def gate_for(self, user_id: str) -> "UserEditGate":
        return UserEditGate(self, user_id)


class UserEditGate:
    """Binds the usage tracker to one user, giving the argument-free gate the editor needs."""

    def __init__(self, service: EditLimitService, user_id: str):
        self.service = service
        self.user_id = user_id

    async def can_perform_edit(self) -> bool:
        return await self.service.can_perform_edit(self.user_id)


class StaticEditGate:
    """Gate with a fixed answer, or one computed by a callable; used for local sessions."""

    def __init__(self, allow: bool | Callable[[], bool] = True):
        self.allow = allow

    async def can_perform_edit(self) -> bool:
        return self.allow() if callable(self.allow) else bool(self.allow)


edit_limit_service = EditLimitService()
