"""
Draft Store

Keyed persistence for onboarding sessions. Pure CRUD over an open
AsyncSession; transactions and business rules belong to the callers.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hotel_onboarding.database.models import OnboardingSession, SessionStatus


class DraftStore:
    async def get(
        self,
        db: AsyncSession,
        session_id: str,
        for_update: bool = False,
    ) -> Optional[OnboardingSession]:
        return await db.get(OnboardingSession, session_id, with_for_update=for_update)

    async def find_active(
        self,
        db: AsyncSession,
        hotel_id: str,
        user_id: str,
        for_update: bool = False,
    ) -> Optional[OnboardingSession]:
        """The ACTIVE session of a (hotel, user) pair, expired or not"""
        query = select(OnboardingSession).where(
            OnboardingSession.enhanced_hotel_id == hotel_id,
            OnboardingSession.user_id == user_id,
            OnboardingSession.status == SessionStatus.ACTIVE,
        )
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        return result.scalars().first()

    async def find_live_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        now: datetime,
    ) -> Optional[OnboardingSession]:
        """Most recently touched live session of a user"""
        result = await db.execute(
            select(OnboardingSession)
            .where(
                OnboardingSession.user_id == user_id,
                OnboardingSession.status == SessionStatus.ACTIVE,
                OnboardingSession.expires_at > now,
            )
            .order_by(OnboardingSession.updated_at.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def add(self, db: AsyncSession, session: OnboardingSession) -> OnboardingSession:
        db.add(session)
        await db.flush()
        return session

    async def abandon_expired(self, db: AsyncSession, now: datetime) -> int:
        """
        Flip every expired ACTIVE session to ABANDONED in one statement.

        The status predicate makes concurrent sweeps count each row once.

        Returns:
            Number of sessions abandoned by this call
        """
        result = await db.execute(
            update(OnboardingSession)
            .where(
                OnboardingSession.status == SessionStatus.ACTIVE,
                OnboardingSession.expires_at <= now,
            )
            .values(status=SessionStatus.ABANDONED, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
