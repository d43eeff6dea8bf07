"""
Onboarding Session Engine

Owns the onboarding session state machine:

    ACTIVE --(complete, integration succeeds)--> COMPLETED
    ACTIVE --(expiry sweep)--------------------> ABANDONED

No transition leaves COMPLETED or ABANDONED. Expiry is checked live on
every mutating call, so an expired session is rejected even before the
sweep has flipped it.

Every mutating operation asks the permission checker first; a denial
raises Forbidden before any state is written.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

import structlog
from prometheus_client import Counter
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hotel_onboarding.config import OnboardingSettings, get_settings
from hotel_onboarding.database.connection import session_scope
from hotel_onboarding.database.models import (
    EnhancedHotel,
    OnboardingSession,
    SessionStatus,
    User,
    new_id,
    utcnow,
)
from hotel_onboarding.errors import Forbidden, InvalidState, NotFound, ValidationFailed
from hotel_onboarding.integration.engine import DataIntegrationEngine
from hotel_onboarding.interfaces import (
    AuditAction,
    AuditEvent,
    AuditRecorder,
    Permission,
    PermissionChecker,
    permission_for_step,
    record_event_safely,
)
from hotel_onboarding.onboarding.draft_store import DraftStore
from hotel_onboarding.onboarding.steps import step_position
from hotel_onboarding.quality import validators
from hotel_onboarding.quality.validators import StepValidationResult
from hotel_onboarding.transformation.cleaners import StepDataCleaner

logger = structlog.get_logger(__name__)


# =============================================================================
# METRICS
# =============================================================================

SESSION_TRANSITIONS = Counter(
    "onboarding_session_transitions_total",
    "Session lifecycle transitions",
    ["transition"],
)

STEP_UPDATES = Counter(
    "onboarding_step_updates_total",
    "Step updates by step and validation outcome",
    ["step", "outcome"],
)


@dataclass
class SessionProgress:
    current_step: int
    completed_steps: List[str]
    total_steps: int
    completion_percentage: float
    quality_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentStep": self.current_step,
            "completedSteps": list(self.completed_steps),
            "totalSteps": self.total_steps,
            "completionPercentage": self.completion_percentage,
            "qualityScore": self.quality_score,
        }


@dataclass
class CompletionResult:
    hotel_id: str
    quality_score: float
    warnings: List[str] = field(default_factory=list)


class OnboardingSessionEngine:
    """
    Step-wise onboarding sessions for one hotel and one user.

    Args:
        session_factory: Async session factory for the record store
        permissions: Permission checker consulted before every mutation
        integration: Engine committing completed sessions
        audit: Audit recorder (failures are logged, never raised)
        config: Onboarding settings (TTL, total steps, strict mode)
        clock: Returns the current naive UTC time
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        permissions: PermissionChecker,
        integration: DataIntegrationEngine,
        audit: Optional[AuditRecorder] = None,
        config: Optional[OnboardingSettings] = None,
        clock: Callable[[], datetime] = utcnow,
        store: Optional[DraftStore] = None,
        cleaner: Optional[StepDataCleaner] = None,
    ):
        self.session_factory = session_factory
        self.permissions = permissions
        self.integration = integration
        self.audit = audit
        self.config = config or get_settings().onboarding
        self.clock = clock
        self.store = store or DraftStore()
        self.cleaner = cleaner or StepDataCleaner()

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _require_permission(self, user_id: str, hotel_id: str, permission: Permission) -> None:
        allowed = await self.permissions.check_permission(user_id, hotel_id, permission)
        if not allowed:
            logger.warning(
                "Permission denied",
                user_id=user_id,
                hotel_id=hotel_id,
                permission=permission.value,
            )
            raise Forbidden(user_id, permission.value, hotel_id)

    async def _load(self, db: AsyncSession, session_id: str, for_update: bool = False) -> OnboardingSession:
        session = await self.store.get(db, session_id, for_update=for_update)
        if session is None:
            raise NotFound("Session", session_id)
        return session

    @staticmethod
    def _ensure_live(session: OnboardingSession, now: datetime) -> None:
        if session.status != SessionStatus.ACTIVE:
            raise InvalidState(f"Session {session.id} is {session.status.value}")
        if session.expires_at <= now:
            raise InvalidState(f"Session {session.id} has expired")

    async def _audit(self, action: AuditAction, session: OnboardingSession, user_id: str, **kwargs: Any) -> None:
        await record_event_safely(
            self.audit,
            AuditEvent(
                action=action,
                user_id=user_id,
                hotel_id=session.enhanced_hotel_id,
                session_id=session.id,
                **kwargs,
            ),
        )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def create_session(self, hotel_id: str, user_id: str) -> OnboardingSession:
        """
        Start onboarding a hotel, or resume the user's live session for it.

        An ACTIVE session past its expiry is abandoned before a new one
        is created.

        Raises:
            Forbidden: user may not onboard this hotel
            NotFound: user or hotel missing
        """
        await self._require_permission(user_id, hotel_id, Permission.CREATE_SESSION)
        now = self.clock()
        abandoned: Optional[OnboardingSession] = None

        try:
            async with session_scope(self.session_factory) as db:
                if await db.get(User, user_id) is None:
                    raise NotFound("User", user_id)
                if await db.get(EnhancedHotel, hotel_id) is None:
                    raise NotFound("Hotel", hotel_id)

                existing = await self.store.find_active(db, hotel_id, user_id, for_update=True)
                if existing is not None and existing.is_live(now):
                    logger.info("Resuming onboarding session", session_id=existing.id, hotel_id=hotel_id)
                    return existing
                if existing is not None:
                    existing.status = SessionStatus.ABANDONED
                    existing.updated_at = now
                    await db.flush()
                    abandoned = existing
                    SESSION_TRANSITIONS.labels(transition="abandoned").inc()
                    logger.info("Abandoned expired session", session_id=existing.id, hotel_id=hotel_id)

                session = await self.store.add(db, OnboardingSession(
                    id=new_id(),
                    enhanced_hotel_id=hotel_id,
                    user_id=user_id,
                    current_step=0,
                    completed_steps=[],
                    draft_data={},
                    quality_score=0.0,
                    status=SessionStatus.ACTIVE,
                    created_at=now,
                    updated_at=now,
                    expires_at=now + timedelta(days=self.config.session_ttl_days),
                ))
        except IntegrityError:
            # A concurrent create for the same pair won the unique ACTIVE slot
            async with session_scope(self.session_factory) as db:
                winner = await self.store.find_active(db, hotel_id, user_id)
            if winner is None or not winner.is_live(now):
                raise
            return winner

        if abandoned is not None:
            await self._audit(AuditAction.SESSION_ABANDONED, abandoned, user_id, metadata={"reason": "expired"})
        SESSION_TRANSITIONS.labels(transition="created").inc()
        logger.info("Onboarding session created", session_id=session.id, hotel_id=hotel_id, user_id=user_id)
        await self._audit(AuditAction.SESSION_CREATED, session, user_id, new_data={"expiresAt": session.expires_at.isoformat()})
        return session

    async def update_step(
        self,
        session_id: str,
        step_id: str,
        payload: Optional[Dict[str, Any]],
        user_id: str,
        strict: Optional[bool] = None,
    ) -> StepValidationResult:
        """
        Replace the stored payload of one step.

        The payload is normalized first and the normalized payload is what
        gets validated and stored. By default it is stored even when
        validation reports errors; in strict mode errors reject the update.

        Raises:
            NotFound: session missing
            InvalidState: session not ACTIVE or expired
            Forbidden: user may not edit this step
            ValidationFailed: strict mode and the payload has errors
        """
        strict = self.config.strict_validation if strict is None else strict
        normalized, stats = self.cleaner.clean(payload)
        validation = self.validate_step(step_id, normalized)
        now = self.clock()

        async with session_scope(self.session_factory) as db:
            session = await self._load(db, session_id, for_update=True)
            self._ensure_live(session, now)
            await self._require_permission(user_id, session.enhanced_hotel_id, permission_for_step(step_id))

            if strict and not validation.is_valid:
                STEP_UPDATES.labels(step=step_id, outcome="rejected").inc()
                raise ValidationFailed(
                    f"Step {step_id} failed validation",
                    errors=validation.errors,
                    warnings=validation.warnings,
                )

            draft = dict(session.draft_data or {})
            previous = draft.get(step_id)
            draft[step_id] = normalized
            session.draft_data = draft
            session.updated_at = now

        STEP_UPDATES.labels(step=step_id, outcome="valid" if validation.is_valid else "invalid").inc()
        logger.info(
            "Step updated",
            session_id=session_id,
            step_id=step_id,
            valid=validation.is_valid,
            duplicates_removed=stats.duplicates_removed,
        )
        await self._audit(
            AuditAction.STEP_UPDATED,
            session,
            user_id,
            step_id=step_id,
            previous_data=previous,
            new_data=normalized,
        )
        return validation

    def validate_step(self, step_id: str, payload: Optional[Dict[str, Any]]) -> StepValidationResult:
        """Validate a step payload without touching any session"""
        return validators.validate_step(step_id, payload)

    async def mark_step_completed(self, session_id: str, step_id: str, user_id: str) -> SessionProgress:
        """
        Add a step to the completed steps; repeated calls are no-ops.

        ``current_step`` moves forward to the step's wizard position and
        never moves back.
        """
        now = self.clock()
        async with session_scope(self.session_factory) as db:
            session = await self._load(db, session_id, for_update=True)
            self._ensure_live(session, now)
            await self._require_permission(user_id, session.enhanced_hotel_id, Permission.UPDATE_SESSION)

            completed = list(session.completed_steps or [])
            newly_completed = step_id not in completed
            if newly_completed:
                completed.append(step_id)
                session.completed_steps = completed

            position = step_position(step_id)
            if position is not None and position > session.current_step:
                session.current_step = position
            session.updated_at = now

        if newly_completed:
            logger.info("Step completed", session_id=session_id, step_id=step_id)
            await self._audit(AuditAction.STEP_COMPLETED, session, user_id, step_id=step_id)
        return self._progress(session)

    def _progress(self, session: OnboardingSession) -> SessionProgress:
        completed = list(session.completed_steps or [])
        total = self.config.total_steps
        return SessionProgress(
            current_step=session.current_step,
            completed_steps=completed,
            total_steps=total,
            completion_percentage=len(completed) / total * 100 if total else 0.0,
            quality_score=session.quality_score,
        )

    async def get_progress(self, session_id: str) -> SessionProgress:
        async with session_scope(self.session_factory) as db:
            session = await self._load(db, session_id)
        return self._progress(session)

    async def complete_session(self, session_id: str, user_id: str) -> CompletionResult:
        """
        Commit the session's draft through the integration engine.

        On success the session is COMPLETED with the committed score; on
        any failure it stays ACTIVE and the integration error is raised
        unchanged.

        Raises:
            NotFound: session missing
            InvalidState: session not ACTIVE or expired
            Forbidden: user may not complete onboarding for this hotel
            ValidationFailed / IntegrationFailed: from the commit
        """
        now = self.clock()
        async with session_scope(self.session_factory) as db:
            session = await self._load(db, session_id)
            self._ensure_live(session, now)
        await self._require_permission(user_id, session.enhanced_hotel_id, Permission.COMPLETE_SESSION)

        result = await self.integration.commit_session(session_id)

        SESSION_TRANSITIONS.labels(transition="completed").inc()
        logger.info(
            "Onboarding session completed",
            session_id=session_id,
            hotel_id=result.hotel_id,
            quality_score=result.quality_score,
        )
        await self._audit(
            AuditAction.SESSION_COMPLETED,
            session,
            user_id,
            new_data={"qualityScore": result.quality_score},
            metadata={"warnings": result.warnings},
        )
        return CompletionResult(hotel_id=result.hotel_id, quality_score=result.quality_score, warnings=result.warnings)

    async def sweep_expired(self) -> int:
        """Abandon every expired ACTIVE session; returns how many this call flipped"""
        now = self.clock()
        async with session_scope(self.session_factory) as db:
            count = await self.store.abandon_expired(db, now)

        if count:
            SESSION_TRANSITIONS.labels(transition="abandoned").inc(count)
        logger.info("Expired sessions swept", abandoned=count)
        return count

    # =========================================================================
    # DRAFT ACCESS
    # =========================================================================

    async def save_draft(
        self,
        session_id: str,
        draft: Dict[str, Dict[str, Any]],
        user_id: str,
    ) -> Dict[str, StepValidationResult]:
        """
        Store several steps at once, each normalized and replaced whole.

        Needs the session update permission plus, for each step, the
        permission ``update_step`` asks for it.

        Steps not present in ``draft`` keep their stored payloads.
        """
        normalized = {step_id: self.cleaner.clean(payload)[0] for step_id, payload in draft.items()}
        results = {step_id: self.validate_step(step_id, payload) for step_id, payload in normalized.items()}
        now = self.clock()

        async with session_scope(self.session_factory) as db:
            session = await self._load(db, session_id, for_update=True)
            self._ensure_live(session, now)
            required = [Permission.UPDATE_SESSION] + [permission_for_step(step_id) for step_id in draft]
            for permission in dict.fromkeys(required):
                await self._require_permission(user_id, session.enhanced_hotel_id, permission)

            merged = dict(session.draft_data or {})
            merged.update(normalized)
            session.draft_data = merged
            session.updated_at = now

        logger.info("Draft saved", session_id=session_id, steps=sorted(normalized))
        await self._audit(AuditAction.DRAFT_SAVED, session, user_id, metadata={"steps": sorted(normalized)})
        return results

    async def load_draft(self, session_id: str) -> Dict[str, Any]:
        async with session_scope(self.session_factory) as db:
            session = await self._load(db, session_id)
        return dict(session.draft_data or {})

    async def get_user_active_session(self, user_id: str) -> Optional[OnboardingSession]:
        """The user's most recently updated live session, if any"""
        async with session_scope(self.session_factory) as db:
            return await self.store.find_live_for_user(db, user_id, self.clock())
