"""
Data Integration Engine

Commits onboarding drafts and legacy records into the enhanced hotel and
room aggregates. Every entry point runs in one transaction:

- The hotel row and all of its room rows are locked (SELECT ... FOR UPDATE)
- The hotel's quality metrics are recomputed from its new content
- Amenity inheritance and policy times are propagated to every room
- The session status flip (for commits) happens in the same transaction

A failure rolls back everything. Downstream notifications are sent after
commit and never undo it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import structlog
from prometheus_client import Counter, Histogram
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hotel_onboarding.config import OnboardingSettings, get_settings
from hotel_onboarding.database.connection import session_scope
from hotel_onboarding.database.models import (
    EnhancedHotel,
    EnhancedRoom,
    LegacyHotel,
    LegacyRoom,
    OnboardingSession,
    OnboardingStatus,
    QualityReport,
    SessionStatus,
    User,
    new_id,
    utcnow,
)
from hotel_onboarding.errors import (
    IntegrationFailed,
    InvalidState,
    NotFound,
    OnboardingError,
    ValidationFailed,
)
from hotel_onboarding.integration.inheritance import with_inherited
from hotel_onboarding.interfaces import Notifier, SystemUpdate, SystemUpdateType, notify_safely
from hotel_onboarding.onboarding.steps import AmenitiesStep, Policies, RoomEntry
from hotel_onboarding.quality.content import QualityAssessment, QualityMetrics
from hotel_onboarding.quality.scoring import QualityScoringEngine
from hotel_onboarding.quality.validators import create_rooms_validator, validate_step
from hotel_onboarding.transformation.cleaners import normalize_step_payload
from hotel_onboarding.transformation.enrichers import (
    DEFAULT_AVAILABILITY,
    draft_rooms,
    draft_to_hotel_sections,
    hotel_content,
    legacy_hotel_sections,
    legacy_room_sections,
    room_sections,
)

logger = structlog.get_logger(__name__)


# =============================================================================
# METRICS
# =============================================================================

INTEGRATIONS = Counter(
    "onboarding_integrations_total",
    "Aggregate writes by operation and outcome",
    ["operation", "status"],
)

INTEGRATION_TIME = Histogram(
    "onboarding_integration_seconds",
    "Time spent in an integration transaction",
    ["operation"],
)


@dataclass
class IntegrationResult:
    """Outcome of a commit, migration or hotel update"""
    hotel_id: str
    quality_score: float
    room_ids: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hotelId": self.hotel_id,
            "qualityScore": self.quality_score,
            "roomIds": list(self.room_ids),
            "warnings": list(self.warnings),
        }


class DataIntegrationEngine:
    """
    Transactional writer of the enhanced hotel aggregate.

    Args:
        session_factory: Async session factory for the record store
        notifier: Receiver of downstream system updates
        scoring: Quality scoring engine
        config: Onboarding settings (required steps, legacy image score)
        clock: Returns the current naive UTC time
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: Optional[Notifier] = None,
        scoring: Optional[QualityScoringEngine] = None,
        config: Optional[OnboardingSettings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.notifier = notifier
        self.scoring = scoring or QualityScoringEngine()
        self.config = config or get_settings().onboarding
        self.clock = clock

    # =========================================================================
    # LOCKING AND PROPAGATION
    # =========================================================================

    async def _lock_hotel(self, db: AsyncSession, hotel_id: str) -> EnhancedHotel:
        result = await db.execute(
            select(EnhancedHotel).where(EnhancedHotel.id == hotel_id).with_for_update()
        )
        hotel = result.scalars().first()
        if hotel is None:
            raise NotFound("Hotel", hotel_id)
        return hotel

    async def _lock_rooms(self, db: AsyncSession, hotel_id: str) -> List[EnhancedRoom]:
        result = await db.execute(
            select(EnhancedRoom)
            .where(EnhancedRoom.enhanced_hotel_id == hotel_id)
            .order_by(EnhancedRoom.created_at, EnhancedRoom.id)
            .with_for_update()
        )
        return list(result.scalars().all())

    async def _room_ids(self, db: AsyncSession, hotel_id: str) -> List[str]:
        result = await db.execute(
            select(EnhancedRoom.id)
            .where(EnhancedRoom.enhanced_hotel_id == hotel_id)
            .order_by(EnhancedRoom.created_at, EnhancedRoom.id)
        )
        return list(result.scalars().all())

    def _propagate(self, hotel: EnhancedHotel, rooms: Sequence[EnhancedRoom], now: datetime) -> None:
        """Rewrite inherited amenities and policy times on every room"""
        check_in = check_out = None
        if hotel.policies:
            policies = Policies.model_validate(hotel.policies)
            check_in = policies.check_in.effective_time if policies.check_in else None
            check_out = policies.check_out.effective_time if policies.check_out else None

        for room in rooms:
            room.amenities = with_inherited(room.amenities, hotel.amenities)
            availability = dict(room.availability or DEFAULT_AVAILABILITY)
            if check_in:
                availability["checkInTime"] = check_in
            if check_out:
                availability["checkOutTime"] = check_out
            room.availability = availability
            room.updated_at = now

        logger.debug("Propagated hotel amenities and policies", hotel_id=hotel.id, rooms=len(rooms))

    def _rescore(self, hotel: EnhancedHotel, room_count: int, now: datetime) -> QualityMetrics:
        """Score the hotel's current content and store the metrics on it"""
        basic_info = dict(hotel.basic_info or {})
        basic_info["totalRooms"] = room_count
        hotel.basic_info = basic_info

        metrics = self.scoring.score(hotel_content(hotel, room_count))
        document = metrics.to_document()
        document["lastCalculated"] = now.isoformat()
        hotel.quality_metrics = document
        hotel.updated_at = now
        return metrics

    def _validate_draft(self, draft: Dict[str, Any]) -> Tuple[List[str], List[str]]:
        errors: List[str] = []
        warnings: List[str] = []
        for step_id in self.config.required_steps:
            if step_id not in draft:
                errors.append(f"{step_id}: step is required")
        for step_id, payload in draft.items():
            result = validate_step(step_id, payload)
            errors.extend(f"{step_id}: {message}" for message in result.errors)
            warnings.extend(f"{step_id}: {message}" for message in result.warnings)
        return errors, warnings

    def _upsert_draft_rooms(
        self,
        db: AsyncSession,
        hotel: EnhancedHotel,
        rooms: List[EnhancedRoom],
        entries: List[RoomEntry],
        now: datetime,
    ) -> List[EnhancedRoom]:
        """Match wizard rooms to stored rooms by name; unmatched entries become new rooms"""
        by_name = {(room.basic_info or {}).get("name"): room for room in rooms}
        for entry in entries:
            sections = room_sections(entry)
            room = by_name.get(entry.name)
            if room is None:
                room = EnhancedRoom(
                    id=new_id(),
                    enhanced_hotel_id=hotel.id,
                    availability=dict(DEFAULT_AVAILABILITY),
                    created_at=now,
                    **sections,
                )
                db.add(room)
                rooms.append(room)
                by_name[entry.name] = room
            else:
                for attribute, value in sections.items():
                    setattr(room, attribute, value)
            room.updated_at = now
        return rooms

    async def _notify(self, update_type: SystemUpdateType, entity_id: str, data: Dict[str, Any]) -> None:
        await notify_safely(
            self.notifier,
            SystemUpdate(type=update_type, entity_id=entity_id, data=data, timestamp=self.clock()),
        )

    # =========================================================================
    # SESSION COMMIT
    # =========================================================================

    async def commit_session(self, session_id: str) -> IntegrationResult:
        """
        Commit a session's draft into its hotel aggregate.

        Re-committing a COMPLETED session returns the stored outcome with a
        warning and writes nothing.

        Raises:
            NotFound: session or hotel missing
            InvalidState: session ABANDONED or expired
            ValidationFailed: stored steps fail validation or required steps missing
            IntegrationFailed: the transaction aborted for any other reason
        """
        now = self.clock()
        result: Optional[IntegrationResult] = None
        already_completed = False

        with INTEGRATION_TIME.labels(operation="commit_session").time():
            try:
                async with session_scope(self.session_factory) as db:
                    session = await db.get(OnboardingSession, session_id, with_for_update=True)
                    if session is None:
                        raise NotFound("Session", session_id)

                    if session.status == SessionStatus.COMPLETED:
                        already_completed = True
                        result = IntegrationResult(
                            hotel_id=session.enhanced_hotel_id,
                            quality_score=session.quality_score,
                            room_ids=await self._room_ids(db, session.enhanced_hotel_id),
                            warnings=["Session already completed"],
                        )
                    else:
                        if not session.is_live(now):
                            raise InvalidState(f"Session {session_id} is not active")
                        result = await self._commit_draft(db, session, now)
            except OnboardingError:
                INTEGRATIONS.labels(operation="commit_session", status="rejected").inc()
                raise
            except Exception as e:
                INTEGRATIONS.labels(operation="commit_session", status="failed").inc()
                logger.error("Session commit failed", session_id=session_id, error=str(e))
                raise IntegrationFailed(f"Failed to commit session {session_id}", cause=e) from e

        if already_completed:
            logger.warning("Session already completed", session_id=session_id)
            return result

        INTEGRATIONS.labels(operation="commit_session", status="success").inc()
        logger.info(
            "Session committed",
            session_id=session_id,
            hotel_id=result.hotel_id,
            quality_score=result.quality_score,
            rooms=len(result.room_ids),
        )
        await self._notify(
            SystemUpdateType.HOTEL_ONBOARDING_COMPLETED,
            result.hotel_id,
            {"sessionId": session_id, "qualityScore": result.quality_score, "roomIds": result.room_ids},
        )
        return result

    async def _commit_draft(self, db: AsyncSession, session: OnboardingSession, now: datetime) -> IntegrationResult:
        draft = dict(session.draft_data or {})
        errors, warnings = self._validate_draft(draft)
        if errors:
            raise ValidationFailed("Onboarding data failed validation", errors=errors, warnings=warnings)

        hotel = await self._lock_hotel(db, session.enhanced_hotel_id)
        rooms = await self._lock_rooms(db, hotel.id)

        for attribute, value in draft_to_hotel_sections(hotel, draft).items():
            setattr(hotel, attribute, value)
        rooms = self._upsert_draft_rooms(db, hotel, rooms, draft_rooms(draft), now)

        metrics = self._rescore(hotel, len(rooms), now)
        hotel.onboarding_status = OnboardingStatus.COMPLETED
        self._propagate(hotel, rooms, now)

        session.status = SessionStatus.COMPLETED
        session.quality_score = float(metrics.overall_score)
        session.updated_at = now
        await db.flush()

        return IntegrationResult(
            hotel_id=hotel.id,
            quality_score=float(metrics.overall_score),
            room_ids=[room.id for room in rooms],
            warnings=warnings,
        )

    # =========================================================================
    # LEGACY MIGRATION
    # =========================================================================

    async def _find_migrated(self, db: AsyncSession, legacy_id: str) -> Optional[IntegrationResult]:
        result = await db.execute(select(EnhancedHotel).where(EnhancedHotel.original_hotel_id == legacy_id))
        hotel = result.scalars().first()
        if hotel is None:
            return None
        return IntegrationResult(
            hotel_id=hotel.id,
            quality_score=float((hotel.quality_metrics or {}).get("overallScore", 0)),
            room_ids=await self._room_ids(db, hotel.id),
            warnings=["Hotel already migrated"],
        )

    async def migrate_legacy_hotel(self, legacy_id: str) -> IntegrationResult:
        """
        Build the enhanced aggregate for a legacy hotel and its rooms.

        Idempotent: an already-migrated legacy id returns the existing
        aggregate with a warning, including when a concurrent migration
        wins the race on the unique legacy link.
        """
        now = self.clock()
        result: Optional[IntegrationResult] = None

        with INTEGRATION_TIME.labels(operation="migrate_legacy_hotel").time():
            try:
                async with session_scope(self.session_factory) as db:
                    legacy = await db.get(LegacyHotel, legacy_id)
                    if legacy is None:
                        raise NotFound("Legacy hotel", legacy_id)

                    result = await self._find_migrated(db, legacy_id)
                    if result is None:
                        result = await self._migrate(db, legacy, now)
            except IntegrityError as e:
                async with session_scope(self.session_factory) as db:
                    result = await self._find_migrated(db, legacy_id)
                if result is None:
                    INTEGRATIONS.labels(operation="migrate_legacy_hotel", status="failed").inc()
                    raise IntegrationFailed(f"Failed to migrate legacy hotel {legacy_id}", cause=e) from e
            except OnboardingError:
                INTEGRATIONS.labels(operation="migrate_legacy_hotel", status="rejected").inc()
                raise
            except Exception as e:
                INTEGRATIONS.labels(operation="migrate_legacy_hotel", status="failed").inc()
                logger.error("Legacy migration failed", legacy_id=legacy_id, error=str(e))
                raise IntegrationFailed(f"Failed to migrate legacy hotel {legacy_id}", cause=e) from e

        if result.warnings:
            logger.warning("Hotel already migrated", legacy_id=legacy_id, hotel_id=result.hotel_id)
            return result

        INTEGRATIONS.labels(operation="migrate_legacy_hotel", status="success").inc()
        logger.info(
            "Legacy hotel migrated",
            legacy_id=legacy_id,
            hotel_id=result.hotel_id,
            quality_score=result.quality_score,
            rooms=len(result.room_ids),
        )
        await self._notify(
            SystemUpdateType.HOTEL_CREATED,
            result.hotel_id,
            {"legacyHotelId": legacy_id, "qualityScore": result.quality_score, "roomIds": result.room_ids},
        )
        return result

    async def _migrate(self, db: AsyncSession, legacy: LegacyHotel, now: datetime) -> IntegrationResult:
        legacy_rooms = (
            await db.execute(
                select(LegacyRoom)
                .where(LegacyRoom.hotel_id == legacy.id)
                .order_by(LegacyRoom.created_at, LegacyRoom.id)
            )
        ).scalars().all()

        hotel = EnhancedHotel(
            id=new_id(),
            onboarding_status=OnboardingStatus.NOT_STARTED,
            created_at=now,
            **legacy_hotel_sections(legacy, len(legacy_rooms), self.config.legacy_image_quality_score),
        )
        db.add(hotel)
        rooms = [
            EnhancedRoom(id=new_id(), enhanced_hotel_id=hotel.id, created_at=now, **legacy_room_sections(room))
            for room in legacy_rooms
        ]
        db.add_all(rooms)

        metrics = self._rescore(hotel, len(rooms), now)
        self._propagate(hotel, rooms, now)
        await db.flush()

        return IntegrationResult(
            hotel_id=hotel.id,
            quality_score=float(metrics.overall_score),
            room_ids=[room.id for room in rooms],
        )

    async def migrate_all_legacy_hotels(self) -> Dict[str, Any]:
        """Migrate every legacy hotel that has no aggregate yet"""
        async with session_scope(self.session_factory) as db:
            pending = (
                await db.execute(
                    select(LegacyHotel.id)
                    .outerjoin(EnhancedHotel, EnhancedHotel.original_hotel_id == LegacyHotel.id)
                    .where(EnhancedHotel.id.is_(None))
                    .order_by(LegacyHotel.created_at, LegacyHotel.id)
                )
            ).scalars().all()

        summary: Dict[str, Any] = {"migrated": 0, "skipped": 0, "failed": 0, "errors": []}
        for legacy_id in pending:
            try:
                result = await self.migrate_legacy_hotel(legacy_id)
            except OnboardingError as e:
                summary["failed"] += 1
                summary["errors"].append({"legacyHotelId": legacy_id, "phase": e.phase, "error": e.message})
                continue
            if result.warnings:
                summary["skipped"] += 1
            else:
                summary["migrated"] += 1

        logger.info(
            "Batch legacy migration complete",
            migrated=summary["migrated"],
            skipped=summary["skipped"],
            failed=summary["failed"],
        )
        return summary

    async def verify_data_migration(self) -> Dict[str, Any]:
        """Compare legacy hotels with their migrated aggregates"""
        async with session_scope(self.session_factory) as db:
            legacy_total = (await db.execute(select(func.count()).select_from(LegacyHotel))).scalar_one()
            migrated_total = (
                await db.execute(
                    select(func.count()).select_from(EnhancedHotel).where(EnhancedHotel.original_hotel_id.is_not(None))
                )
            ).scalar_one()
            missing = (
                await db.execute(
                    select(LegacyHotel.id)
                    .outerjoin(EnhancedHotel, EnhancedHotel.original_hotel_id == LegacyHotel.id)
                    .where(EnhancedHotel.id.is_(None))
                    .order_by(LegacyHotel.id)
                )
            ).scalars().all()

        return {
            "legacyHotels": legacy_total,
            "migratedHotels": migrated_total,
            "missing": list(missing),
            "isComplete": not missing,
        }

    # =========================================================================
    # HOTEL MAINTENANCE
    # =========================================================================

    async def create_hotel_placeholder(self, owner_id: str, name: str = "New Hotel") -> EnhancedHotel:
        """
        Create an empty NOT_STARTED hotel aggregate for a new owner.

        Onboarding sessions are opened against the returned hotel.

        Raises:
            NotFound: owner missing
        """
        now = self.clock()
        try:
            async with session_scope(self.session_factory) as db:
                if await db.get(User, owner_id) is None:
                    raise NotFound("User", owner_id)
                hotel = EnhancedHotel(
                    id=new_id(),
                    owner_id=owner_id,
                    basic_info={"name": name},
                    onboarding_status=OnboardingStatus.NOT_STARTED,
                    created_at=now,
                    updated_at=now,
                )
                db.add(hotel)
                await db.flush()
        except OnboardingError:
            raise
        except Exception as e:
            logger.error("Hotel placeholder creation failed", owner_id=owner_id, error=str(e))
            raise IntegrationFailed(f"Failed to create hotel for owner {owner_id}", cause=e) from e

        INTEGRATIONS.labels(operation="create_hotel", status="success").inc()
        logger.info("Hotel placeholder created", hotel_id=hotel.id, owner_id=owner_id)
        await self._notify(SystemUpdateType.HOTEL_CREATED, hotel.id, {"ownerId": owner_id, "name": name})
        return hotel

    async def update_hotel(
        self,
        hotel_id: str,
        amenities: Optional[Dict[str, List[str]]] = None,
        policies: Optional[Dict[str, Any]] = None,
    ) -> IntegrationResult:
        """
        Replace the hotel's amenity buckets and/or policies.

        Rooms see the change in the same transaction; the quality metrics
        are recomputed before commit.
        """
        if amenities is None and policies is None:
            raise ValidationFailed("Nothing to update", errors=["amenities or policies must be provided"])

        try:
            new_amenities = None
            if amenities is not None:
                cleaned = normalize_step_payload({"selectedAmenities": amenities})
                new_amenities = AmenitiesStep.model_validate(cleaned).buckets()
            new_policies = Policies.model_validate(policies).to_document() if policies is not None else None
        except PydanticValidationError as e:
            raise ValidationFailed("Hotel update failed validation", errors=[str(error["msg"]) for error in e.errors()]) from e

        now = self.clock()
        with INTEGRATION_TIME.labels(operation="update_hotel").time():
            try:
                async with session_scope(self.session_factory) as db:
                    hotel = await self._lock_hotel(db, hotel_id)
                    rooms = await self._lock_rooms(db, hotel_id)

                    if new_amenities is not None:
                        hotel.amenities = new_amenities
                    if new_policies is not None:
                        hotel.policies = new_policies

                    self._propagate(hotel, rooms, now)
                    metrics = self._rescore(hotel, len(rooms), now)
                    await db.flush()
                    result = IntegrationResult(
                        hotel_id=hotel.id,
                        quality_score=float(metrics.overall_score),
                        room_ids=[room.id for room in rooms],
                    )
            except OnboardingError:
                raise
            except Exception as e:
                INTEGRATIONS.labels(operation="update_hotel", status="failed").inc()
                logger.error("Hotel update failed", hotel_id=hotel_id, error=str(e))
                raise IntegrationFailed(f"Failed to update hotel {hotel_id}", cause=e) from e

        INTEGRATIONS.labels(operation="update_hotel", status="success").inc()
        changed = [name for name, value in (("amenities", amenities), ("policies", policies)) if value is not None]
        logger.info("Hotel updated", hotel_id=hotel_id, changed=changed, rooms=len(result.room_ids))
        await self._notify(
            SystemUpdateType.HOTEL_UPDATED,
            hotel_id,
            {"changed": changed, "qualityScore": result.quality_score},
        )
        return result

    async def add_room(self, hotel_id: str, room_data: Dict[str, Any]) -> IntegrationResult:
        """Create one room under a hotel, inheriting its amenities and policy times"""
        validation = create_rooms_validator().validate({"rooms": [room_data]})
        if not validation.is_valid:
            raise ValidationFailed("Room data failed validation", validation.errors, validation.warnings)

        entry = RoomEntry.model_validate(normalize_step_payload(room_data))
        now = self.clock()
        try:
            async with session_scope(self.session_factory) as db:
                hotel = await self._lock_hotel(db, hotel_id)
                rooms = await self._lock_rooms(db, hotel_id)
                if any((room.basic_info or {}).get("name") == entry.name for room in rooms):
                    raise ValidationFailed(
                        "Room already exists",
                        errors=[f"Room '{entry.name}' already exists"],
                    )

                room = EnhancedRoom(
                    id=new_id(),
                    enhanced_hotel_id=hotel.id,
                    availability=dict(DEFAULT_AVAILABILITY),
                    created_at=now,
                    **room_sections(entry),
                )
                db.add(room)
                self._propagate(hotel, [room], now)
                metrics = self._rescore(hotel, len(rooms) + 1, now)
                await db.flush()
                result = IntegrationResult(
                    hotel_id=hotel.id,
                    quality_score=float(metrics.overall_score),
                    room_ids=[room.id],
                    warnings=list(validation.warnings),
                )
        except OnboardingError:
            raise
        except Exception as e:
            logger.error("Room creation failed", hotel_id=hotel_id, error=str(e))
            raise IntegrationFailed(f"Failed to add room to hotel {hotel_id}", cause=e) from e

        logger.info("Room added", hotel_id=hotel_id, room_id=result.room_ids[0])
        await self._notify(
            SystemUpdateType.ROOM_CREATED,
            result.room_ids[0],
            {"hotelId": hotel_id, "name": entry.name},
        )
        return result

    # =========================================================================
    # REPORTING
    # =========================================================================

    async def generate_quality_report(self, hotel_id: str) -> QualityAssessment:
        """Score the stored aggregate, persist a report and refresh its metrics"""
        now = self.clock()
        async with session_scope(self.session_factory) as db:
            hotel = await self._lock_hotel(db, hotel_id)
            room_count = len(await self._room_ids(db, hotel_id))

            content = hotel_content(hotel, room_count)
            assessment = self.scoring.assess(content)
            self._rescore(hotel, room_count, now)

            metrics = assessment.metrics
            db.add(QualityReport(
                id=new_id(),
                enhanced_hotel_id=hotel_id,
                overall_score=metrics.overall_score,
                image_score=metrics.image_quality,
                content_score=metrics.content_completeness,
                policy_score=metrics.policy_clarity,
                breakdown=metrics.breakdown.to_document(),
                missing_information=[entry.to_document() for entry in assessment.missing_information],
                recommendations=[entry.to_document() for entry in assessment.recommendations],
                created_at=now,
            ))

        logger.info(
            "Quality report generated",
            hotel_id=hotel_id,
            overall_score=assessment.metrics.overall_score,
            recommendations=len(assessment.recommendations),
        )
        return assessment

    async def get_integration_status(self, hotel_id: str) -> Dict[str, Any]:
        """Onboarding state of a hotel as seen by dashboards"""
        async with session_scope(self.session_factory) as db:
            hotel = await db.get(EnhancedHotel, hotel_id)
            if hotel is None:
                raise NotFound("Hotel", hotel_id)
            room_count = len(await self._room_ids(db, hotel_id))
            active_sessions = (
                await db.execute(
                    select(func.count())
                    .select_from(OnboardingSession)
                    .where(
                        OnboardingSession.enhanced_hotel_id == hotel_id,
                        OnboardingSession.status == SessionStatus.ACTIVE,
                        OnboardingSession.expires_at > self.clock(),
                    )
                )
            ).scalar_one()

        return {
            "hotelId": hotel.id,
            "onboardingStatus": hotel.onboarding_status.value,
            "qualityScore": (hotel.quality_metrics or {}).get("overallScore", 0),
            "roomCount": room_count,
            "activeSessions": active_sessions,
            "migratedFrom": hotel.original_hotel_id,
            "lastUpdated": hotel.updated_at.isoformat() if hotel.updated_at else None,
        }
