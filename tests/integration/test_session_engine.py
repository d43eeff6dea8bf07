"""
Integration Tests - Onboarding Session Engine
"""
import pytest
from sqlalchemy import select

from hotel_onboarding.database.models import (
    EnhancedHotel,
    EnhancedRoom,
    OnboardingSession,
    OnboardingStatus,
    SessionStatus,
)
from hotel_onboarding.errors import Forbidden, IntegrationFailed, InvalidState, NotFound, ValidationFailed
from hotel_onboarding.interfaces import Permission, SystemUpdateType


async def load_session(session_factory, session_id) -> OnboardingSession:
    async with session_factory() as db:
        return await db.get(OnboardingSession, session_id)


class TestCreateSession:
    """Tests for session creation and reuse"""

    async def test_new_session(self, session_engine, hotel, owner, clock, audit):
        session = await session_engine.create_session(hotel.id, owner.id)

        assert session.status == SessionStatus.ACTIVE
        assert session.current_step == 0
        assert session.completed_steps == []
        assert session.draft_data == {}
        assert (session.expires_at - clock.now).days == 7
        assert audit.actions() == ["SESSION_CREATED"]

    async def test_live_session_reused(self, session_engine, hotel, owner):
        first = await session_engine.create_session(hotel.id, owner.id)
        second = await session_engine.create_session(hotel.id, owner.id)

        assert second.id == first.id

    async def test_expired_session_replaced(self, session_engine, session_factory, hotel, owner, clock, audit):
        """Test an expired ACTIVE session is abandoned before a new one starts"""
        first = await session_engine.create_session(hotel.id, owner.id)
        clock.advance(days=8)

        second = await session_engine.create_session(hotel.id, owner.id)

        assert second.id != first.id
        assert (await load_session(session_factory, first.id)).status == SessionStatus.ABANDONED
        assert audit.actions() == ["SESSION_CREATED", "SESSION_ABANDONED", "SESSION_CREATED"]

    async def test_missing_hotel(self, session_engine, owner):
        with pytest.raises(NotFound):
            await session_engine.create_session("hotel-missing", owner.id)

    async def test_missing_user(self, session_engine, hotel):
        with pytest.raises(NotFound):
            await session_engine.create_session(hotel.id, "user-missing")

    async def test_permission_denied(self, session_engine, permissions, hotel, owner):
        permissions.deny(Permission.CREATE_SESSION)

        with pytest.raises(Forbidden) as exc_info:
            await session_engine.create_session(hotel.id, owner.id)

        assert exc_info.value.phase == "permission"


class TestUpdateStep:
    """Tests for step updates"""

    async def test_duplicate_images_stored_once(self, session_engine, hotel, owner, make_image):
        """Test a resubmitted image list never accumulates duplicates"""
        session = await session_engine.create_session(hotel.id, owner.id)

        await session_engine.update_step(session.id, "images", {"images": [make_image("a", "exterior")]}, owner.id)
        await session_engine.update_step(
            session.id,
            "images",
            {"images": [make_image("a", "exterior"), make_image("a", "exterior")]},
            owner.id,
        )

        draft = await session_engine.load_draft(session.id)
        assert [image["id"] for image in draft["images"]["images"]] == ["a"]

    async def test_replace_not_merge(self, session_engine, hotel, owner):
        session = await session_engine.create_session(hotel.id, owner.id)

        await session_engine.update_step(session.id, "amenities", {"selectedAmenities": ["wifi"], "note": "x"}, owner.id)
        await session_engine.update_step(session.id, "amenities", {"selectedAmenities": ["pool"]}, owner.id)

        draft = await session_engine.load_draft(session.id)
        assert draft["amenities"] == {"selectedAmenities": ["pool"]}

    async def test_other_steps_kept(self, session_engine, hotel, owner, amenities_payload, images_payload):
        session = await session_engine.create_session(hotel.id, owner.id)

        await session_engine.update_step(session.id, "amenities", amenities_payload, owner.id)
        await session_engine.update_step(session.id, "images", images_payload, owner.id)

        assert set(await session_engine.load_draft(session.id)) == {"amenities", "images"}

    async def test_invalid_payload_stored_by_default(self, session_engine, hotel, owner):
        """Test drafts are stored even when validation reports errors"""
        session = await session_engine.create_session(hotel.id, owner.id)

        result = await session_engine.update_step(session.id, "rooms", {"rooms": []}, owner.id)

        assert not result.is_valid
        assert (await session_engine.load_draft(session.id))["rooms"] == {"rooms": []}

    async def test_strict_mode_rejects(self, session_engine, hotel, owner):
        session = await session_engine.create_session(hotel.id, owner.id)

        with pytest.raises(ValidationFailed) as exc_info:
            await session_engine.update_step(session.id, "rooms", {"rooms": []}, owner.id, strict=True)

        assert exc_info.value.errors == ["At least one room type is required"]
        assert await session_engine.load_draft(session.id) == {}

    async def test_strict_mode_checks_normalized_payload(self, session_engine, hotel, owner, make_image):
        """Test a payload emptied by normalization is rejected in strict mode"""
        session = await session_engine.create_session(hotel.id, owner.id)

        with pytest.raises(ValidationFailed) as exc_info:
            await session_engine.update_step(
                session.id,
                "images",
                {"images": [make_image("  ", "exterior")]},
                owner.id,
                strict=True,
            )

        assert exc_info.value.errors == ["At least one image is required"]
        assert await session_engine.load_draft(session.id) == {}

    async def test_result_describes_stored_payload(self, session_engine, hotel, owner, make_image):
        session = await session_engine.create_session(hotel.id, owner.id)

        result = await session_engine.update_step(
            session.id,
            "images",
            {"images": [make_image("", "exterior")]},
            owner.id,
        )

        assert not result.is_valid
        assert (await session_engine.load_draft(session.id))["images"] == {"images": []}

    async def test_step_permission(self, session_engine, permissions, hotel, owner, images_payload):
        """Test each step is guarded by its own permission"""
        session = await session_engine.create_session(hotel.id, owner.id)
        permissions.deny(Permission.UPDATE_IMAGES)

        with pytest.raises(Forbidden):
            await session_engine.update_step(session.id, "images", images_payload, owner.id)
        await session_engine.update_step(session.id, "amenities", {"selectedAmenities": ["wifi"]}, owner.id)

        assert list(await session_engine.load_draft(session.id)) == ["amenities"]

    async def test_unknown_step_stored(self, session_engine, hotel, owner):
        session = await session_engine.create_session(hotel.id, owner.id)

        result = await session_engine.update_step(session.id, "pricing-rules", {"weekendMarkup": 15}, owner.id)

        assert result.is_valid
        assert (await session_engine.load_draft(session.id))["pricing-rules"] == {"weekendMarkup": 15}

    async def test_missing_session(self, session_engine, owner):
        with pytest.raises(NotFound):
            await session_engine.update_step("session-missing", "amenities", {}, owner.id)

    async def test_expired_session_rejected(self, session_engine, hotel, owner, clock):
        """Test expiry is enforced before the sweep runs"""
        session = await session_engine.create_session(hotel.id, owner.id)
        clock.advance(days=7)

        with pytest.raises(InvalidState):
            await session_engine.update_step(session.id, "amenities", {"selectedAmenities": []}, owner.id)

    async def test_audit_records_previous_data(self, session_engine, hotel, owner, audit):
        session = await session_engine.create_session(hotel.id, owner.id)

        await session_engine.update_step(session.id, "amenities", {"selectedAmenities": ["wifi"]}, owner.id)
        await session_engine.update_step(session.id, "amenities", {"selectedAmenities": ["pool"]}, owner.id)

        event = audit.events[-1]
        assert event.action.value == "STEP_UPDATED"
        assert event.previous_data == {"selectedAmenities": ["wifi"]}
        assert event.new_data == {"selectedAmenities": ["pool"]}

    async def test_audit_failure_does_not_fail_update(
        self, session_factory, integration_engine, permissions, onboarding_settings, clock, failing_audit, hotel, owner
    ):
        from hotel_onboarding.onboarding.session_engine import OnboardingSessionEngine

        engine = OnboardingSessionEngine(
            session_factory,
            permissions=permissions,
            integration=integration_engine,
            audit=failing_audit,
            config=onboarding_settings,
            clock=clock,
        )
        session = await engine.create_session(hotel.id, owner.id)

        result = await engine.update_step(session.id, "amenities", {"selectedAmenities": ["wifi"]}, owner.id)

        assert result.is_valid


class TestProgress:
    """Tests for step completion and progress"""

    async def test_mark_step_completed_idempotent(self, session_engine, hotel, owner, audit):
        session = await session_engine.create_session(hotel.id, owner.id)

        await session_engine.mark_step_completed(session.id, "amenities", owner.id)
        progress = await session_engine.mark_step_completed(session.id, "amenities", owner.id)

        assert progress.completed_steps == ["amenities"]
        assert audit.actions().count("STEP_COMPLETED") == 1

    async def test_current_step_never_regresses(self, session_engine, hotel, owner):
        session = await session_engine.create_session(hotel.id, owner.id)

        await session_engine.mark_step_completed(session.id, "rooms", owner.id)
        progress = await session_engine.mark_step_completed(session.id, "property-info", owner.id)

        assert progress.current_step == 4
        assert progress.completed_steps == ["rooms", "property-info"]

    async def test_completion_percentage(self, session_engine, hotel, owner):
        session = await session_engine.create_session(hotel.id, owner.id)
        for step_id in ("property-info", "amenities", "images", "rooms", "business-features", "pricing-rules", "review"):
            await session_engine.mark_step_completed(session.id, step_id, owner.id)

        progress = await session_engine.get_progress(session.id)

        assert progress.total_steps == 14
        assert progress.completion_percentage == 50.0
        assert progress.to_dict()["completionPercentage"] == 50.0

    async def test_mark_completed_outside_active(self, session_engine, hotel, owner, clock):
        session = await session_engine.create_session(hotel.id, owner.id)
        clock.advance(days=8)
        await session_engine.sweep_expired()

        with pytest.raises(InvalidState):
            await session_engine.mark_step_completed(session.id, "amenities", owner.id)


class TestCompleteSession:
    """Tests for session completion"""

    async def test_full_onboarding(
        self,
        session_engine,
        session_factory,
        notifier,
        audit,
        hotel,
        owner,
        property_info_payload,
        amenities_payload,
        images_payload,
        rooms_payload,
    ):
        session = await session_engine.create_session(hotel.id, owner.id)
        for step_id, payload in (
            ("property-info", property_info_payload),
            ("amenities", amenities_payload),
            ("images", images_payload),
            ("rooms", rooms_payload),
        ):
            await session_engine.update_step(session.id, step_id, payload, owner.id)

        result = await session_engine.complete_session(session.id, owner.id)

        stored = await load_session(session_factory, session.id)
        assert stored.status == SessionStatus.COMPLETED
        assert stored.quality_score == result.quality_score
        assert result.hotel_id == hotel.id
        assert 0 < result.quality_score <= 100

        async with session_factory() as db:
            record = await db.get(EnhancedHotel, hotel.id)
            rooms = (await db.execute(select(EnhancedRoom))).scalars().all()
        assert record.onboarding_status == OnboardingStatus.COMPLETED
        assert record.quality_metrics["overallScore"] == result.quality_score
        assert record.basic_info["totalRooms"] == 2
        assert len(rooms) == 2
        for room in rooms:
            assert room.amenities["inherited"] == ["wifi", "parking", "spa", "restaurant", "meeting-room"]
            assert room.availability["checkInTime"] == "15:00"

        assert [u.type for u in notifier.updates] == [SystemUpdateType.HOTEL_ONBOARDING_COMPLETED]
        assert audit.actions()[-1] == "SESSION_COMPLETED"

    async def test_zero_rooms(self, session_engine, session_factory, hotel, owner, property_info_payload):
        """Test completion succeeds for a hotel without rooms"""
        session = await session_engine.create_session(hotel.id, owner.id)
        await session_engine.update_step(session.id, "property-info", property_info_payload, owner.id)

        await session_engine.complete_session(session.id, owner.id)

        async with session_factory() as db:
            record = await db.get(EnhancedHotel, hotel.id)
        assert record.onboarding_status == OnboardingStatus.COMPLETED
        assert record.basic_info["totalRooms"] == 0

    async def test_validation_failure_keeps_session_active(self, session_engine, session_factory, hotel, owner):
        session = await session_engine.create_session(hotel.id, owner.id)
        await session_engine.update_step(session.id, "rooms", {"rooms": []}, owner.id)

        with pytest.raises(ValidationFailed) as exc_info:
            await session_engine.complete_session(session.id, owner.id)

        assert "property-info: step is required" in exc_info.value.errors
        assert "rooms: At least one room type is required" in exc_info.value.errors
        assert (await load_session(session_factory, session.id)).status == SessionStatus.ACTIVE

    async def test_integration_failure_rolls_back(
        self,
        session_engine,
        integration_engine,
        session_factory,
        notifier,
        hotel,
        owner,
        property_info_payload,
        rooms_payload,
        monkeypatch,
    ):
        """Test a failure halfway through the commit leaves nothing behind"""
        session = await session_engine.create_session(hotel.id, owner.id)
        await session_engine.update_step(session.id, "property-info", property_info_payload, owner.id)
        await session_engine.update_step(session.id, "rooms", rooms_payload, owner.id)

        def explode(hotel, rooms, now):
            raise RuntimeError("disk full")

        monkeypatch.setattr(integration_engine, "_propagate", explode)

        with pytest.raises(IntegrationFailed) as exc_info:
            await session_engine.complete_session(session.id, owner.id)

        assert isinstance(exc_info.value.cause, RuntimeError)
        async with session_factory() as db:
            stored = await db.get(EnhancedHotel, hotel.id)
            rooms = (await db.execute(select(EnhancedRoom).where(EnhancedRoom.enhanced_hotel_id == hotel.id))).scalars().all()
        assert stored.onboarding_status == OnboardingStatus.IN_PROGRESS
        assert stored.quality_metrics is None
        assert rooms == []
        assert (await load_session(session_factory, session.id)).status == SessionStatus.ACTIVE
        assert notifier.updates == []

    async def test_permission_denied(self, session_engine, session_factory, permissions, hotel, owner, property_info_payload):
        session = await session_engine.create_session(hotel.id, owner.id)
        await session_engine.update_step(session.id, "property-info", property_info_payload, owner.id)
        permissions.deny(Permission.COMPLETE_SESSION)

        with pytest.raises(Forbidden):
            await session_engine.complete_session(session.id, owner.id)

        assert (await load_session(session_factory, session.id)).status == SessionStatus.ACTIVE

    async def test_completed_session_is_final(self, session_engine, hotel, owner, clock, property_info_payload):
        """Test no transition leaves COMPLETED"""
        session = await session_engine.create_session(hotel.id, owner.id)
        await session_engine.update_step(session.id, "property-info", property_info_payload, owner.id)
        await session_engine.complete_session(session.id, owner.id)

        with pytest.raises(InvalidState):
            await session_engine.update_step(session.id, "amenities", {"selectedAmenities": []}, owner.id)
        with pytest.raises(InvalidState):
            await session_engine.complete_session(session.id, owner.id)

        clock.advance(days=30)
        assert await session_engine.sweep_expired() == 0

    async def test_notification_failure_does_not_roll_back(
        self, session_factory, permissions, onboarding_settings, clock, failing_notifier, hotel, owner, property_info_payload
    ):
        from hotel_onboarding.integration.engine import DataIntegrationEngine
        from hotel_onboarding.onboarding.session_engine import OnboardingSessionEngine

        integration = DataIntegrationEngine(
            session_factory, notifier=failing_notifier, config=onboarding_settings, clock=clock
        )
        engine = OnboardingSessionEngine(
            session_factory, permissions=permissions, integration=integration, config=onboarding_settings, clock=clock
        )
        session = await engine.create_session(hotel.id, owner.id)
        await engine.update_step(session.id, "property-info", property_info_payload, owner.id)

        await engine.complete_session(session.id, owner.id)

        assert (await load_session(session_factory, session.id)).status == SessionStatus.COMPLETED


class TestSweepExpired:
    """Tests for the expiry sweep"""

    async def test_sweep_counts_once(self, session_engine, session_factory, hotel, owner, clock):
        session = await session_engine.create_session(hotel.id, owner.id)
        clock.advance(days=7)

        assert await session_engine.sweep_expired() == 1
        assert await session_engine.sweep_expired() == 0
        assert (await load_session(session_factory, session.id)).status == SessionStatus.ABANDONED

    async def test_live_sessions_untouched(self, session_engine, hotel, owner, clock):
        await session_engine.create_session(hotel.id, owner.id)
        clock.advance(days=6)

        assert await session_engine.sweep_expired() == 0

    async def test_abandoned_session_is_final(self, session_engine, hotel, owner, clock):
        session = await session_engine.create_session(hotel.id, owner.id)
        clock.advance(days=8)
        await session_engine.sweep_expired()

        with pytest.raises(InvalidState):
            await session_engine.complete_session(session.id, owner.id)


class TestDraftAccess:
    """Tests for draft save/load and active session lookup"""

    async def test_save_draft_merges_steps(self, session_engine, hotel, owner, amenities_payload, make_image):
        session = await session_engine.create_session(hotel.id, owner.id)
        await session_engine.update_step(session.id, "amenities", amenities_payload, owner.id)

        results = await session_engine.save_draft(
            session.id,
            {"images": {"images": [make_image("a", "exterior"), make_image("a", "exterior")]}},
            owner.id,
        )

        draft = await session_engine.load_draft(session.id)
        assert draft["amenities"] == amenities_payload
        assert len(draft["images"]["images"]) == 1
        assert results["images"].is_valid

    async def test_save_draft_checks_step_permissions(self, session_engine, permissions, hotel, owner, amenities_payload, images_payload):
        """Test saving a whole draft needs the permission of every step in it"""
        session = await session_engine.create_session(hotel.id, owner.id)
        permissions.deny(Permission.UPDATE_IMAGES)

        with pytest.raises(Forbidden):
            await session_engine.save_draft(
                session.id,
                {"amenities": amenities_payload, "images": images_payload},
                owner.id,
            )

        assert await session_engine.load_draft(session.id) == {}
        assert (owner.id, hotel.id, Permission.UPDATE_AMENITIES) in permissions.calls

    async def test_save_draft_validates_normalized_payload(self, session_engine, hotel, owner, make_image):
        session = await session_engine.create_session(hotel.id, owner.id)

        results = await session_engine.save_draft(
            session.id,
            {"images": {"images": [make_image(" ", "exterior")]}},
            owner.id,
        )

        assert results["images"].errors == ["At least one image is required"]

    async def test_user_active_session(self, session_engine, hotel, owner, clock):
        session = await session_engine.create_session(hotel.id, owner.id)

        active = await session_engine.get_user_active_session(owner.id)
        assert active.id == session.id

        clock.advance(days=8)
        assert await session_engine.get_user_active_session(owner.id) is None
