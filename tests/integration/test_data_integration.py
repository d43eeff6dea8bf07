"""
Integration Tests - Data Integration Engine
"""
import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select

from hotel_onboarding.database.models import (
    EnhancedHotel,
    EnhancedRoom,
    LegacyHotel,
    LegacyRoom,
    OnboardingStatus,
    QualityReport,
)
from hotel_onboarding.errors import NotFound, ValidationFailed
from hotel_onboarding.interfaces import SystemUpdateType


@pytest.fixture
async def legacy_hotel(session_factory, owner) -> LegacyHotel:
    async with session_factory() as db:
        record = LegacyHotel(
            id="legacy-1",
            name="Old Harbor Inn",
            description="A cozy inn by the water with sea views and a short walk to the old town.",
            address="1 Quay Street",
            city="Porto",
            pincode="4000",
            latitude=41.14,
            longitude=-8.61,
            phone="+351 555 0100",
            star_rating=3,
            amenities=["wifi", "parking", "wifi"],
            images=["https://img.example.com/front.jpg", "https://img.example.com/side.jpg"],
            owner_id=owner.id,
        )
        db.add(record)
        db.add_all([
            LegacyRoom(
                id="legacy-room-1",
                hotel_id="legacy-1",
                name="Sea View Double",
                room_type="DELUXE",
                max_occupancy=2,
                bed_count=1,
                bed_type="queen",
                base_price=120.0,
                amenities=["balcony"],
            ),
            LegacyRoom(id="legacy-room-2", hotel_id="legacy-1", name="Garden Twin", bed_count=2),
        ])
        await db.commit()
    return record


async def count(session_factory, model) -> int:
    async with session_factory() as db:
        return (await db.execute(select(func.count()).select_from(model))).scalar_one()


class TestLegacyMigration:
    """Tests for legacy hotel migration"""

    async def test_migrate(self, integration_engine, session_factory, notifier, legacy_hotel):
        result = await integration_engine.migrate_legacy_hotel(legacy_hotel.id)

        async with session_factory() as db:
            record = await db.get(EnhancedHotel, result.hotel_id)
            rooms = (await db.execute(select(EnhancedRoom).order_by(EnhancedRoom.original_room_id))).scalars().all()

        assert record.original_hotel_id == "legacy-1"
        assert record.basic_info["name"] == "Old Harbor Inn"
        assert record.basic_info["totalRooms"] == 2
        assert record.amenities == {"propertyWide": ["wifi", "parking"]}
        assert len(record.images["exterior"]) == 2
        assert record.quality_metrics["overallScore"] == result.quality_score
        assert [room.original_room_id for room in rooms] == ["legacy-room-1", "legacy-room-2"]
        assert rooms[0].amenities == {"inherited": ["wifi", "parking"], "specific": ["balcony"], "overrides": []}
        assert rooms[0].basic_info["bedConfiguration"]["beds"] == [{"type": "QUEEN", "count": 1}]
        assert rooms[0].pricing["basePrice"] == 120.0
        assert [u.type for u in notifier.updates] == [SystemUpdateType.HOTEL_CREATED]

    async def test_migrate_twice(self, integration_engine, session_factory, notifier, legacy_hotel):
        """Test a second migration returns the first aggregate with a warning"""
        first = await integration_engine.migrate_legacy_hotel(legacy_hotel.id)
        second = await integration_engine.migrate_legacy_hotel(legacy_hotel.id)

        assert second.hotel_id == first.hotel_id
        assert second.warnings == ["Hotel already migrated"]
        assert sorted(second.room_ids) == sorted(first.room_ids)
        assert await count(session_factory, EnhancedHotel) == 1
        assert len(notifier.updates) == 1

    async def test_missing_legacy_hotel(self, integration_engine):
        with pytest.raises(NotFound) as exc_info:
            await integration_engine.migrate_legacy_hotel("legacy-missing")

        assert exc_info.value.phase == "lookup"

    async def test_migrate_all_and_verify(self, integration_engine, session_factory, legacy_hotel):
        async with session_factory() as db:
            db.add(LegacyHotel(id="legacy-2", name="Station Hotel"))
            await db.commit()

        before = await integration_engine.verify_data_migration()
        summary = await integration_engine.migrate_all_legacy_hotels()
        after = await integration_engine.verify_data_migration()

        assert before["missing"] == ["legacy-1", "legacy-2"]
        assert not before["isComplete"]
        assert summary == {"migrated": 2, "skipped": 0, "failed": 0, "errors": []}
        assert after == {"legacyHotels": 2, "migratedHotels": 2, "missing": [], "isComplete": True}
        assert (await integration_engine.migrate_all_legacy_hotels())["migrated"] == 0


class TestHotelPlaceholder:
    """Tests for creating a hotel aggregate for a new owner"""

    async def test_create_placeholder(self, integration_engine, session_factory, notifier, owner):
        hotel = await integration_engine.create_hotel_placeholder(owner.id)

        async with session_factory() as db:
            stored = await db.get(EnhancedHotel, hotel.id)
        assert stored.owner_id == owner.id
        assert stored.basic_info == {"name": "New Hotel"}
        assert stored.onboarding_status == OnboardingStatus.NOT_STARTED
        assert [u.type for u in notifier.updates] == [SystemUpdateType.HOTEL_CREATED]
        assert notifier.updates[0].entity_id == hotel.id

    async def test_onboarding_starts_on_placeholder(self, integration_engine, session_engine, owner):
        hotel = await integration_engine.create_hotel_placeholder(owner.id, name="Dockside Rooms")

        session = await session_engine.create_session(hotel.id, owner.id)

        assert session.enhanced_hotel_id == hotel.id

    async def test_missing_owner(self, integration_engine, session_factory, notifier):
        with pytest.raises(NotFound):
            await integration_engine.create_hotel_placeholder("user-missing")

        assert await count(session_factory, EnhancedHotel) == 0
        assert notifier.updates == []


class TestHotelUpdates:
    """Tests for hotel updates and room creation"""

    async def test_amenity_update_reaches_every_room(self, integration_engine, session_factory, notifier, hotel):
        await integration_engine.add_room(hotel.id, {"name": "Suite", "amenities": {"specific": ["tub"]}})
        await integration_engine.add_room(hotel.id, {"name": "Twin"})

        result = await integration_engine.update_hotel(
            hotel.id,
            amenities={"propertyWide": ["wifi", "pool"], "wellness": ["spa"], "roomSpecific": ["minibar"]},
        )

        async with session_factory() as db:
            rooms = (await db.execute(select(EnhancedRoom))).scalars().all()
        assert len(result.room_ids) == 2
        for room in rooms:
            assert room.amenities["inherited"] == ["wifi", "pool", "spa"]
        assert {tuple(room.amenities["specific"]) for room in rooms} == {("tub",), ()}
        assert notifier.updates[-1].type == SystemUpdateType.HOTEL_UPDATED

    async def test_policy_update_reaches_rooms(self, integration_engine, session_factory, hotel, full_policies):
        await integration_engine.add_room(hotel.id, {"name": "Suite"})

        await integration_engine.update_hotel(
            hotel.id,
            policies={**full_policies, "checkIn": {"time": "14:00"}},
        )

        async with session_factory() as db:
            room = (await db.execute(select(EnhancedRoom))).scalars().one()
            record = await db.get(EnhancedHotel, hotel.id)
        assert room.availability["checkInTime"] == "14:00"
        assert room.availability["checkOutTime"] == "11:00"
        assert record.quality_metrics["policyClarity"] == 100

    async def test_update_requires_changes(self, integration_engine, hotel):
        with pytest.raises(ValidationFailed):
            await integration_engine.update_hotel(hotel.id)

    async def test_malformed_update(self, integration_engine, hotel):
        with pytest.raises(ValidationFailed) as exc_info:
            await integration_engine.update_hotel(hotel.id, amenities={"propertyWide": "wifi"})

        assert isinstance(exc_info.value.__cause__, PydanticValidationError)

    async def test_update_missing_hotel(self, integration_engine):
        with pytest.raises(NotFound):
            await integration_engine.update_hotel("hotel-missing", amenities={"propertyWide": ["wifi"]})

    async def test_add_room(self, integration_engine, session_factory, notifier, hotel):
        await integration_engine.update_hotel(hotel.id, amenities={"dining": ["restaurant"]})

        result = await integration_engine.add_room(hotel.id, {"name": "Suite"})

        async with session_factory() as db:
            room = await db.get(EnhancedRoom, result.room_ids[0])
            record = await db.get(EnhancedHotel, hotel.id)
        assert room.amenities["inherited"] == ["restaurant"]
        assert room.pricing == {"basePrice": 100, "currency": "USD"}
        assert record.basic_info["totalRooms"] == 1
        assert result.warnings == ["Room 'Suite' has no images"]
        assert notifier.updates[-1].type == SystemUpdateType.ROOM_CREATED
        assert notifier.updates[-1].entity_id == room.id

    async def test_add_duplicate_room(self, integration_engine, hotel):
        await integration_engine.add_room(hotel.id, {"name": "Suite"})

        with pytest.raises(ValidationFailed):
            await integration_engine.add_room(hotel.id, {"name": "Suite"})

    async def test_add_unnamed_room(self, integration_engine, hotel):
        with pytest.raises(ValidationFailed) as exc_info:
            await integration_engine.add_room(hotel.id, {"type": "SUITE"})

        assert exc_info.value.errors == ["Room 1: name is required"]


class TestCommitSession:
    """Tests for direct session commits"""

    async def test_recommit_returns_stored_outcome(
        self, session_engine, integration_engine, notifier, hotel, owner, property_info_payload
    ):
        session = await session_engine.create_session(hotel.id, owner.id)
        await session_engine.update_step(session.id, "property-info", property_info_payload, owner.id)
        first = await integration_engine.commit_session(session.id)

        second = await integration_engine.commit_session(session.id)

        assert second.hotel_id == first.hotel_id
        assert second.quality_score == first.quality_score
        assert second.warnings == ["Session already completed"]
        assert len(notifier.updates) == 1

    async def test_missing_session(self, integration_engine):
        with pytest.raises(NotFound):
            await integration_engine.commit_session("session-missing")


class TestReporting:
    """Tests for quality reports and integration status"""

    async def test_generate_quality_report(self, integration_engine, session_factory, hotel):
        assessment = await integration_engine.generate_quality_report(hotel.id)

        async with session_factory() as db:
            reports = (await db.execute(select(QualityReport))).scalars().all()
            record = await db.get(EnhancedHotel, hotel.id)
        assert len(reports) == 1
        assert reports[0].overall_score == assessment.metrics.overall_score
        assert reports[0].recommendations[0]["priority"] == "high"
        assert record.quality_metrics["overallScore"] == assessment.metrics.overall_score

    async def test_integration_status(self, session_engine, integration_engine, hotel, owner):
        await session_engine.create_session(hotel.id, owner.id)
        await integration_engine.add_room(hotel.id, {"name": "Suite"})

        status = await integration_engine.get_integration_status(hotel.id)

        assert status["hotelId"] == hotel.id
        assert status["onboardingStatus"] == "IN_PROGRESS"
        assert status["roomCount"] == 1
        assert status["activeSessions"] == 1
        assert status["migratedFrom"] is None

    async def test_status_missing_hotel(self, integration_engine):
        with pytest.raises(NotFound):
            await integration_engine.get_integration_status("hotel-missing")
