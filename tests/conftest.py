"""
Test Suite Configuration
"""
from datetime import datetime, timedelta
from typing import Any, AsyncGenerator, Dict, List, Set

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from hotel_onboarding.config import OnboardingSettings, Settings
from hotel_onboarding.database.connection import create_session_factory
from hotel_onboarding.database.models import Base, EnhancedHotel, OnboardingStatus, User
from hotel_onboarding.integration.engine import DataIntegrationEngine
from hotel_onboarding.integration.notifiers import RecordingNotifier
from hotel_onboarding.interfaces import AuditEvent, Permission, SystemUpdate
from hotel_onboarding.onboarding.session_engine import OnboardingSessionEngine


# =============================================================================
# COLLABORATOR FAKES
# =============================================================================

class MutableClock:
    """Clock the tests move by hand"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakePermissionChecker:
    """Allows everything except explicitly denied permissions"""

    def __init__(self):
        self.denied: Set[Permission] = set()
        self.calls: List[tuple] = []

    def deny(self, permission: Permission) -> None:
        self.denied.add(permission)

    async def check_permission(self, user_id: str, hotel_id: str, permission: Permission) -> bool:
        self.calls.append((user_id, hotel_id, permission))
        return permission not in self.denied


class RecordingAuditRecorder:
    def __init__(self):
        self.events: List[AuditEvent] = []

    async def record_event(self, event: AuditEvent) -> None:
        self.events.append(event)

    def actions(self) -> List[str]:
        return [event.action.value for event in self.events]


class FailingAuditRecorder:
    async def record_event(self, event: AuditEvent) -> None:
        raise ConnectionError("audit store unavailable")


class FailingNotifier:
    async def notify(self, update: SystemUpdate) -> None:
        raise ConnectionError("broker unavailable")


# =============================================================================
# SETTINGS AND STORAGE
# =============================================================================

@pytest.fixture
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        APP_ENV="testing",
    )


@pytest.fixture
def onboarding_settings() -> OnboardingSettings:
    return OnboardingSettings(
        session_ttl_days=7,
        total_steps=14,
        strict_validation=False,
        required_steps=["property-info"],
    )


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock(datetime(2025, 1, 1, 12, 0, 0))


@pytest.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine shared by every connection of one test"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return create_session_factory(test_engine)


# =============================================================================
# ENGINES
# =============================================================================

@pytest.fixture
def permissions() -> FakePermissionChecker:
    return FakePermissionChecker()


@pytest.fixture
def audit() -> RecordingAuditRecorder:
    return RecordingAuditRecorder()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def integration_engine(session_factory, notifier, onboarding_settings, clock) -> DataIntegrationEngine:
    return DataIntegrationEngine(
        session_factory,
        notifier=notifier,
        config=onboarding_settings,
        clock=clock,
    )


@pytest.fixture
def session_engine(
    session_factory,
    permissions,
    integration_engine,
    audit,
    onboarding_settings,
    clock,
) -> OnboardingSessionEngine:
    return OnboardingSessionEngine(
        session_factory,
        permissions=permissions,
        integration=integration_engine,
        audit=audit,
        config=onboarding_settings,
        clock=clock,
    )


# =============================================================================
# SEED DATA
# =============================================================================

@pytest.fixture
async def owner(session_factory) -> User:
    async with session_factory() as db:
        user = User(id="user-1", email="owner@example.com", full_name="Olivia Owner")
        db.add(user)
        await db.commit()
    return user


@pytest.fixture
async def hotel(session_factory, owner) -> EnhancedHotel:
    async with session_factory() as db:
        record = EnhancedHotel(
            id="hotel-1",
            owner_id=owner.id,
            basic_info={"name": "Harbor View"},
            onboarding_status=OnboardingStatus.IN_PROGRESS,
        )
        db.add(record)
        await db.commit()
    return record


# =============================================================================
# STEP PAYLOADS
# =============================================================================

def image(image_id: str, category: str, quality: float = 90, width: int = 0, height: int = 0) -> Dict[str, Any]:
    document: Dict[str, Any] = {"id": image_id, "category": category, "qualityScore": quality}
    if width or height:
        document["metadata"] = {"dimensions": {"width": width, "height": height}}
    return document


@pytest.fixture
def make_image():
    return image


@pytest.fixture
def full_policies() -> Dict[str, Any]:
    return {
        "checkIn": {"standardTime": "15:00"},
        "checkOut": {"standardTime": "11:00"},
        "cancellation": {"type": "FLEXIBLE", "freeCancellationHours": 24},
        "booking": {"instantBooking": True},
        "pet": {"allowed": False},
        "smoking": {"allowed": False},
    }


@pytest.fixture
def full_location() -> Dict[str, Any]:
    return {
        "nearbyAttractions": [{"name": "Maritime Museum", "distance": 0.8}],
        "transportation": {"airport": {"name": "City Airport", "distance": 12}},
        "accessibility": {"wheelchairAccessible": True},
        "neighborhood": {"description": "Quiet waterfront district"},
    }


@pytest.fixture
def long_description() -> str:
    """120 words mentioning what makes the hotel unique, its location and amenities"""
    opening = "A unique harbor hotel in a central location with generous amenities"
    return " ".join([opening] + ["comfortable"] * 109)


@pytest.fixture
def property_info_payload(full_policies, full_location, long_description) -> Dict[str, Any]:
    return {
        "name": "Harbor View",
        "propertyType": "HOTEL",
        "starRating": 4,
        "description": long_description,
        "policies": full_policies,
        "locationDetails": full_location,
        "contactInfo": {"phone": "+1 555 0100"},
    }


@pytest.fixture
def amenities_payload() -> Dict[str, Any]:
    return {
        "selectedAmenities": {
            "propertyWide": ["wifi", "parking"],
            "wellness": ["spa"],
            "dining": ["restaurant"],
            "business": ["meeting-room"],
            "roomSpecific": ["minibar"],
        }
    }


@pytest.fixture
def images_payload() -> Dict[str, Any]:
    return {
        "images": [
            image("img-1", "exterior"),
            image("img-2", "lobby"),
            image("img-3", "rooms"),
        ]
    }


@pytest.fixture
def rooms_payload() -> Dict[str, Any]:
    return {
        "rooms": [
            {
                "name": "Deluxe King",
                "type": "DELUXE",
                "images": [image("room-1", "rooms")],
                "amenities": {"specific": ["bathtub"]},
            },
            {
                "name": "Twin",
                "type": "STANDARD",
                "images": [image("room-2", "rooms")],
            },
        ]
    }


@pytest.fixture
def failing_notifier() -> FailingNotifier:
    return FailingNotifier()


@pytest.fixture
def failing_audit() -> FailingAuditRecorder:
    return FailingAuditRecorder()
