"""
Database Models - Onboarding Schema

This module defines the persistence models for hotel onboarding:

Canonical aggregates:
- EnhancedHotel: richly structured hotel record consumed by search/booking
- EnhancedRoom: child room record with inherited/specific/override amenities

Workflow state:
- OnboardingSession: step-wise draft accumulated by the wizard
- QualityReport: persisted quality assessment snapshots

Legacy sources:
- LegacyHotel / LegacyRoom: flat records migrated into the aggregates
- User: owners; only existence is checked here
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from sqlalchemy import (
    JSON,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


def new_id() -> str:
    """Opaque string identifier"""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, the convention for every DateTime column"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =============================================================================
# ENUMERATIONS
# =============================================================================

class SessionStatus(str, Enum):
    """Onboarding session lifecycle"""
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    ABANDONED = "ABANDONED"


class OnboardingStatus(str, Enum):
    """Onboarding progress of an enhanced hotel"""
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


# =============================================================================
# LEGACY SOURCE TABLES
# =============================================================================

class User(Base):
    """Property owner account"""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    full_name: Mapped[Optional[str]] = mapped_column(String(200))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class LegacyHotel(Base):
    """
    Legacy Hotel Table

    Flat hotel listing that predates the onboarding wizard. Amenities and
    images are plain lists without categories or quality information.
    """
    __tablename__ = "hotels"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    address: Mapped[Optional[str]] = mapped_column(String(500))
    city: Mapped[Optional[str]] = mapped_column(String(100))
    state: Mapped[Optional[str]] = mapped_column(String(100))
    pincode: Mapped[Optional[str]] = mapped_column(String(20))
    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    email: Mapped[Optional[str]] = mapped_column(String(255))
    website: Mapped[Optional[str]] = mapped_column(String(500))
    star_rating: Mapped[Optional[int]] = mapped_column(Integer)
    amenities: Mapped[List[str]] = mapped_column(JSONDocument, default=list)
    images: Mapped[List[str]] = mapped_column(JSONDocument, default=list)
    owner_id: Mapped[Optional[str]] = mapped_column(ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class LegacyRoom(Base):
    """Legacy room type belonging to a LegacyHotel"""
    __tablename__ = "rooms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    hotel_id: Mapped[str] = mapped_column(
        ForeignKey("hotels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    room_type: Mapped[Optional[str]] = mapped_column(String(50))
    description: Mapped[Optional[str]] = mapped_column(Text)
    max_occupancy: Mapped[Optional[int]] = mapped_column(Integer)
    bed_count: Mapped[Optional[int]] = mapped_column(Integer)
    bed_type: Mapped[Optional[str]] = mapped_column(String(50))
    base_price: Mapped[Optional[float]] = mapped_column(Numeric(10, 2, asdecimal=False))
    weekend_price: Mapped[Optional[float]] = mapped_column(Numeric(10, 2, asdecimal=False))
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    room_size: Mapped[Optional[float]] = mapped_column(Float)
    amenities: Mapped[List[str]] = mapped_column(JSONDocument, default=list)
    images: Mapped[List[str]] = mapped_column(JSONDocument, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


# =============================================================================
# CANONICAL AGGREGATES
# =============================================================================

class EnhancedHotel(Base):
    """
    Enhanced Hotel Aggregate

    Every structured section is a JSON document keyed in camelCase, the shape
    downstream consumers read. ``quality_metrics`` always holds the output of
    the last scoring run over the current content.
    """
    __tablename__ = "enhanced_hotels"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    original_hotel_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("hotels.id"), unique=True, nullable=True
    )
    owner_id: Mapped[Optional[str]] = mapped_column(ForeignKey("users.id"), index=True)

    basic_info: Mapped[Dict[str, Any]] = mapped_column(JSONDocument, default=dict)
    property_description: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONDocument)
    location_details: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONDocument)
    policies: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONDocument)
    amenities: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONDocument)
    images: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONDocument)
    business_features: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONDocument)
    quality_metrics: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONDocument)

    onboarding_status: Mapped[OnboardingStatus] = mapped_column(
        SQLEnum(OnboardingStatus), default=OnboardingStatus.NOT_STARTED, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_enhanced_hotels_status", "onboarding_status"),
    )


class EnhancedRoom(Base):
    """
    Enhanced Room Aggregate

    ``amenities`` has the shape {"inherited": [...], "specific": [...],
    "overrides": [...]}; ``inherited`` is rewritten together with any
    change to the parent's amenity buckets.
    """
    __tablename__ = "enhanced_rooms"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    enhanced_hotel_id: Mapped[str] = mapped_column(
        ForeignKey("enhanced_hotels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    original_room_id: Mapped[Optional[str]] = mapped_column(ForeignKey("rooms.id"), unique=True)

    basic_info: Mapped[Dict[str, Any]] = mapped_column(JSONDocument, default=dict)
    description: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONDocument)
    amenities: Mapped[Dict[str, Any]] = mapped_column(JSONDocument, default=dict)
    images: Mapped[List[Dict[str, Any]]] = mapped_column(JSONDocument, default=list)
    layout: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONDocument)
    pricing: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONDocument)
    availability: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONDocument)
    quality_metrics: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONDocument)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


# =============================================================================
# WORKFLOW STATE
# =============================================================================

class OnboardingSession(Base):
    """
    Onboarding Session

    Draft data maps step id to the last payload stored for that step.
    At most one ACTIVE session exists per (hotel, user); the partial unique
    index backs the check done by the session engine.
    """
    __tablename__ = "onboarding_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    enhanced_hotel_id: Mapped[str] = mapped_column(
        ForeignKey("enhanced_hotels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    current_step: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completed_steps: Mapped[List[str]] = mapped_column(JSONDocument, default=list)
    draft_data: Mapped[Dict[str, Any]] = mapped_column(JSONDocument, default=dict)
    quality_score: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    status: Mapped[SessionStatus] = mapped_column(
        SQLEnum(SessionStatus), default=SessionStatus.ACTIVE, nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (
        Index("ix_onboarding_sessions_status_expiry", "status", "expires_at"),
        Index(
            "uq_onboarding_sessions_active_pair",
            "enhanced_hotel_id",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
    )

    def is_live(self, now: datetime) -> bool:
        """ACTIVE and not yet past its expiry"""
        return self.status == SessionStatus.ACTIVE and self.expires_at > now


class QualityReport(Base):
    """Persisted quality assessment of an enhanced hotel"""
    __tablename__ = "quality_reports"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    enhanced_hotel_id: Mapped[str] = mapped_column(
        ForeignKey("enhanced_hotels.id", ondelete="CASCADE"), nullable=False, index=True
    )
    overall_score: Mapped[float] = mapped_column(Float, nullable=False)
    image_score: Mapped[float] = mapped_column(Float, nullable=False)
    content_score: Mapped[float] = mapped_column(Float, nullable=False)
    policy_score: Mapped[float] = mapped_column(Float, nullable=False)
    breakdown: Mapped[Dict[str, Any]] = mapped_column(JSONDocument, default=dict)
    missing_information: Mapped[List[Dict[str, Any]]] = mapped_column(JSONDocument, default=list)
    recommendations: Mapped[List[Dict[str, Any]]] = mapped_column(JSONDocument, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
