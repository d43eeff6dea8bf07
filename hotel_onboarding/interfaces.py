"""
Collaborator Interfaces

The onboarding core depends on three narrow collaborators:

- PermissionChecker: allow/deny for a (user, hotel, permission) triple
- AuditRecorder: fire-and-forget audit trail
- Notifier: fire-and-forget system-update events for search, booking
  and analytics

Audit and notification failures are logged and swallowed through
``record_event_safely`` / ``notify_safely``; they never fail an operation.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Protocol, runtime_checkable

import structlog
from prometheus_client import Counter

from hotel_onboarding.database.models import utcnow

logger = structlog.get_logger(__name__)


# =============================================================================
# METRICS
# =============================================================================

COLLABORATOR_FAILURES = Counter(
    "onboarding_collaborator_failures_total",
    "Swallowed audit/notification failures",
    ["collaborator"],
)


# =============================================================================
# VALUE TYPES
# =============================================================================

class Permission(str, Enum):
    """Onboarding permissions checked before any session mutation"""
    CREATE_SESSION = "onboarding:create_session"
    UPDATE_SESSION = "onboarding:update_session"
    COMPLETE_SESSION = "onboarding:complete_session"
    UPDATE_AMENITIES = "onboarding:update_amenities"
    UPDATE_IMAGES = "onboarding:update_images"
    UPDATE_PROPERTY_INFO = "onboarding:update_property_info"
    UPDATE_ROOMS = "onboarding:update_rooms"
    UPDATE_BUSINESS_FEATURES = "onboarding:update_business_features"


_STEP_PERMISSIONS = {
    "amenities": Permission.UPDATE_AMENITIES,
    "images": Permission.UPDATE_IMAGES,
    "property-info": Permission.UPDATE_PROPERTY_INFO,
    "rooms": Permission.UPDATE_ROOMS,
    "business-features": Permission.UPDATE_BUSINESS_FEATURES,
}


def permission_for_step(step_id: str) -> Permission:
    """Permission guarding an update of the given step"""
    return _STEP_PERMISSIONS.get(step_id, Permission.UPDATE_SESSION)


class AuditAction(str, Enum):
    """Audited onboarding actions"""
    SESSION_CREATED = "SESSION_CREATED"
    STEP_UPDATED = "STEP_UPDATED"
    STEP_COMPLETED = "STEP_COMPLETED"
    DRAFT_SAVED = "DRAFT_SAVED"
    SESSION_COMPLETED = "SESSION_COMPLETED"
    SESSION_ABANDONED = "SESSION_ABANDONED"


class SystemUpdateType(str, Enum):
    """Events published to downstream consumers"""
    HOTEL_ONBOARDING_COMPLETED = "hotel_onboarding_completed"
    HOTEL_CREATED = "hotel_created"
    HOTEL_UPDATED = "hotel_updated"
    ROOM_CREATED = "room_created"


@dataclass
class AuditEvent:
    """Single audit trail entry"""
    action: AuditAction
    user_id: str
    hotel_id: str
    session_id: Optional[str] = None
    step_id: Optional[str] = None
    previous_data: Optional[Any] = None
    new_data: Optional[Any] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SystemUpdate:
    """Downstream notification payload"""
    type: SystemUpdateType
    entity_id: str
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "entityId": self.entity_id,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }


# =============================================================================
# PROTOCOLS
# =============================================================================

@runtime_checkable
class PermissionChecker(Protocol):
    async def check_permission(self, user_id: str, hotel_id: str, permission: Permission) -> bool:
        ...


@runtime_checkable
class AuditRecorder(Protocol):
    async def record_event(self, event: AuditEvent) -> None:
        ...


@runtime_checkable
class Notifier(Protocol):
    async def notify(self, update: SystemUpdate) -> None:
        ...


# =============================================================================
# DEFAULT IMPLEMENTATIONS
# =============================================================================

class AllowAllPermissionChecker:
    """Grants everything; for trusted batch callers such as the maintenance flows"""

    async def check_permission(self, user_id: str, hotel_id: str, permission: Permission) -> bool:
        return True


class LoggingAuditRecorder:
    """Writes audit events to the structured log"""

    async def record_event(self, event: AuditEvent) -> None:
        logger.info(
            "Audit event",
            action=event.action.value,
            user_id=event.user_id,
            hotel_id=event.hotel_id,
            session_id=event.session_id,
            step_id=event.step_id,
            **event.metadata,
        )


async def record_event_safely(recorder: Optional[AuditRecorder], event: AuditEvent) -> None:
    """Record an audit event; failures are logged and never raised"""
    if recorder is None:
        return
    try:
        await recorder.record_event(event)
    except Exception as e:
        COLLABORATOR_FAILURES.labels(collaborator="audit").inc()
        logger.error(
            "Failed to record audit event",
            action=event.action.value,
            session_id=event.session_id,
            error=str(e),
        )


async def notify_safely(notifier: Optional[Notifier], update: SystemUpdate) -> bool:
    """
    Publish a system update; failures are logged and never raised.

    Returns:
        True when the notifier accepted the update
    """
    if notifier is None:
        return False
    try:
        await notifier.notify(update)
        return True
    except Exception as e:
        COLLABORATOR_FAILURES.labels(collaborator="notifier").inc()
        logger.error(
            "Failed to send system update",
            update_type=update.type.value,
            entity_id=update.entity_id,
            error=str(e),
        )
        return False
