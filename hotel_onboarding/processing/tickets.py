"""
Upload Ticket Store

Tracks asynchronous image processing by opaque ticket id. A ticket starts
``processing``, ends ``completed`` (carrying the processed image) or
``failed`` (carrying the error), and is evicted once its TTL has passed.

Two stores share one async interface:
- InMemoryTicketStore: single-process, explicit clock, explicit purge
- RedisTicketStore: tickets as JSON values under expiring keys
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol
from uuid import uuid4

import structlog
from pydantic import BaseModel, Field
from redis.asyncio import ConnectionPool, Redis

from hotel_onboarding.config import get_settings
from hotel_onboarding.database.models import utcnow
from hotel_onboarding.errors import InvalidState, NotFound

logger = structlog.get_logger(__name__)


class TicketState(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ProcessingTicket(BaseModel):
    """Progress record of one upload"""

    ticket_id: str
    state: TicketState = TicketState.PROCESSING
    progress: int = Field(default=0, ge=0, le=100)
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    expires_at: datetime

    @property
    def is_finished(self) -> bool:
        return self.state != TicketState.PROCESSING


def new_ticket_id() -> str:
    return f"upload_{uuid4().hex}"


class TicketStore(Protocol):
    async def open(self) -> ProcessingTicket:
        ...

    async def get(self, ticket_id: str) -> Optional[ProcessingTicket]:
        ...

    async def update_progress(self, ticket_id: str, progress: int) -> ProcessingTicket:
        ...

    async def complete(self, ticket_id: str, result: Dict[str, Any]) -> ProcessingTicket:
        ...

    async def fail(self, ticket_id: str, error: str) -> ProcessingTicket:
        ...


class _TicketTransitions:
    """State transitions shared by both stores; subclasses supply load/save"""

    ttl: timedelta
    clock: Callable[[], datetime]

    async def _load(self, ticket_id: str) -> Optional[ProcessingTicket]:
        raise NotImplementedError

    async def _save(self, ticket: ProcessingTicket) -> None:
        raise NotImplementedError

    async def open(self) -> ProcessingTicket:
        now = self.clock()
        ticket = ProcessingTicket(
            ticket_id=new_ticket_id(),
            created_at=now,
            updated_at=now,
            expires_at=now + self.ttl,
        )
        await self._save(ticket)
        logger.debug("Upload ticket opened", ticket_id=ticket.ticket_id)
        return ticket

    async def get(self, ticket_id: str) -> Optional[ProcessingTicket]:
        return await self._load(ticket_id)

    async def get_many(self, ticket_ids: List[str]) -> List[ProcessingTicket]:
        """Known tickets among ``ticket_ids``, in request order"""
        tickets = []
        for ticket_id in ticket_ids:
            ticket = await self._load(ticket_id)
            if ticket is not None:
                tickets.append(ticket)
        return tickets

    async def _require_open(self, ticket_id: str) -> ProcessingTicket:
        ticket = await self._load(ticket_id)
        if ticket is None:
            raise NotFound("Upload ticket", ticket_id)
        if ticket.is_finished:
            raise InvalidState(f"Upload ticket {ticket_id} is already {ticket.state.value}")
        return ticket

    async def update_progress(self, ticket_id: str, progress: int) -> ProcessingTicket:
        ticket = await self._require_open(ticket_id)
        # Progress only moves forward
        ticket = ticket.model_copy(update={
            "progress": max(ticket.progress, min(max(progress, 0), 100)),
            "updated_at": self.clock(),
        })
        await self._save(ticket)
        return ticket

    async def complete(self, ticket_id: str, result: Dict[str, Any]) -> ProcessingTicket:
        ticket = await self._require_open(ticket_id)
        now = self.clock()
        ticket = ticket.model_copy(update={
            "state": TicketState.COMPLETED,
            "progress": 100,
            "result": result,
            "updated_at": now,
            "expires_at": now + self.ttl,
        })
        await self._save(ticket)
        logger.info("Upload ticket completed", ticket_id=ticket_id)
        return ticket

    async def fail(self, ticket_id: str, error: str) -> ProcessingTicket:
        ticket = await self._require_open(ticket_id)
        now = self.clock()
        ticket = ticket.model_copy(update={
            "state": TicketState.FAILED,
            "progress": 0,
            "error": error,
            "updated_at": now,
            "expires_at": now + self.ttl,
        })
        await self._save(ticket)
        logger.warning("Upload ticket failed", ticket_id=ticket_id, error=error)
        return ticket


class InMemoryTicketStore(_TicketTransitions):
    """
    Process-local ticket store.

    Expired tickets are invisible to reads immediately and removed from
    memory by ``purge_expired``.
    """

    def __init__(
        self,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        if ttl_seconds is None:
            ttl_seconds = get_settings().onboarding.upload_ticket_ttl_seconds
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock
        self._tickets: Dict[str, ProcessingTicket] = {}

    def __len__(self) -> int:
        return len(self._tickets)

    async def _load(self, ticket_id: str) -> Optional[ProcessingTicket]:
        ticket = self._tickets.get(ticket_id)
        if ticket is None or ticket.expires_at <= self.clock():
            return None
        return ticket

    async def _save(self, ticket: ProcessingTicket) -> None:
        self._tickets[ticket.ticket_id] = ticket

    async def purge_expired(self) -> int:
        """Drop expired tickets; returns how many were removed"""
        now = self.clock()
        expired = [tid for tid, t in self._tickets.items() if t.expires_at <= now]
        for ticket_id in expired:
            del self._tickets[ticket_id]
        if expired:
            logger.info("Purged expired upload tickets", count=len(expired))
        return len(expired)

    async def clear_finished(self) -> int:
        """Drop every completed or failed ticket regardless of TTL"""
        finished = [tid for tid, t in self._tickets.items() if t.is_finished]
        for ticket_id in finished:
            del self._tickets[ticket_id]
        return len(finished)


class RedisTicketStore(_TicketTransitions):
    """
    Redis-backed ticket store.

    Each ticket is one JSON value written with SETEX, so Redis evicts it
    when the TTL runs out.
    """

    KEY_PREFIX = "upload-ticket:"

    def __init__(
        self,
        client: Redis,
        ttl_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        if ttl_seconds is None:
            ttl_seconds = get_settings().onboarding.upload_ticket_ttl_seconds
        self.client = client
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock

    @classmethod
    def from_settings(cls) -> "RedisTicketStore":
        """Build a store on a pooled client configured from REDIS_* settings"""
        redis_settings = get_settings().redis
        pool = ConnectionPool.from_url(
            redis_settings.get_url(),
            max_connections=redis_settings.max_connections,
            socket_timeout=redis_settings.socket_timeout,
            decode_responses=True,
        )
        return cls(Redis(connection_pool=pool))

    async def close(self) -> None:
        await self.client.aclose()
        logger.info("Redis connection closed")

    def _key(self, ticket_id: str) -> str:
        return f"{self.KEY_PREFIX}{ticket_id}"

    async def _load(self, ticket_id: str) -> Optional[ProcessingTicket]:
        value = await self.client.get(self._key(ticket_id))
        if value is None:
            return None
        return ProcessingTicket.model_validate_json(value)

    async def _save(self, ticket: ProcessingTicket) -> None:
        remaining = int((ticket.expires_at - self.clock()).total_seconds())
        await self.client.setex(self._key(ticket.ticket_id), max(remaining, 1), ticket.model_dump_json())
