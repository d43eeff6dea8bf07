"""
Upload Processing Module
"""
from .tickets import (
    InMemoryTicketStore,
    ProcessingTicket,
    RedisTicketStore,
    TicketState,
    TicketStore,
)

__all__ = [
    "InMemoryTicketStore",
    "ProcessingTicket",
    "RedisTicketStore",
    "TicketState",
    "TicketStore",
]
