"""
Integration Module
"""
from .inheritance import resolve_room_amenities
from .notifiers import KafkaNotifier, LoggingNotifier, RecordingNotifier

__all__ = [
    "resolve_room_amenities",
    "KafkaNotifier",
    "LoggingNotifier",
    "RecordingNotifier",
]
