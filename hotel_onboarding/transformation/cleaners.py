"""
Step Data Cleaning Module

Normalization applied to every wizard step payload before it is stored.
Handles:
- Deduplication of identity-keyed lists (images by id, rooms by name, ...)
- Dropping list entries whose identity key is missing or blank
- Deduplication of amenity id lists

Free-text fields are never touched. Cleaning is idempotent, so an offline
client replaying the same update cannot accumulate duplicates.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)


# List field -> identity key of its entries
IDENTITY_KEYS: Dict[str, str] = {
    "images": "id",
    "workSpaces": "id",
    "rooms": "name",
    "meetingRooms": "name",
    "nearbyAttractions": "name",
    "overrides": "amenityId",
}

# Fields holding plain lists of amenity ids
AMENITY_ID_FIELDS = frozenset({"selectedAmenities", "specific", "inherited", "amenities"})


@dataclass
class CleaningStats:
    """Statistics from a cleaning pass"""
    duplicates_removed: int = 0
    blank_keys_dropped: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.duplicates_removed or self.blank_keys_dropped)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _is_id_list(value: Any) -> bool:
    return isinstance(value, list) and all(not isinstance(item, (dict, list)) for item in value)


def _identity(value: Any) -> Hashable:
    return value if isinstance(value, Hashable) else repr(value)


class StepDataCleaner:
    """
    Recursive normalizer for step payloads.

    Example:
        cleaner = StepDataCleaner()
        payload, stats = cleaner.clean({"images": [{"id": "a"}, {"id": "a"}]})
    """

    def __init__(self, identity_keys: Optional[Dict[str, str]] = None):
        self.identity_keys = dict(identity_keys or IDENTITY_KEYS)
        self._field_rules: Dict[str, Callable[[Any, CleaningStats], Any]] = {}
        self._register_default_rules()

    def _register_default_rules(self) -> None:
        for field_name, key in self.identity_keys.items():
            self._field_rules[field_name] = self._keyed_rule(key)
        for field_name in AMENITY_ID_FIELDS:
            self._field_rules[field_name] = self._dedupe_amenity_ids

    def register_rule(self, field_name: str, func: Callable[[Any, CleaningStats], Any]) -> None:
        """Register a custom rule for a field name at any depth"""
        self._field_rules[field_name] = func

    def _keyed_rule(self, key: str) -> Callable[[Any, CleaningStats], Any]:
        def rule(value: Any, stats: CleaningStats) -> Any:
            if not isinstance(value, list):
                return value
            return self._dedupe_by_key(value, key, stats)
        return rule

    def _dedupe_by_key(self, entries: List[Any], key: str, stats: CleaningStats) -> List[Any]:
        """Keep the first entry per identity key; drop entries without one"""
        seen = set()
        result = []
        for entry in entries:
            if not isinstance(entry, dict) or _is_blank(entry.get(key)):
                stats.blank_keys_dropped += 1
                continue
            identity = _identity(entry[key])
            if identity in seen:
                stats.duplicates_removed += 1
                continue
            seen.add(identity)
            result.append(entry)
        return result

    def _dedupe_ids(self, ids: List[Any], stats: CleaningStats) -> List[Any]:
        seen = set()
        result = []
        for amenity_id in ids:
            if _is_blank(amenity_id):
                stats.blank_keys_dropped += 1
                continue
            identity = _identity(amenity_id)
            if identity in seen:
                stats.duplicates_removed += 1
                continue
            seen.add(identity)
            result.append(amenity_id)
        return result

    def _dedupe_amenity_ids(self, value: Any, stats: CleaningStats) -> Any:
        # Lists of ids, or bucket -> list of ids
        if _is_id_list(value):
            return self._dedupe_ids(value, stats)
        if isinstance(value, dict) and value and all(_is_id_list(v) for v in value.values()):
            return {bucket: self._dedupe_ids(ids, stats) for bucket, ids in value.items()}
        return value

    def _clean_value(self, value: Any, stats: CleaningStats) -> Any:
        if isinstance(value, dict):
            cleaned = {}
            for field_name, field_value in value.items():
                field_value = self._clean_value(field_value, stats)
                rule = self._field_rules.get(field_name)
                if rule is not None:
                    field_value = rule(field_value, stats)
                cleaned[field_name] = field_value
            return cleaned
        if isinstance(value, list):
            return [self._clean_value(item, stats) for item in value]
        return value

    def clean(self, payload: Optional[Dict[str, Any]]) -> Tuple[Dict[str, Any], CleaningStats]:
        """
        Normalize a step payload.

        Args:
            payload: Raw step payload (never mutated)

        Returns:
            Tuple of (normalized copy, cleaning statistics)
        """
        stats = CleaningStats()
        cleaned = self._clean_value(payload if payload is not None else {}, stats)
        if stats.changed:
            logger.debug(
                "Step payload normalized",
                duplicates_removed=stats.duplicates_removed,
                blank_keys_dropped=stats.blank_keys_dropped,
            )
        return cleaned, stats


_default_cleaner = StepDataCleaner()


def normalize_step_payload(payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Convenience wrapper around the default cleaner"""
    cleaned, _ = _default_cleaner.clean(payload)
    return cleaned
