"""
Amenity inheritance between a hotel and its rooms.

A room's ``inherited`` amenities are a pure function of the hotel's
inheritable buckets. The final amenity list of a room applies, in order:
inherited, then specific, then overrides. Overrides always win over both.
"""

from typing import Any, Dict, Iterable, List, Optional

INHERITABLE_BUCKETS = ("propertyWide", "wellness", "dining", "business")


def _unique(ids: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for amenity_id in ids:
        if amenity_id and amenity_id not in seen:
            seen.add(amenity_id)
            result.append(amenity_id)
    return result


def inherited_amenities(hotel_amenities: Optional[Dict[str, List[str]]]) -> List[str]:
    """Union of the hotel's inheritable buckets, in bucket order, de-duplicated"""
    amenities = hotel_amenities or {}
    return _unique(
        amenity_id
        for bucket in INHERITABLE_BUCKETS
        for amenity_id in amenities.get(bucket) or []
    )


def resolve_room_amenities(
    inherited: List[str],
    specific: List[str],
    overrides: Optional[List[Dict[str, Any]]] = None,
) -> List[str]:
    """
    Final amenity list of a room.

    ``add`` appends an amenity if absent, ``remove`` drops it even when it is
    inherited or specific, ``modify`` keeps it in place.
    """
    resolved = _unique(list(inherited) + list(specific))
    for override in overrides or []:
        amenity_id = override.get("amenityId")
        action = override.get("action")
        if not amenity_id:
            continue
        if action == "add" and amenity_id not in resolved:
            resolved.append(amenity_id)
        elif action == "remove":
            resolved = [existing for existing in resolved if existing != amenity_id]
    return resolved


def with_inherited(room_amenities: Optional[Dict[str, Any]], hotel_amenities: Optional[Dict[str, List[str]]]) -> Dict[str, Any]:
    """Copy of a room's amenity document with ``inherited`` recomputed"""
    document = dict(room_amenities or {})
    document["inherited"] = inherited_amenities(hotel_amenities)
    document.setdefault("specific", [])
    document.setdefault("overrides", [])
    return document
