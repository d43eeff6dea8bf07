"""
Aggregate Projection Module

Builds the structured sections of the enhanced hotel and room aggregates:
- Draft projection: wizard step payloads -> hotel sections and room rows
- Legacy projection: flat legacy records -> hotel sections and room rows
- Content extraction: stored aggregate -> HotelContent for scoring

Derived fields (word count, reading time, image buckets) are computed here
so every writer produces the same shapes.
"""

from typing import Any, Dict, List, Optional

import structlog

from hotel_onboarding.database.models import EnhancedHotel, LegacyHotel, LegacyRoom
from hotel_onboarding.onboarding.steps import (
    AmenitiesStep,
    BusinessFeatures,
    BusinessFeaturesStep,
    ImageCategory,
    ImagesStep,
    LocationDetails,
    Policies,
    ProcessedImage,
    PropertyInfoStep,
    RichText,
    RoomEntry,
    RoomsStep,
    StepId,
)
from hotel_onboarding.quality.content import HotelContent, RichTextContent
from hotel_onboarding.transformation.cleaners import normalize_step_payload

logger = structlog.get_logger(__name__)

DEFAULT_ROOM_CAPACITY = {"adults": 2, "children": 1, "infants": 1, "maxOccupancy": 2}
DEFAULT_ROOM_SIZE = {"area": 25, "unit": "sqm"}
DEFAULT_BED_CONFIGURATION = {"beds": [{"type": "DOUBLE", "count": 1}], "totalBeds": 1}
DEFAULT_PRICING = {"basePrice": 100, "currency": "USD"}
DEFAULT_AVAILABILITY = {
    "isActive": True,
    "minimumStay": 1,
    "maximumStay": 30,
    "advanceBookingDays": 0,
}


# =============================================================================
# SHARED HELPERS
# =============================================================================

def bucket_images(images: List[ProcessedImage]) -> Dict[str, List[Dict[str, Any]]]:
    """Group images into camelCase category buckets, preserving order"""
    buckets: Dict[str, List[Dict[str, Any]]] = {}
    for image in images:
        category = ImageCategory.parse(image.category)
        if category is None:
            logger.warning("Dropping image with unknown category", image_id=image.id, category=image.category)
            continue
        document = image.to_document()
        document["category"] = category.value
        buckets.setdefault(category.bucket, []).append(document)
    return buckets


def flatten_images(buckets: Optional[Dict[str, List[Dict[str, Any]]]]) -> List[ProcessedImage]:
    """All images of a bucketed image section, bucket by bucket"""
    images = []
    for documents in (buckets or {}).values():
        for document in documents or []:
            images.append(ProcessedImage.model_validate(document))
    return images


def rich_text(value: Optional[Any]) -> Optional[Dict[str, Any]]:
    """RichTextContent document from a plain string or RichText"""
    if value is None:
        return None
    if isinstance(value, RichText):
        return RichTextContent.from_text(value.content, value.format).to_document()
    if not str(value).strip():
        return None
    return RichTextContent.from_text(str(value)).to_document()


# =============================================================================
# DRAFT PROJECTION
# =============================================================================

def draft_to_hotel_sections(hotel: EnhancedHotel, draft: Dict[str, Any]) -> Dict[str, Any]:
    """
    Project stored step payloads onto hotel columns.

    Only sections backed by a stored step are returned; the caller assigns
    them onto the aggregate. ``basic_info`` is merged with the current value.

    Args:
        hotel: Aggregate receiving the draft
        draft: Mapping of step id to normalized payload

    Returns:
        Mapping of EnhancedHotel attribute name to new value
    """
    sections: Dict[str, Any] = {}

    if StepId.PROPERTY_INFO.value in draft:
        step = PropertyInfoStep.model_validate(draft[StepId.PROPERTY_INFO.value])
        basic_info = dict(hotel.basic_info or {})
        for key, value in {
            "name": step.name,
            "propertyType": step.property_type,
            "starRating": step.star_rating,
            "contactInfo": step.contact_info,
            "address": step.address,
        }.items():
            if value is not None:
                basic_info[key] = value
        sections["basic_info"] = basic_info
        if step.description is not None:
            sections["property_description"] = rich_text(step.description)
        if step.policies is not None:
            sections["policies"] = step.policies.to_document()
        if step.location_details is not None:
            sections["location_details"] = step.location_details.to_document()

    if StepId.AMENITIES.value in draft:
        step = AmenitiesStep.model_validate(draft[StepId.AMENITIES.value])
        sections["amenities"] = step.buckets()

    if StepId.IMAGES.value in draft:
        step = ImagesStep.model_validate(draft[StepId.IMAGES.value])
        sections["images"] = bucket_images(step.images)

    if StepId.BUSINESS_FEATURES.value in draft:
        step = BusinessFeaturesStep.model_validate(draft[StepId.BUSINESS_FEATURES.value])
        sections["business_features"] = step.to_document()

    return sections


def draft_rooms(draft: Dict[str, Any]) -> List[RoomEntry]:
    """Room entries of the rooms step, empty when the step was never stored"""
    payload = draft.get(StepId.ROOMS.value)
    if payload is None:
        return []
    return RoomsStep.model_validate(payload).rooms


def room_sections(entry: RoomEntry) -> Dict[str, Any]:
    """EnhancedRoom columns for a wizard room entry (inherited is set by propagation)"""
    amenities = normalize_step_payload({"amenities": entry.amenities or {}})["amenities"]
    return {
        "basic_info": {
            "name": entry.name,
            "type": entry.type or "STANDARD",
            "capacity": entry.capacity or dict(DEFAULT_ROOM_CAPACITY),
            "size": entry.size or dict(DEFAULT_ROOM_SIZE),
            "bedConfiguration": entry.bed_configuration or dict(DEFAULT_BED_CONFIGURATION),
        },
        "description": rich_text(entry.description),
        "amenities": {
            "inherited": [],
            "specific": list(amenities.get("specific", [])),
            "overrides": list(amenities.get("overrides", [])),
        },
        "images": [image.to_document() for image in entry.images],
        "layout": entry.layout,
        "pricing": entry.pricing or dict(DEFAULT_PRICING),
    }


# =============================================================================
# LEGACY PROJECTION
# =============================================================================

def legacy_hotel_sections(
    legacy: LegacyHotel,
    room_count: int,
    image_quality_score: float,
) -> Dict[str, Any]:
    """EnhancedHotel columns for a legacy hotel record"""
    amenities = normalize_step_payload({"selectedAmenities": list(legacy.amenities or [])})
    images = [
        {
            "id": f"legacy-{legacy.id}-{index}",
            "url": url,
            "category": ImageCategory.EXTERIOR.value,
            "qualityScore": image_quality_score,
            "metadata": {"source": "legacy"},
        }
        for index, url in enumerate(legacy.images or [])
        if url
    ]

    address: Dict[str, Any] = {
        "street": legacy.address,
        "city": legacy.city,
        "state": legacy.state,
        "postalCode": legacy.pincode,
    }
    if legacy.latitude is not None and legacy.longitude is not None:
        address["coordinates"] = {"latitude": legacy.latitude, "longitude": legacy.longitude}

    return {
        "original_hotel_id": legacy.id,
        "owner_id": legacy.owner_id,
        "basic_info": {
            "name": legacy.name,
            "propertyType": "HOTEL",
            "starRating": legacy.star_rating,
            "totalRooms": room_count,
            "address": {k: v for k, v in address.items() if v is not None},
            "contactInfo": {
                k: v
                for k, v in {"phone": legacy.phone, "email": legacy.email, "website": legacy.website}.items()
                if v
            },
        },
        "property_description": rich_text(legacy.description),
        "amenities": {"propertyWide": amenities["selectedAmenities"]},
        "images": {ImageCategory.EXTERIOR.bucket: images} if images else {},
    }


def legacy_room_sections(room: LegacyRoom) -> Dict[str, Any]:
    """EnhancedRoom columns for a legacy room (inherited is set by propagation)"""
    capacity = dict(DEFAULT_ROOM_CAPACITY)
    if room.max_occupancy:
        capacity["adults"] = room.max_occupancy
        capacity["maxOccupancy"] = room.max_occupancy

    bed_count = room.bed_count or 1
    pricing = dict(DEFAULT_PRICING)
    if room.base_price is not None:
        pricing["basePrice"] = room.base_price
    if room.weekend_price is not None:
        pricing["weekendPrice"] = room.weekend_price

    return {
        "original_room_id": room.id,
        "basic_info": {
            "name": room.name,
            "type": room.room_type or "STANDARD",
            "capacity": capacity,
            "size": {"area": room.room_size, "unit": "sqm"} if room.room_size else dict(DEFAULT_ROOM_SIZE),
            "bedConfiguration": {
                "beds": [{"type": (room.bed_type or "DOUBLE").upper(), "count": bed_count}],
                "totalBeds": bed_count,
            },
            "quantity": room.quantity or 1,
        },
        "description": rich_text(room.description),
        "amenities": {
            "inherited": [],
            "specific": normalize_step_payload({"specific": list(room.amenities or [])})["specific"],
            "overrides": [],
        },
        "images": [
            {"id": f"legacy-{room.id}-{index}", "url": url, "category": ImageCategory.ROOMS.value}
            for index, url in enumerate(room.images or [])
            if url
        ],
        "pricing": pricing,
        "availability": dict(DEFAULT_AVAILABILITY),
    }


# =============================================================================
# CONTENT EXTRACTION
# =============================================================================

def hotel_content(hotel: EnhancedHotel, total_rooms: int) -> HotelContent:
    """HotelContent view of a stored aggregate, the input of scoring"""
    description = hotel.property_description
    return HotelContent(
        images=flatten_images(hotel.images),
        amenities=hotel.amenities or None,
        property_description=RichTextContent.model_validate(description) if description else None,
        location_details=LocationDetails.model_validate(hotel.location_details) if hotel.location_details else None,
        policies=Policies.model_validate(hotel.policies) if hotel.policies else None,
        business_features=(
            BusinessFeatures.model_validate(hotel.business_features) if hotel.business_features else None
        ),
        total_rooms=total_rooms,
    )
