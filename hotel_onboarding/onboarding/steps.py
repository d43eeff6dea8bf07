"""
Step Payload Models

Closed tagged union of wizard step payloads. Each known step id maps to a
pydantic model accepting the camelCase documents the wizard submits; any
other step id maps to ``UnknownStep`` which keeps the raw mapping so newer
clients can store steps this version does not understand.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class StepId(str, Enum):
    """Known wizard steps, in wizard order"""
    PROPERTY_INFO = "property-info"
    AMENITIES = "amenities"
    IMAGES = "images"
    ROOMS = "rooms"
    BUSINESS_FEATURES = "business-features"


STEP_ORDER: List[str] = [step.value for step in StepId]


def step_position(step_id: str) -> Optional[int]:
    """1-based position of a known step, None for unknown step ids"""
    try:
        return STEP_ORDER.index(step_id) + 1
    except ValueError:
        return None


class ImageCategory(str, Enum):
    """Image categories; bucket keys on the aggregate are the camelCase form"""
    EXTERIOR = "exterior"
    LOBBY = "lobby"
    ROOMS = "rooms"
    AMENITIES = "amenities"
    DINING = "dining"
    RECREATIONAL = "recreational"
    BUSINESS = "business"
    VIRTUAL_TOURS = "virtual_tours"

    @property
    def bucket(self) -> str:
        return to_camel(self.value)

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ImageCategory"]:
        if not value:
            return None
        normalized = value.strip().lower()
        for category in cls:
            if normalized in (category.value, category.bucket.lower()):
                return category
        return None


REQUIRED_IMAGE_CATEGORIES = (ImageCategory.EXTERIOR, ImageCategory.LOBBY, ImageCategory.ROOMS)

AMENITY_BUCKETS = (
    "propertyWide",
    "roomSpecific",
    "business",
    "wellness",
    "dining",
    "sustainability",
    "recreational",
    "connectivity",
)


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python, unknown keys preserved"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# SHARED VALUE SHAPES
# =============================================================================

class Dimensions(CamelModel):
    width: int = 0
    height: int = 0


class ImageMetadata(CamelModel):
    dimensions: Optional[Dimensions] = None


class ProcessedImage(CamelModel):
    """Already-processed image as delivered by the image pipeline"""
    id: str
    category: str
    quality_score: float = Field(default=0, ge=0, le=100)
    url: Optional[str] = None
    metadata: ImageMetadata = Field(default_factory=ImageMetadata)

    @property
    def width(self) -> int:
        return self.metadata.dimensions.width if self.metadata.dimensions else 0

    @property
    def height(self) -> int:
        return self.metadata.dimensions.height if self.metadata.dimensions else 0


class TimePolicy(CamelModel):
    standard_time: Optional[str] = None
    time: Optional[str] = None

    @property
    def effective_time(self) -> Optional[str]:
        return self.standard_time or self.time


class Policies(CamelModel):
    check_in: Optional[TimePolicy] = None
    check_out: Optional[TimePolicy] = None
    cancellation: Optional[Dict[str, Any]] = None
    booking: Optional[Dict[str, Any]] = None
    pet: Optional[Dict[str, Any]] = None
    smoking: Optional[Dict[str, Any]] = None


class Attraction(CamelModel):
    name: str
    distance: Optional[float] = None
    type: Optional[str] = None


class LocationDetails(CamelModel):
    nearby_attractions: List[Attraction] = Field(default_factory=list)
    transportation: Optional[Dict[str, Any]] = None
    accessibility: Optional[Dict[str, Any]] = None
    neighborhood: Optional[Dict[str, Any]] = None


class RichText(CamelModel):
    content: str = ""
    format: str = "markdown"


class RoomEntry(CamelModel):
    name: Optional[str] = None
    type: Optional[str] = None
    capacity: Optional[Dict[str, Any]] = None
    size: Optional[Dict[str, Any]] = None
    bed_configuration: Optional[Dict[str, Any]] = None
    description: Optional[Union[str, RichText]] = None
    amenities: Optional[Dict[str, Any]] = None
    images: List[ProcessedImage] = Field(default_factory=list)
    layout: Optional[Dict[str, Any]] = None
    pricing: Optional[Dict[str, Any]] = None


class MeetingRoom(CamelModel):
    name: Optional[str] = None
    capacity: Optional[int] = None
    equipment: List[str] = Field(default_factory=list)


class Connectivity(CamelModel):
    wifi_speed: Optional[Dict[str, Any]] = None
    coverage: Optional[str] = None


class BusinessFeatures(CamelModel):
    meeting_rooms: List[MeetingRoom] = Field(default_factory=list)
    business_services: List[str] = Field(default_factory=list)
    work_spaces: List[Dict[str, Any]] = Field(default_factory=list)
    connectivity: Optional[Connectivity] = None


# =============================================================================
# STEP VARIANTS
# =============================================================================

class PropertyInfoStep(CamelModel):
    step: str = Field(default=StepId.PROPERTY_INFO.value, exclude=True)
    name: Optional[str] = None
    property_type: Optional[str] = None
    star_rating: Optional[int] = Field(default=None, ge=1, le=5)
    description: Optional[Union[str, RichText]] = None
    policies: Optional[Policies] = None
    location_details: Optional[LocationDetails] = None
    contact_info: Optional[Dict[str, Any]] = None
    address: Optional[Dict[str, Any]] = None

    @property
    def description_text(self) -> str:
        if isinstance(self.description, RichText):
            return self.description.content
        return self.description or ""

    @property
    def description_format(self) -> str:
        if isinstance(self.description, RichText):
            return self.description.format
        return "markdown"


class AmenitiesStep(CamelModel):
    step: str = Field(default=StepId.AMENITIES.value, exclude=True)
    selected_amenities: Union[List[str], Dict[str, List[str]]]

    def buckets(self) -> Dict[str, List[str]]:
        """Selected amenities by bucket; a flat list is property-wide"""
        if isinstance(self.selected_amenities, list):
            return {"propertyWide": list(self.selected_amenities)}
        return {
            bucket: list(ids)
            for bucket, ids in self.selected_amenities.items()
            if bucket in AMENITY_BUCKETS
        }


class ImagesStep(CamelModel):
    step: str = Field(default=StepId.IMAGES.value, exclude=True)
    images: List[ProcessedImage]


class RoomsStep(CamelModel):
    step: str = Field(default=StepId.ROOMS.value, exclude=True)
    rooms: List[RoomEntry]


class BusinessFeaturesStep(BusinessFeatures):
    step: str = Field(default=StepId.BUSINESS_FEATURES.value, exclude=True)


class UnknownStep(BaseModel):
    """Step this version has no schema for; stored as-is"""
    step: str
    data: Dict[str, Any] = Field(default_factory=dict)


StepPayload = Union[
    PropertyInfoStep,
    AmenitiesStep,
    ImagesStep,
    RoomsStep,
    BusinessFeaturesStep,
    UnknownStep,
]

STEP_MODELS = {
    StepId.PROPERTY_INFO.value: PropertyInfoStep,
    StepId.AMENITIES.value: AmenitiesStep,
    StepId.IMAGES.value: ImagesStep,
    StepId.ROOMS.value: RoomsStep,
    StepId.BUSINESS_FEATURES.value: BusinessFeaturesStep,
}


def parse_step(step_id: str, payload: Dict[str, Any]) -> StepPayload:
    """
    Parse a raw step payload into its union variant.

    Raises:
        pydantic.ValidationError: payload does not match the step's schema
    """
    model = STEP_MODELS.get(step_id)
    if model is None:
        return UnknownStep(step=step_id, data=dict(payload or {}))
    return model.model_validate(payload or {})
