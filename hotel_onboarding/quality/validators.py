"""
Step Validation Module

Rule-based validation of wizard step payloads.

Each step has a validator built from chainable rules: the payload is first
parsed into its step model (structural checks), then business rules run
over the parsed model. Validators never raise; every problem is reported
as an error or a warning in the returned result.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

import structlog
from pydantic import ValidationError

from hotel_onboarding.onboarding.steps import (
    AMENITY_BUCKETS,
    REQUIRED_IMAGE_CATEGORIES,
    AmenitiesStep,
    BusinessFeaturesStep,
    ImageCategory,
    ImagesStep,
    PropertyInfoStep,
    RoomsStep,
    StepId,
    parse_step,
)

logger = structlog.get_logger(__name__)

MIN_DESCRIPTION_LENGTH = 50
SYSTEM_ERROR_MESSAGE = "Validation failed due to system error"


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"  # Blocks strict updates and commits
    WARNING = "warning"  # Reported, never blocks


@dataclass
class StepValidationResult:
    """Outcome of validating one step payload"""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"isValid": self.is_valid, "errors": list(self.errors), "warnings": list(self.warnings)}


# A rule inspects the parsed step and yields one message per problem found
Rule = Callable[[Any], Iterable[str]]


@dataclass
class _RegisteredRule:
    name: str
    func: Rule
    severity: ValidationSeverity


def _format_pydantic_errors(exc: ValidationError) -> List[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        messages.append(f"{location}: {error['msg']}" if location else error["msg"])
    return messages


class StepValidator:
    """
    Validator for a single wizard step.

    Example:
        validator = (
            StepValidator(StepId.ROOMS.value)
            .add_error_rule("rooms_present", lambda step: [] if step.rooms else ["..."])
        )
        result = validator.validate(payload)
    """

    def __init__(self, step_id: str):
        self.step_id = step_id
        self._rules: List[_RegisteredRule] = []

    def add_rule(
        self,
        name: str,
        func: Rule,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "StepValidator":
        """Add a business rule evaluated against the parsed step"""
        self._rules.append(_RegisteredRule(name=name, func=func, severity=severity))
        return self

    def add_error_rule(self, name: str, func: Rule) -> "StepValidator":
        return self.add_rule(name, func, ValidationSeverity.ERROR)

    def add_warning_rule(self, name: str, func: Rule) -> "StepValidator":
        return self.add_rule(name, func, ValidationSeverity.WARNING)

    def validate(self, payload: Optional[Dict[str, Any]]) -> StepValidationResult:
        """
        Validate a step payload.

        Args:
            payload: Raw step payload

        Returns:
            StepValidationResult with errors and warnings
        """
        errors: List[str] = []
        warnings: List[str] = []

        try:
            if payload is not None and not isinstance(payload, dict):
                return StepValidationResult(is_valid=False, errors=["Step data must be an object"])
            try:
                parsed = parse_step(self.step_id, payload or {})
            except ValidationError as e:
                return StepValidationResult(is_valid=False, errors=_format_pydantic_errors(e))

            for rule in self._rules:
                messages = list(rule.func(parsed))
                if rule.severity == ValidationSeverity.ERROR:
                    errors.extend(messages)
                else:
                    warnings.extend(messages)
        except Exception as e:
            logger.error("Step validation crashed", step_id=self.step_id, error=str(e))
            return StepValidationResult(is_valid=False, errors=[SYSTEM_ERROR_MESSAGE])

        result = StepValidationResult(is_valid=not errors, errors=errors, warnings=warnings)
        logger.debug(
            "Step validated",
            step_id=self.step_id,
            errors=len(errors),
            warnings=len(warnings),
        )
        return result


# =============================================================================
# STEP RULES
# =============================================================================

def _amenities_selected(step: AmenitiesStep) -> Iterable[str]:
    if not any(step.buckets().values()):
        yield "Consider adding amenities to improve guest experience"


def _amenity_buckets_known(step: AmenitiesStep) -> Iterable[str]:
    if isinstance(step.selected_amenities, dict):
        for bucket in step.selected_amenities:
            if bucket not in AMENITY_BUCKETS:
                yield f"Unknown amenity category '{bucket}' will be ignored"


def _images_present(step: ImagesStep) -> Iterable[str]:
    if not step.images:
        yield "At least one image is required"


def _image_categories_known(step: ImagesStep) -> Iterable[str]:
    for image in step.images:
        if ImageCategory.parse(image.category) is None:
            yield f"Image {image.id} has unknown category '{image.category}'"


def _required_image_categories(step: ImagesStep) -> Iterable[str]:
    if not step.images:
        return
    present = {ImageCategory.parse(image.category) for image in step.images}
    for category in REQUIRED_IMAGE_CATEGORIES:
        if category not in present:
            yield f"Consider adding {category.value} photos"


def _description_length(step: PropertyInfoStep) -> Iterable[str]:
    if len(step.description_text.strip()) < MIN_DESCRIPTION_LENGTH:
        yield f"Property description must be at least {MIN_DESCRIPTION_LENGTH} characters"


def _policies_present(step: PropertyInfoStep) -> Iterable[str]:
    if step.policies is None:
        yield "Hotel policies are required"


def _location_present(step: PropertyInfoStep) -> Iterable[str]:
    if step.location_details is None:
        yield "Location details help guests find your property"


def _rooms_present(step: RoomsStep) -> Iterable[str]:
    if not step.rooms:
        yield "At least one room type is required"


def _rooms_named(step: RoomsStep) -> Iterable[str]:
    for index, room in enumerate(step.rooms, start=1):
        if not room.name or not room.name.strip():
            yield f"Room {index}: name is required"


def _rooms_have_images(step: RoomsStep) -> Iterable[str]:
    for room in step.rooms:
        if room.name and not room.images:
            yield f"Room '{room.name}' has no images"


def _meeting_rooms_complete(step: BusinessFeaturesStep) -> Iterable[str]:
    for index, meeting_room in enumerate(step.meeting_rooms, start=1):
        if not meeting_room.name or not meeting_room.capacity:
            yield f"Meeting room {index}: name and capacity are required"


def _wifi_speed_present(step: BusinessFeaturesStep) -> Iterable[str]:
    if step.connectivity is not None and step.connectivity.wifi_speed is None:
        yield "WiFi speed information is recommended for business travelers"


# =============================================================================
# PRE-BUILT VALIDATORS
# =============================================================================

def create_amenities_validator() -> StepValidator:
    """Validator for the amenities step"""
    return (
        StepValidator(StepId.AMENITIES.value)
        .add_warning_rule("amenities_selected", _amenities_selected)
        .add_warning_rule("amenity_buckets_known", _amenity_buckets_known)
    )


def create_images_validator() -> StepValidator:
    """Validator for the images step"""
    return (
        StepValidator(StepId.IMAGES.value)
        .add_error_rule("images_present", _images_present)
        .add_error_rule("image_categories_known", _image_categories_known)
        .add_warning_rule("required_image_categories", _required_image_categories)
    )


def create_property_info_validator() -> StepValidator:
    """Validator for the property information step"""
    return (
        StepValidator(StepId.PROPERTY_INFO.value)
        .add_error_rule("description_length", _description_length)
        .add_error_rule("policies_present", _policies_present)
        .add_warning_rule("location_present", _location_present)
    )


def create_rooms_validator() -> StepValidator:
    """Validator for the rooms step"""
    return (
        StepValidator(StepId.ROOMS.value)
        .add_error_rule("rooms_present", _rooms_present)
        .add_error_rule("rooms_named", _rooms_named)
        .add_warning_rule("rooms_have_images", _rooms_have_images)
    )


def create_business_features_validator() -> StepValidator:
    """Validator for the business features step"""
    return (
        StepValidator(StepId.BUSINESS_FEATURES.value)
        .add_error_rule("meeting_rooms_complete", _meeting_rooms_complete)
        .add_warning_rule("wifi_speed_present", _wifi_speed_present)
    )


STEP_VALIDATORS: Dict[str, StepValidator] = {
    StepId.AMENITIES.value: create_amenities_validator(),
    StepId.IMAGES.value: create_images_validator(),
    StepId.PROPERTY_INFO.value: create_property_info_validator(),
    StepId.ROOMS.value: create_rooms_validator(),
    StepId.BUSINESS_FEATURES.value: create_business_features_validator(),
}


def validate_step(step_id: str, payload: Optional[Dict[str, Any]]) -> StepValidationResult:
    """
    Dispatch to the validator for ``step_id``.

    Unknown step ids are accepted without rules.
    """
    validator = STEP_VALIDATORS.get(step_id)
    if validator is None:
        logger.warning("No validator for step, accepting as-is", step_id=step_id)
        return StepValidationResult(is_valid=True)
    return validator.validate(payload)
