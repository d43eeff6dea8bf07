"""
Onboarding error taxonomy.

Every error carries the phase that failed so callers of ``complete_session``
can tell a permission problem from a validation or integration failure.
"""

from typing import List, Optional


class OnboardingError(Exception):
    """Base class for all onboarding core errors"""

    phase = "onboarding"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(OnboardingError):
    """Session, hotel, room or user does not exist"""

    phase = "lookup"

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class Forbidden(OnboardingError):
    """Permission check denied the operation"""

    phase = "permission"

    def __init__(self, user_id: str, permission: str, hotel_id: Optional[str] = None):
        super().__init__(f"User {user_id} lacks permission {permission}")
        self.user_id = user_id
        self.permission = permission
        self.hotel_id = hotel_id


class InvalidState(OnboardingError):
    """Operation attempted outside a legal state transition, including expiry"""

    phase = "state"


class ValidationFailed(OnboardingError):
    """Step content fails business rules"""

    phase = "validation"

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        warnings: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.errors = list(errors or [])
        self.warnings = list(warnings or [])


class IntegrationFailed(OnboardingError):
    """Commit or migration transaction aborted; prior state is intact"""

    phase = "integration"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
