"""
Core Application - Infrastructure & Base Classes

Shared foundation for the billing back-office apps (companies, invoices,
payments, authentication). Nothing in here knows about Stripe, invoices or
subscription plans.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - NotFoundError: Resource not found
    - ConflictError: State conflicts (invalid transitions, duplicates)

Helpers (import from core.helpers):
    - from_unix_timestamp: Convert provider epoch seconds to aware datetimes
    - to_minor_units / from_minor_units: Money <-> smallest currency unit
      (zero-decimal currencies such as JPY are not scaled)
    - validate_uuid: UUID validation

Note:
    Django models and model mixins are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

# Services (no Django model dependencies)
from .services import BaseService, ServiceResult

# Exceptions (no Django dependencies)
from .exceptions import (
    BaseApplicationError,
    ConflictError,
    NotFoundError,
)

# Helpers (no Django model dependencies)
from .helpers import (
    from_minor_units,
    from_unix_timestamp,
    to_minor_units,
    validate_uuid,
)

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "NotFoundError",
    "ConflictError",
    # Helpers
    "from_minor_units",
    "from_unix_timestamp",
    "to_minor_units",
    "validate_uuid",
]
