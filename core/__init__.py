#Shared building blocks with no business logic.
#The error taxonomy and the radius/limit checks live here so every package can import them without cycles.

from .errors import (
    DispatchError,
    ValidationError,
    NotFound,
    Conflict,
    TransientStoreError,
)
from .limits import require_limit, require_radius

__all__ = [
    "DispatchError",
    "ValidationError",
    "NotFound",
    "Conflict",
    "TransientStoreError",
    "require_limit",
    "require_radius",
]
