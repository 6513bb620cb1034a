"""Services package."""
from timeline.services import (
    event_service,
    extraction_service,
    lifecycle_service,
    storage_service,
)

__all__ = [
    "event_service",
    "extraction_service",
    "lifecycle_service",
    "storage_service",
]
