"""SQLModel database entities.

All models are imported here to ensure they're registered with SQLModel metadata
before the schema is created at startup.
"""

from imagegen.models.generation_record import (
    GenerationRecord,
    GenerationStatus,
    InvalidStateTransition,
)

__all__ = [
    "GenerationRecord",
    "GenerationStatus",
    "InvalidStateTransition",
]
