"""Repository layer.

Provides data access abstractions for domain entities.
"""

from imagegen.repositories.generation_record import GenerationRecordRepository

__all__ = [
    "GenerationRecordRepository",
]
