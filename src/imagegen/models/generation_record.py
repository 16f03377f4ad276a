"""GenerationRecord entity - one prompt-to-image job and its outcome."""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Column, DateTime, Text
from sqlmodel import Field, SQLModel

from imagegen.core.timezone import utcnow

DATA_URI_PREFIX = "data:"


class GenerationStatus(str, Enum):
    """Generation record lifecycle status."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class InvalidStateTransition(Exception):
    """Raised when attempting an invalid generation record state transition."""

    pass


class GenerationRecord(SQLModel, table=True):
    """GenerationRecord tracks a single image generation request.

    Created as pending, then moved exactly once to completed or failed.
    """

    __tablename__ = "generation_records"  # type: ignore[assignment]

    id: Optional[int] = Field(default=None, primary_key=True)
    prompt: str = Field(sa_column=Column(Text, nullable=False))
    image_url: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    status: GenerationStatus = Field(default=GenerationStatus.PENDING, index=True)
    error_message: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )
    updated_at: datetime = Field(
        default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False)
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in (GenerationStatus.COMPLETED, GenerationStatus.FAILED)

    def mark_completed(self, image_url: str) -> None:
        """Transition from pending to completed.

        Args:
            image_url: Data URI of the generated image

        Raises:
            InvalidStateTransition: If current status is not pending
            ValueError: If image_url is empty or not a data URI
        """
        if self.status != GenerationStatus.PENDING:
            raise InvalidStateTransition(
                f"Cannot mark completed from {self.status.value}. Record must be pending."
            )
        if not image_url or not image_url.startswith(DATA_URI_PREFIX):
            raise ValueError("image_url must be a non-empty data URI")
        self.image_url = image_url
        self.status = GenerationStatus.COMPLETED
        self.updated_at = utcnow()

    def mark_failed(self, error_message: str) -> None:
        """Transition from pending to failed.

        Args:
            error_message: Failure reason (truncated to 1000 characters)

        Raises:
            InvalidStateTransition: If current status is not pending
        """
        if self.status != GenerationStatus.PENDING:
            raise InvalidStateTransition(
                f"Cannot mark failed from {self.status.value}. Record must be pending."
            )
        self.error_message = error_message[:1000]
        self.status = GenerationStatus.FAILED
        self.updated_at = utcnow()
