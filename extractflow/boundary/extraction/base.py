"""
Extraction service contract.

Submit a unit, get an operation reference back, poll it until it settles.

Dependencies: pydantic
System role: Extraction port consumed by the job tracker
"""

import enum
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field


class ExtractionStatus(str, enum.Enum):
    """Remote operation state as seen by the poller."""

    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ExtractionResult(BaseModel):
    """Outcome of one poll of an extraction operation."""

    status: ExtractionStatus = Field(description="Remote operation state")
    fields: dict[str, Any] = Field(
        default_factory=dict,
        description="Extracted field map, set when succeeded",
    )
    error: str | None = Field(default=None, description="Failure reason, set when failed")


@runtime_checkable
class ExtractionClient(Protocol):
    """Asynchronous document extraction service."""

    async def submit(self, file_bytes: bytes, model_id: str) -> str:
        """
        Start extraction of one unit.

        Returns:
            str: Operation reference to poll

        Raises:
            ExternalServiceError: The service rejected the unit
        """
        ...

    async def poll(self, operation_ref: str) -> ExtractionResult:
        """
        Check an operation once.

        Raises:
            ExternalServiceError: The status could not be retrieved
        """
        ...
