"""Calibration history model for Battle Plan."""

from datetime import datetime

from pydantic import BaseModel, Field


class CalibrationEntry(BaseModel):
    """Append-only record of estimated vs actual minutes for one completed task."""

    id: str = Field(..., description="Unique entry identifier")
    tag: str = Field(..., description="Category tag the entry calibrates")
    estimate_bucket: int = Field(..., description="Estimated minutes")
    actual_bucket: int = Field(..., description="Minutes actually spent")
    completed_at: datetime = Field(..., description="When the task was completed")

    class Config:
        """Pydantic configuration."""
        frozen = True
