"""Routine (reusable checklist) models for Battle Plan."""

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from battleplan.models.constants import ESTIMATE_BUCKETS
from battleplan.models.task import Confidence, TaskTag


class PlainTextItem(BaseModel):
    """Routine item that becomes a bare task with just a description."""

    kind: Literal["text"] = "text"
    text: str = Field(..., min_length=1)


class TemplateItem(BaseModel):
    """Routine item that pre-fills rating and planning fields on the created task."""

    kind: Literal["template"] = "template"
    text: str = Field(..., min_length=1)
    tag: Optional[TaskTag] = None
    estimate_bucket: Optional[int] = None
    confidence: Optional[Confidence] = None
    impact: Optional[int] = Field(None, ge=1, le=5)
    consequences: Optional[int] = Field(None, ge=1, le=5)
    friction: Optional[int] = Field(None, ge=1, le=5)
    leverage: Optional[int] = Field(None, ge=0, le=2)
    energy_match: Optional[int] = Field(None, ge=0, le=2)
    time_criticality: Optional[int] = Field(None, ge=0, le=2)

    @field_validator("estimate_bucket")
    @classmethod
    def _validate_estimate(cls, v):
        if v is not None and v not in ESTIMATE_BUCKETS:
            raise ValueError(f"estimate_bucket must be one of {list(ESTIMATE_BUCKETS)}")
        return v

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


RoutineItem = Annotated[Union[PlainTextItem, TemplateItem], Field(discriminator="kind")]


class Routine(BaseModel):
    """Named checklist that can be stamped out as today's tasks."""

    id: str
    name: str
    items: List[RoutineItem] = Field(default_factory=list)
    created_at: datetime


class RoutineCreate(BaseModel):
    """Fields accepted when creating a routine."""

    name: str = Field(..., min_length=1)
    items: List[RoutineItem] = Field(default_factory=list)


class RoutineUpdate(BaseModel):
    """Explicit partial routine update."""

    name: Optional[str] = Field(None, min_length=1)
    items: Optional[List[RoutineItem]] = None

    def changes(self) -> dict:
        # Attribute access keeps items as models (model_copy does not re-validate)
        return {k: getattr(self, k) for k in self.model_fields_set if getattr(self, k) is not None}
