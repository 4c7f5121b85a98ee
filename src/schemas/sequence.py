"""
Request DTOs for the sequence endpoints.

Field names are snake_case; camelCase aliases (``actionType``,
``prospectIds`` ...) are accepted as well. Update payloads forbid unknown
fields so ``step_number`` and ``total_steps`` can never be written directly.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from src.models.enums import ActionType, ActivityStatus, DelayType
from src.utils.dates import to_naive_utc


def _upper(value):
    if isinstance(value, str):
        return value.strip().upper()
    return value


class _RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='forbid')


class StepCreate(_RequestModel):
    name: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    action_type: ActionType
    template_id: Optional[str] = None
    delay_days: int = Field(default=1, ge=0)
    delay_type: DelayType = DelayType.AFTER_PREVIOUS
    fixed_date: Optional[datetime] = None
    conditions: Optional[Any] = None
    is_active: bool = True

    @field_validator('action_type', 'delay_type', mode='before')
    @classmethod
    def _normalise_enum(cls, value):
        return _upper(value)

    @field_validator('fixed_date')
    @classmethod
    def _normalise_date(cls, value):
        return to_naive_utc(value) if value else value

    @model_validator(mode='after')
    def _fixed_date_required(self):
        if self.delay_type == DelayType.FIXED_DATE and self.fixed_date is None:
            raise ValueError('fixed_date is required when delay_type is FIXED_DATE')
        return self


class StepUpdate(_RequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    action_type: Optional[ActionType] = None
    template_id: Optional[str] = None
    delay_days: Optional[int] = Field(default=None, ge=0)
    delay_type: Optional[DelayType] = None
    fixed_date: Optional[datetime] = None
    conditions: Optional[Any] = None
    is_active: Optional[bool] = None

    @field_validator('action_type', 'delay_type', mode='before')
    @classmethod
    def _normalise_enum(cls, value):
        return _upper(value)

    @field_validator('fixed_date')
    @classmethod
    def _normalise_date(cls, value):
        return to_naive_utc(value) if value else value


class SequenceCreate(_RequestModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    is_active: bool = True
    steps: List[StepCreate] = Field(default_factory=list)


class SequenceUpdate(_RequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class AssignProspectsRequest(_RequestModel):
    prospect_ids: List[str] = Field(..., min_length=1)


class ActivityReportRequest(_RequestModel):
    status: ActivityStatus
    notes: Optional[str] = None
    executed_at: Optional[datetime] = None

    @field_validator('status', mode='before')
    @classmethod
    def _normalise_status(cls, value):
        return _upper(value)

    @field_validator('status')
    @classmethod
    def _not_pending(cls, value):
        if value == ActivityStatus.PENDING:
            raise ValueError('status must be COMPLETED, FAILED or SKIPPED')
        return value

    @field_validator('executed_at')
    @classmethod
    def _normalise_date(cls, value):
        return to_naive_utc(value) if value else value
