# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for core operations.
"""

from datetime import date as date_type
from typing import Any, Optional, Type, TypeVar
from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError
from relief.errors import from_pydantic
from .entities import TIME_PATTERN
from .enums import (
    DonationType,
    EducationLevel,
    FamilyRelation,
    TargetClassification
)


class RequestModel(BaseModel):
    """Base model for request payloads."""

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True
    )


class CreateScheduleRequest(RequestModel):
    """Request model for creating a donation schedule."""

    title: str = Field(..., min_length=1, max_length=200, description="Schedule title")
    description: str = Field(..., min_length=1, max_length=2000, description="Schedule description")
    date: date_type = Field(..., description="Distribution date")
    start_time: str = Field(..., description="Start time (HH:MM)")
    end_time: str = Field(..., description="End time (HH:MM)")
    location: str = Field(..., min_length=1, max_length=300, description="Distribution venue")
    max_recipients: Optional[int] = Field(None, ge=1, description="Optional capacity")
    type: DonationType = Field(default=DonationType.GENERAL, description="Donation type")
    target_classification: TargetClassification = Field(
        default=TargetClassification.ALL,
        description="Targeted classification"
    )

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_time(cls, v):
        """Validate 24-hour time format."""
        if not TIME_PATTERN.match(v):
            raise ValueError('Time must be in HH:MM 24-hour format')
        return v

    @field_validator('target_classification', mode='before')
    @classmethod
    def normalize_target(cls, v):
        """Accept 'all' and empty values for untargeted schedules."""
        if v is None or (isinstance(v, str) and v.strip().lower() in ('', 'all')):
            return TargetClassification.ALL
        return v


class UpdateScheduleRequest(CreateScheduleRequest):
    """Request model for a full schedule update."""


class AddMemberRequest(RequestModel):
    """Request model for adding a family member."""

    name: str = Field(..., min_length=1, max_length=200, description="Member name")
    relation: FamilyRelation = Field(..., description="Relation to the family head")
    age: Optional[int] = Field(None, ge=0, le=150, description="Age in years")
    is_student: bool = Field(default=False, description="Self-declared student status")
    education_level: Optional[EducationLevel] = Field(None, description="Current education level")


class UpdateMemberRequest(RequestModel):
    """Request model for updating a family member."""

    name: Optional[str] = Field(None, min_length=1, max_length=200, description="Member name")
    relation: Optional[FamilyRelation] = Field(None, description="Relation to the family head")
    age: Optional[int] = Field(None, ge=0, le=150, description="Age in years")
    is_student: Optional[bool] = Field(None, description="Self-declared student status")
    education_level: Optional[EducationLevel] = Field(None, description="Current education level")


RequestT = TypeVar("RequestT", bound=RequestModel)


def parse_request(model: Type[RequestT], data: Any) -> RequestT:
    """Validate a payload into a request model, raising ValidationError on bad input."""
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise from_pydantic(e, f"Invalid {model.__name__}")
