# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the barangay relief platform.
"""

import re
from datetime import date as date_type, datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from pydantic.alias_generators import to_camel
from .base import BaseEntity, generate_object_id
from .enums import (
    AttributeKind,
    ClaimStatus,
    DonationType,
    EducationLevel,
    FamilyClassification,
    FamilyRelation,
    MaritalStatus,
    ScheduleStatus,
    TargetClassification,
    UserRole,
    VerificationStatus
)

SENIOR_CITIZEN_MIN_AGE = 60

TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')


class Barangay(BaseEntity):
    """Administrative zone; the tenant boundary."""

    code: str = Field(..., min_length=1, max_length=50, description="Unique barangay code")
    name: str = Field(..., min_length=1, max_length=200, description="Barangay name")
    manager_id: Optional[str] = Field(None, description="Managing barangay user ID")

    @field_validator('code')
    @classmethod
    def validate_code(cls, v):
        """Normalize barangay code."""
        if not v.strip():
            raise ValueError('Barangay code cannot be empty')
        return v.strip().upper()


class User(BaseEntity):
    """Platform user; residents carry the profile used for eligibility."""

    role: UserRole = Field(..., description="User role")
    first_name: str = Field(..., min_length=1, max_length=100, description="First name")
    last_name: str = Field(..., min_length=1, max_length=100, description="Last name")
    phone: Optional[str] = Field(None, description="Mobile number as entered")
    barangay_id: Optional[str] = Field(None, description="Barangay the user belongs to or manages")
    is_active: bool = Field(default=True, description="False while awaiting admin approval")
    is_student: bool = Field(default=False, description="Self-declared student status")
    education_level: Optional[EducationLevel] = Field(None, description="Current education level")
    is_indigenous: bool = Field(default=False, description="Indigenous peoples residency category")
    marital_status: Optional[MaritalStatus] = Field(None, description="Marital status")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def is_solo_parent(self) -> bool:
        """Check if marital status records solo-parent status."""
        return self.marital_status == MaritalStatus.SOLO_PARENT


class Family(BaseEntity):
    """Household headed by one resident."""

    head_id: str = Field(..., description="Resident user heading the family")
    barangay_id: str = Field(..., description="Barangay the family belongs to")
    classification: FamilyClassification = Field(
        default=FamilyClassification.UNCLASSIFIED,
        description="Staff-assigned wealth classification"
    )


class VerifiableAttribute(BaseModel):
    """Self-declared special status awaiting or holding staff verification."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True
    )

    kind: AttributeKind = Field(..., description="Attribute kind")
    value: bool = Field(default=False, description="Declared flag value")
    evidence_ref: Optional[str] = Field(None, description="Evidence document reference")
    status: VerificationStatus = Field(default=VerificationStatus.UNSET, description="Verification status")

    @model_validator(mode='after')
    def validate_evidence(self):
        """A status other than UNSET requires evidence."""
        if self.status != VerificationStatus.UNSET:
            if not self.evidence_ref or not self.evidence_ref.strip():
                raise ValueError(f'Evidence document is required for {self.kind.value} verification')
        return self

    def is_approved(self) -> bool:
        return self.value and self.status == VerificationStatus.APPROVED


def default_attributes() -> List[VerifiableAttribute]:
    return [VerifiableAttribute(kind=kind) for kind in AttributeKind]


class FamilyMember(BaseEntity):
    """Member of a family with independently verified special statuses."""

    family_id: str = Field(..., description="Owning family")
    name: str = Field(..., min_length=1, max_length=200, description="Member name")
    relation: FamilyRelation = Field(..., description="Relation to the family head")
    age: Optional[int] = Field(None, ge=0, le=150, description="Age in years")
    is_student: bool = Field(default=False, description="Self-declared student status")
    education_level: Optional[EducationLevel] = Field(None, description="Current education level")
    attributes: List[VerifiableAttribute] = Field(default_factory=default_attributes)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Validate member name."""
        if not v.strip():
            raise ValueError('Member name cannot be empty')
        return v.strip()

    @field_validator('attributes')
    @classmethod
    def complete_attributes(cls, v):
        """Keep exactly one attribute per kind, in kind order."""
        by_kind = {}
        for attribute in v:
            if attribute.kind in by_kind:
                raise ValueError(f'Duplicate attribute: {attribute.kind.value}')
            by_kind[attribute.kind] = attribute
        return [by_kind.get(kind) or VerifiableAttribute(kind=kind) for kind in AttributeKind]

    @model_validator(mode='after')
    def validate_senior_age(self):
        """Senior citizen status requires a qualifying age."""
        senior = self.attribute(AttributeKind.SENIOR)
        if senior.value or senior.status != VerificationStatus.UNSET:
            if self.age is None or self.age < SENIOR_CITIZEN_MIN_AGE:
                raise ValueError(
                    f'Senior citizen status requires age {SENIOR_CITIZEN_MIN_AGE} or above'
                )
        return self

    def attribute(self, kind: AttributeKind) -> VerifiableAttribute:
        kind = AttributeKind(kind)
        for attribute in self.attributes:
            if attribute.kind == kind:
                return attribute
        return VerifiableAttribute(kind=kind)

    def has_approved(self, kind: AttributeKind) -> bool:
        """Check if the given attribute is set and APPROVED."""
        return self.attribute(kind).is_approved()

    def with_attribute(self, attribute: VerifiableAttribute) -> "FamilyMember":
        """Return a validated copy with one attribute replaced."""
        attributes = [
            attribute if existing.kind == attribute.kind else existing
            for existing in self.attributes
        ]
        return self.revised(attributes=attributes)

    def revised(self, **changes) -> "FamilyMember":
        """Return a validated copy with the given field changes."""
        data = self.model_dump()
        data.update(changes)
        data['updated_at'] = datetime.utcnow()
        return type(self).model_validate(data)

    @property
    def is_senior_citizen(self) -> bool:
        return self.attribute(AttributeKind.SENIOR).value

    @property
    def is_pwd(self) -> bool:
        return self.attribute(AttributeKind.PWD).value


class DonationSchedule(BaseEntity):
    """Scheduled distribution of donated goods in one barangay."""

    barangay_id: str = Field(..., description="Owning barangay")
    title: str = Field(..., min_length=1, max_length=200, description="Schedule title")
    description: str = Field(..., min_length=1, max_length=2000, description="Schedule description")
    date: date_type = Field(..., description="Distribution date")
    start_time: str = Field(..., description="Start time (HH:MM, 24-hour)")
    end_time: str = Field(..., description="End time (HH:MM, 24-hour)")
    location: str = Field(..., min_length=1, max_length=300, description="Distribution venue")
    max_recipients: Optional[int] = Field(None, ge=1, description="Optional capacity")
    status: ScheduleStatus = Field(default=ScheduleStatus.SCHEDULED, description="Workflow status")
    type: DonationType = Field(default=DonationType.GENERAL, description="Donation type")
    target_classification: TargetClassification = Field(
        default=TargetClassification.ALL,
        description="Classification the schedule is restricted to"
    )
    created_by: Optional[str] = Field(None, description="Staff user who created the schedule")

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_time(cls, v):
        """Validate 24-hour time format."""
        if not TIME_PATTERN.match(v):
            raise ValueError('Time must be in HH:MM 24-hour format')
        return v

    @field_validator('title', 'description', 'location')
    @classmethod
    def validate_text(cls, v):
        if not v.strip():
            raise ValueError('Field cannot be empty')
        return v.strip()

    @model_validator(mode='after')
    def validate_time_range(self):
        """End time must come after start time."""
        if self.end_time <= self.start_time:
            raise ValueError('End time must be after start time')
        return self

    def is_open(self) -> bool:
        return self.status == ScheduleStatus.SCHEDULED


class Claim(BaseEntity):
    """A family's claim on a donation schedule."""

    family_id: str = Field(..., description="Claiming family")
    schedule_id: str = Field(..., description="Claimed schedule")
    barangay_id: str = Field(..., description="Barangay scope")
    claimed_by: str = Field(..., description="User who created the claim")
    member_id: Optional[str] = Field(None, description="Member claiming instead of the head")
    status: ClaimStatus = Field(default=ClaimStatus.PENDING, description="Workflow status")
    is_verified: bool = Field(default=False, description="Whether staff verified the claim")
    verified_at: Optional[datetime] = Field(None, description="Verification timestamp")
    verified_by: Optional[str] = Field(None, description="Staff who verified or rejected")
    claimed_at_physical: Optional[datetime] = Field(None, description="Physical hand-off timestamp")
    notes: Optional[str] = Field(None, max_length=1000, description="Free-text notes")

    @property
    def active(self) -> bool:
        """Non-rejected claims count against the one-claim-per-family rule."""
        return self.status != ClaimStatus.REJECTED

    def to_document(self):
        document = super().to_document()
        document["active"] = self.active
        return document

    @classmethod
    def from_document(cls, document):
        document = dict(document)
        document.pop("active", None)
        return cls.model_validate(document)


class AuditLog(BaseModel):
    """Append-only audit trail entry."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True
    )

    id: str = Field(default_factory=generate_object_id, description="Unique identifier")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="Action timestamp")
    actor_id: str = Field(..., description="User who performed the action")
    action: str = Field(..., description="Action tag")
    detail: str = Field(default="", description="Free-text detail")
    barangay_id: Optional[str] = Field(None, description="Barangay scope")
    entity_id: Optional[str] = Field(None, description="Affected entity")
    trace_id: Optional[str] = Field(None, description="OpenTelemetry trace ID")
    span_id: Optional[str] = Field(None, description="OpenTelemetry span ID")
