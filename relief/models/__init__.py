# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the barangay relief platform.
"""

# Base models
from .base import BaseEntity, generate_object_id

# Enumerations
from .enums import (
    UserRole,
    MaritalStatus,
    EducationLevel,
    FamilyClassification,
    TargetClassification,
    FamilyRelation,
    AttributeKind,
    VerificationStatus,
    VerificationDecision,
    ScheduleStatus,
    DonationType,
    ClaimStatus,
    WheelchairRule,
    AuditAction
)

# Core entities
from .entities import (
    Barangay,
    User,
    Family,
    FamilyMember,
    VerifiableAttribute,
    DonationSchedule,
    Claim,
    AuditLog,
    SENIOR_CITIZEN_MIN_AGE
)

# Actors
from .actors import (
    Actor,
    AdminActor,
    BarangayStaffActor,
    ResidentActor,
    actor_for
)

# Request models
from .requests import (
    CreateScheduleRequest,
    UpdateScheduleRequest,
    AddMemberRequest,
    UpdateMemberRequest,
    parse_request
)

__all__ = [
    # Base models
    "BaseEntity",
    "generate_object_id",

    # Enumerations
    "UserRole",
    "MaritalStatus",
    "EducationLevel",
    "FamilyClassification",
    "TargetClassification",
    "FamilyRelation",
    "AttributeKind",
    "VerificationStatus",
    "VerificationDecision",
    "ScheduleStatus",
    "DonationType",
    "ClaimStatus",
    "WheelchairRule",
    "AuditAction",

    # Core entities
    "Barangay",
    "User",
    "Family",
    "FamilyMember",
    "VerifiableAttribute",
    "DonationSchedule",
    "Claim",
    "AuditLog",
    "SENIOR_CITIZEN_MIN_AGE",

    # Actors
    "Actor",
    "AdminActor",
    "BarangayStaffActor",
    "ResidentActor",
    "actor_for",

    # Request models
    "CreateScheduleRequest",
    "UpdateScheduleRequest",
    "AddMemberRequest",
    "UpdateMemberRequest",
    "parse_request"
]
