# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the barangay relief platform.
"""

from enum import Enum


class UserRole(str, Enum):
    """User role enumeration."""
    ADMIN = "ADMIN"
    BARANGAY = "BARANGAY"
    RESIDENT = "RESIDENT"


class MaritalStatus(str, Enum):
    """Resident marital status."""
    SINGLE = "SINGLE"
    MARRIED = "MARRIED"
    WIDOWED = "WIDOWED"
    SEPARATED = "SEPARATED"
    SOLO_PARENT = "SOLO_PARENT"


class EducationLevel(str, Enum):
    """Current education level for students."""
    ELEMENTARY_LEVEL = "ELEMENTARY_LEVEL"
    HIGH_SCHOOL_LEVEL = "HIGH_SCHOOL_LEVEL"
    SENIOR_HIGH_SCHOOL = "SENIOR_HIGH_SCHOOL"
    COLLEGE_LEVEL = "COLLEGE_LEVEL"


class FamilyClassification(str, Enum):
    """Staff-assigned wealth tier of a family."""
    HIGH_CLASS = "HIGH_CLASS"
    MIDDLE_CLASS = "MIDDLE_CLASS"
    LOW_CLASS = "LOW_CLASS"
    UNCLASSIFIED = "UNCLASSIFIED"


class TargetClassification(str, Enum):
    """Classification targeted by a donation schedule."""
    ALL = "ALL"
    HIGH_CLASS = "HIGH_CLASS"
    MIDDLE_CLASS = "MIDDLE_CLASS"
    LOW_CLASS = "LOW_CLASS"


class FamilyRelation(str, Enum):
    """Relation of a member to the family head."""
    SPOUSE = "SPOUSE"
    CHILD = "CHILD"
    PARENT = "PARENT"
    SIBLING = "SIBLING"
    GRANDPARENT = "GRANDPARENT"
    GRANDCHILD = "GRANDCHILD"
    RELATIVE = "RELATIVE"
    OTHER = "OTHER"


class AttributeKind(str, Enum):
    """Special-status attributes that require staff verification."""
    INDIGENT = "indigent"
    SENIOR = "senior"
    PWD = "pwd"


class VerificationStatus(str, Enum):
    """Verification workflow status of a special-status attribute."""
    UNSET = "UNSET"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class VerificationDecision(str, Enum):
    """Staff decision on a pending attribute."""
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class ScheduleStatus(str, Enum):
    """Donation schedule workflow status."""
    SCHEDULED = "SCHEDULED"
    DISTRIBUTED = "DISTRIBUTED"
    CANCELLED = "CANCELLED"


class DonationType(str, Enum):
    """Donation type, restricting which families may claim."""
    GENERAL = "GENERAL"
    EDUCATION = "EDUCATION"
    WHEELCHAIR = "WHEELCHAIR"
    PWD = "PWD"
    IP = "IP"
    SENIOR_CITIZEN = "SENIOR_CITIZEN"
    SOLO_PARENT = "SOLO_PARENT"


class ClaimStatus(str, Enum):
    """Claim workflow status."""
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    CLAIMED = "CLAIMED"
    REJECTED = "REJECTED"


class WheelchairRule(str, Enum):
    """How WHEELCHAIR schedules combine the PWD and IP conditions."""
    PWD_OR_IP = "PWD_OR_IP"
    PWD_AND_IP = "PWD_AND_IP"
    PWD_ONLY = "PWD_ONLY"


class AuditAction(str, Enum):
    """Audit trail action tags."""
    CLAIM_CREATED = "CLAIM_CREATED"
    CLAIM_VERIFIED = "CLAIM_VERIFIED"
    CLAIM_COMPLETED = "CLAIM_COMPLETED"
    CLAIM_REJECTED = "CLAIM_REJECTED"
    SCHEDULE_CREATED = "SCHEDULE_CREATED"
    SCHEDULE_UPDATED = "SCHEDULE_UPDATED"
    SCHEDULE_STATUS_UPDATED = "SCHEDULE_STATUS_UPDATED"
    SCHEDULE_DELETED = "SCHEDULE_DELETED"
    SCHEDULE_AUTO_UPDATED = "SCHEDULE_AUTO_UPDATED"
    REMINDER_SENT = "REMINDER_SENT"
    SMS_NOTIFICATION_SENT = "SMS_NOTIFICATION_SENT"
    FAMILY_REGISTERED = "FAMILY_REGISTERED"
    FAMILY_MEMBER_ADDED = "FAMILY_MEMBER_ADDED"
    FAMILY_MEMBER_UPDATED = "FAMILY_MEMBER_UPDATED"
    FAMILY_MEMBER_REMOVED = "FAMILY_MEMBER_REMOVED"
    FAMILY_MEMBER_VERIFICATION_SUBMITTED = "FAMILY_MEMBER_VERIFICATION_SUBMITTED"
    FAMILY_MEMBER_VERIFICATION_UPDATED = "FAMILY_MEMBER_VERIFICATION_UPDATED"
    FAMILY_MEMBER_VERIFICATION_CLEARED = "FAMILY_MEMBER_VERIFICATION_CLEARED"
    CLASSIFICATION_UPDATED = "CLASSIFICATION_UPDATED"
    USER_APPROVED = "USER_APPROVED"
    USER_REJECTED = "USER_REJECTED"
