# SPDX-License-Identifier: Apache-2.0

"""
Claim eligibility rules.

Pure predicates deciding whether a family may see and claim a donation
schedule. A family is eligible when it passes both the classification gate
and the donation type gate.
"""

from typing import Callable, Dict, Iterable, List, Optional, Sequence
from dataclasses import dataclass, field

from relief.models.entities import DonationSchedule, Family, FamilyMember, User
from relief.models.enums import (
    AttributeKind,
    DonationType,
    FamilyClassification,
    TargetClassification,
    WheelchairRule
)


@dataclass
class EligibilityRules:
    """Configurable parts of the eligibility rules."""
    wheelchair_rule: WheelchairRule = WheelchairRule.PWD_OR_IP


@dataclass
class EligibilityResult:
    """Result of an eligibility check."""
    eligible: bool
    reason: Optional[str] = None


@dataclass
class Household:
    """Everything the type gate reads about a family."""
    family: Family
    head: User
    members: List[FamilyMember] = field(default_factory=list)


def check_classification(family: Family, schedule: DonationSchedule) -> EligibilityResult:
    """
    Check the schedule's target classification against the family's.

    Args:
        family: Family entity
        schedule: Donation schedule

    Returns:
        EligibilityResult for the classification gate
    """
    target = TargetClassification(schedule.target_classification)
    if target == TargetClassification.ALL:
        return EligibilityResult(eligible=True)

    classification = FamilyClassification(family.classification)
    if classification.value == target.value:
        return EligibilityResult(eligible=True)

    if classification == FamilyClassification.UNCLASSIFIED:
        reason = f"Schedule is limited to {target.value} families and this family is not yet classified"
    else:
        reason = f"Schedule is limited to {target.value} families"
    return EligibilityResult(eligible=False, reason=reason)


def any_member_approved(members: Iterable[FamilyMember], kind: AttributeKind) -> bool:
    """Check if any member holds an APPROVED attribute of the given kind."""
    return any(member.has_approved(kind) for member in members)


def has_student(household: Household) -> bool:
    return household.head.is_student or any(member.is_student for member in household.members)


def is_indigenous(household: Household) -> bool:
    return household.head.is_indigenous


def _wheelchair(household: Household, rules: EligibilityRules) -> bool:
    pwd = any_member_approved(household.members, AttributeKind.PWD)
    rule = WheelchairRule(rules.wheelchair_rule)
    if rule == WheelchairRule.PWD_ONLY:
        return pwd
    if rule == WheelchairRule.PWD_AND_IP:
        return pwd and is_indigenous(household)
    return pwd or is_indigenous(household)


TYPE_GATES: Dict[DonationType, Callable[[Household, EligibilityRules], bool]] = {
    DonationType.GENERAL: lambda household, rules: True,
    DonationType.EDUCATION: lambda household, rules: has_student(household),
    DonationType.WHEELCHAIR: _wheelchair,
    DonationType.PWD: lambda household, rules: any_member_approved(household.members, AttributeKind.PWD),
    DonationType.IP: lambda household, rules: is_indigenous(household),
    DonationType.SENIOR_CITIZEN: lambda household, rules: any_member_approved(household.members, AttributeKind.SENIOR),
    DonationType.SOLO_PARENT: lambda household, rules: household.head.is_solo_parent(),
}

TYPE_REQUIREMENTS: Dict[DonationType, str] = {
    DonationType.EDUCATION: "a student in the family",
    DonationType.WHEELCHAIR: "a verified PWD member or indigenous peoples status",
    DonationType.PWD: "a family member with approved PWD status",
    DonationType.IP: "indigenous peoples status",
    DonationType.SENIOR_CITIZEN: "a family member with approved senior citizen status",
    DonationType.SOLO_PARENT: "solo parent status",
}


def check_type(
    household: Household,
    schedule: DonationSchedule,
    rules: Optional[EligibilityRules] = None
) -> EligibilityResult:
    """
    Check the schedule's donation type against the household.

    Only APPROVED attributes count; PENDING and REJECTED are ineligible.

    Args:
        household: Family, head and members
        schedule: Donation schedule
        rules: Configurable rules

    Returns:
        EligibilityResult for the type gate
    """
    rules = rules or EligibilityRules()
    donation_type = DonationType(schedule.type)
    if TYPE_GATES[donation_type](household, rules):
        return EligibilityResult(eligible=True)

    return EligibilityResult(
        eligible=False,
        reason=f"{donation_type.value} donations require {TYPE_REQUIREMENTS[donation_type]}"
    )


def is_eligible(
    household: Household,
    schedule: DonationSchedule,
    rules: Optional[EligibilityRules] = None
) -> EligibilityResult:
    """
    Decide whether a family may claim a schedule.

    Args:
        household: Family, head and members
        schedule: Donation schedule
        rules: Configurable rules

    Returns:
        EligibilityResult; reason names the first failing gate
    """
    classification = check_classification(household.family, schedule)
    if not classification.eligible:
        return classification

    return check_type(household, schedule, rules)


def filter_eligible_schedules(
    household: Household,
    schedules: Sequence[DonationSchedule],
    rules: Optional[EligibilityRules] = None
) -> List[DonationSchedule]:
    """Keep the schedules the household is eligible for, preserving order."""
    return [
        schedule for schedule in schedules
        if is_eligible(household, schedule, rules).eligible
    ]
