# SPDX-License-Identifier: Apache-2.0

"""
Special-status attribute verification rules.

Each of indigent, senior and PWD on a family member moves independently
through UNSET -> PENDING -> APPROVED | REJECTED. A reviewed attribute has to
be cleared back to UNSET before it can be submitted again.
"""

from typing import Dict, List, Optional

from relief.domain.claims import ValidationResult
from relief.models.entities import FamilyMember, VerifiableAttribute, SENIOR_CITIZEN_MIN_AGE
from relief.models.enums import AttributeKind, VerificationDecision, VerificationStatus


VALID_TRANSITIONS: Dict[VerificationStatus, List[VerificationStatus]] = {
    VerificationStatus.UNSET: [VerificationStatus.PENDING],
    VerificationStatus.PENDING: [VerificationStatus.APPROVED, VerificationStatus.REJECTED],
    VerificationStatus.APPROVED: [],
    VerificationStatus.REJECTED: []
}


def validate_status_transition(
    kind: AttributeKind,
    current_status: VerificationStatus,
    new_status: VerificationStatus
) -> ValidationResult:
    """
    Validate attribute verification status transition.

    Clearing back to UNSET is not a transition and is always allowed.
    """
    kind = AttributeKind(kind)
    current_status = VerificationStatus(current_status)
    new_status = VerificationStatus(new_status)
    if new_status in VALID_TRANSITIONS[current_status]:
        return ValidationResult(is_valid=True, errors=[])

    if new_status == VerificationStatus.PENDING:
        message = f"{kind.value} status was already submitted; clear it before submitting again"
    elif current_status in (VerificationStatus.APPROVED, VerificationStatus.REJECTED):
        message = f"{kind.value} status was already reviewed"
    else:
        message = f"{kind.value} status has not been submitted for verification"
    return ValidationResult(
        is_valid=False,
        errors=[f"{message} (current status: {current_status.value})"]
    )


def validate_submission(member: FamilyMember, kind: AttributeKind, evidence_ref: Optional[str]) -> ValidationResult:
    """
    Validate the input of an attribute submission.

    Args:
        member: Family member declaring the status
        kind: Attribute kind
        evidence_ref: Evidence document reference

    Returns:
        ValidationResult with validation status and errors
    """
    kind = AttributeKind(kind)
    errors = []

    if not evidence_ref or not evidence_ref.strip():
        errors.append(f"Evidence document is required for {kind.value} verification")

    if kind == AttributeKind.SENIOR:
        if member.age is None or member.age < SENIOR_CITIZEN_MIN_AGE:
            errors.append(f"Senior citizen status requires age {SENIOR_CITIZEN_MIN_AGE} or above")

    return ValidationResult(is_valid=len(errors) == 0, errors=errors)


def submit_attribute(member: FamilyMember, kind: AttributeKind, evidence_ref: str) -> FamilyMember:
    """Flag the attribute true and enter PENDING."""
    return member.with_attribute(VerifiableAttribute(
        kind=kind,
        value=True,
        evidence_ref=evidence_ref.strip(),
        status=VerificationStatus.PENDING
    ))


def review_attribute(member: FamilyMember, kind: AttributeKind, decision: VerificationDecision) -> FamilyMember:
    """Record the staff decision on a PENDING attribute."""
    approved = VerificationDecision(decision) == VerificationDecision.APPROVE
    current = member.attribute(kind)
    return member.with_attribute(current.model_copy(update={
        "value": approved,
        "status": VerificationStatus.APPROVED if approved else VerificationStatus.REJECTED
    }))


def clear_attribute(member: FamilyMember, kind: AttributeKind) -> FamilyMember:
    """Reset the attribute to UNSET so the workflow can restart."""
    return member.with_attribute(VerifiableAttribute(kind=kind))
