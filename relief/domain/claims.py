# SPDX-License-Identifier: Apache-2.0

"""
Claim workflow rules.

This module contains pure functions for claim status transitions and the
preconditions of claim creation. Persistence and side effects live in
relief.services.claims.
"""

from datetime import datetime
from dataclasses import dataclass
from typing import Dict, List, Optional

from relief.models.entities import Claim, DonationSchedule, User
from relief.models.enums import ClaimStatus, ScheduleStatus


@dataclass
class ValidationResult:
    """Result of a rule check."""
    is_valid: bool
    errors: List[str]

    @property
    def message(self) -> Optional[str]:
        return self.errors[0] if self.errors else None


# PENDING -> VERIFIED -> CLAIMED, PENDING -> REJECTED
VALID_TRANSITIONS: Dict[ClaimStatus, List[ClaimStatus]] = {
    ClaimStatus.PENDING: [ClaimStatus.VERIFIED, ClaimStatus.REJECTED],
    ClaimStatus.VERIFIED: [ClaimStatus.CLAIMED],
    ClaimStatus.CLAIMED: [],  # Terminal state
    ClaimStatus.REJECTED: []  # Terminal state
}

TRANSITION_ERRORS: Dict[ClaimStatus, str] = {
    ClaimStatus.VERIFIED: "Only pending claims can be verified",
    ClaimStatus.CLAIMED: "Only verified claims can be marked as claimed",
    ClaimStatus.REJECTED: "Only pending claims can be rejected",
}


def validate_status_transition(current_status: ClaimStatus, new_status: ClaimStatus) -> ValidationResult:
    """
    Validate claim status transition.

    Args:
        current_status: Current claim status
        new_status: Desired new status

    Returns:
        ValidationResult with validation status and errors
    """
    current_status = ClaimStatus(current_status)
    new_status = ClaimStatus(new_status)
    if new_status in VALID_TRANSITIONS[current_status]:
        return ValidationResult(is_valid=True, errors=[])

    message = TRANSITION_ERRORS.get(
        new_status,
        f"Invalid status transition from {current_status.value} to {new_status.value}"
    )
    return ValidationResult(
        is_valid=False,
        errors=[f"{message} (current status: {current_status.value})"]
    )


def is_terminal(status: ClaimStatus) -> bool:
    return not VALID_TRANSITIONS[ClaimStatus(status)]


def validate_schedule_open(schedule: DonationSchedule, allow_distributed: bool = False) -> ValidationResult:
    """
    Check that a schedule still accepts claims.

    Args:
        schedule: Donation schedule
        allow_distributed: Whether DISTRIBUTED schedules still accept claims

    Returns:
        ValidationResult with validation status and errors
    """
    if schedule.is_open():
        return ValidationResult(is_valid=True, errors=[])
    status = ScheduleStatus(schedule.status)
    if status == ScheduleStatus.DISTRIBUTED and allow_distributed:
        return ValidationResult(is_valid=True, errors=[])
    return ValidationResult(
        is_valid=False,
        errors=[f"Schedule is not available for claiming (current status: {status.value})"]
    )


def validate_claimant(head: User) -> ValidationResult:
    """Inactive residents cannot claim."""
    if not head.is_active:
        return ValidationResult(
            is_valid=False,
            errors=["Family head's account is awaiting approval and cannot claim"]
        )
    return ValidationResult(is_valid=True, errors=[])


def _merge_notes(claim: Claim, notes: Optional[str]) -> Optional[str]:
    if notes and notes.strip():
        return notes.strip()
    return claim.notes


def verify_claim(claim: Claim, staff_id: str, notes: Optional[str] = None) -> Claim:
    """Return a VERIFIED copy of a PENDING claim."""
    now = datetime.utcnow()
    return claim.model_copy(update={
        "status": ClaimStatus.VERIFIED,
        "is_verified": True,
        "verified_at": now,
        "verified_by": staff_id,
        "notes": _merge_notes(claim, notes),
        "updated_at": now
    })


def complete_claim(claim: Claim, notes: Optional[str] = None) -> Claim:
    """Return a CLAIMED copy of a VERIFIED claim."""
    now = datetime.utcnow()
    return claim.model_copy(update={
        "status": ClaimStatus.CLAIMED,
        "claimed_at_physical": now,
        "notes": _merge_notes(claim, notes),
        "updated_at": now
    })


def reject_claim(claim: Claim, staff_id: str, notes: Optional[str] = None) -> Claim:
    """Return a REJECTED copy of a PENDING claim."""
    return claim.model_copy(update={
        "status": ClaimStatus.REJECTED,
        "verified_by": staff_id,
        "notes": _merge_notes(claim, notes),
        "updated_at": datetime.utcnow()
    })
