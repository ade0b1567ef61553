# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Persistence interface shared by every core service.

Implementations must enforce the unique keys at the storage layer:
barangay code, family head, and the active (non-rejected) claim per
(family, schedule) pair.

Lifecycle writes are conditional on the state the caller read. A write that
finds the document in another state raises ConflictError instead of
overwriting a concurrent change.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from relief.models.entities import (
    AuditLog,
    Barangay,
    Claim,
    DonationSchedule,
    Family,
    FamilyMember,
    User,
    VerifiableAttribute
)
from relief.models.enums import ClaimStatus, ScheduleStatus, VerificationStatus


class DuplicateEntryError(Exception):
    """Raised when an insert violates a unique key."""

    def __init__(self, collection: str, key: str):
        super().__init__(f"Duplicate entry in {collection}: {key}")
        self.collection = collection
        self.key = key


class ConflictError(Exception):
    """Raised when a conditional write finds the document in another state."""

    def __init__(self, collection: str, key: str, current_state: Optional[str] = None):
        super().__init__(f"Conflicting update in {collection}: {key}")
        self.collection = collection
        self.key = key
        self.current_state = current_state


class ReliefStore(ABC):
    """Repository for all core entities."""

    # Barangays

    @abstractmethod
    def insert_barangay(self, barangay: Barangay) -> Barangay: ...

    @abstractmethod
    def get_barangay(self, barangay_id: str) -> Optional[Barangay]: ...

    # Users

    @abstractmethod
    def insert_user(self, user: User) -> User: ...

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    def update_user(self, user: User) -> User: ...

    @abstractmethod
    def list_residents(self, barangay_id: str, active_only: bool = True) -> List[User]: ...

    @abstractmethod
    def list_pending_residents(self, barangay_id: Optional[str] = None) -> List[User]:
        """Inactive residents awaiting admin approval, newest first."""

    @abstractmethod
    def activate_user(self, user_id: str) -> bool:
        """Activate a pending resident; False unless the user was still pending."""

    @abstractmethod
    def delete_pending_user(self, user_id: str) -> bool:
        """Delete a pending resident; False unless the user was still pending."""

    # Families

    @abstractmethod
    def insert_family(self, family: Family) -> Family: ...

    @abstractmethod
    def get_family(self, family_id: str) -> Optional[Family]: ...

    @abstractmethod
    def get_family_by_head(self, head_id: str) -> Optional[Family]: ...

    @abstractmethod
    def update_family(self, family: Family) -> Family: ...

    @abstractmethod
    def list_families(self, barangay_id: str) -> List[Family]: ...

    @abstractmethod
    def delete_family(self, family_id: str) -> bool: ...

    # Family members

    @abstractmethod
    def insert_member(self, member: FamilyMember) -> FamilyMember: ...

    @abstractmethod
    def get_member(self, member_id: str) -> Optional[FamilyMember]: ...

    @abstractmethod
    def update_member_profile(self, member: FamilyMember, fields: Iterable[str]) -> FamilyMember:
        """
        Write only the named profile fields of `member`.

        An age change is conditional on the SENIOR status carried by `member`,
        since senior status requires a qualifying age. Returns the stored member.
        """

    @abstractmethod
    def update_member_attribute(
        self,
        member_id: str,
        attribute: VerifiableAttribute,
        expected_status: VerificationStatus
    ) -> FamilyMember:
        """
        Replace one attribute if it still has `expected_status`.

        Raises ConflictError carrying the stored status otherwise. Returns the
        stored member.
        """

    @abstractmethod
    def delete_member(self, member_id: str) -> bool: ...

    @abstractmethod
    def list_members(self, family_id: str) -> List[FamilyMember]: ...

    # Donation schedules

    @abstractmethod
    def insert_schedule(self, schedule: DonationSchedule) -> DonationSchedule: ...

    @abstractmethod
    def get_schedule(self, schedule_id: str) -> Optional[DonationSchedule]: ...

    @abstractmethod
    def update_schedule(self, schedule: DonationSchedule) -> DonationSchedule: ...

    @abstractmethod
    def delete_schedule(self, schedule_id: str) -> bool:
        """Delete a schedule; raise ConflictError while any claim references it."""

    @abstractmethod
    def list_schedules(self, barangay_id: str, status: Optional[ScheduleStatus] = None) -> List[DonationSchedule]: ...

    # Claims

    @abstractmethod
    def insert_claim(self, claim: Claim) -> Claim:
        """
        Insert a claim.

        Raises DuplicateEntryError if an active claim exists for the pair, and
        ConflictError if the schedule no longer exists.
        """

    @abstractmethod
    def get_claim(self, claim_id: str) -> Optional[Claim]: ...

    @abstractmethod
    def update_claim(self, claim: Claim, expected_status: ClaimStatus) -> Claim:
        """Replace a claim if its stored status is still `expected_status`."""

    @abstractmethod
    def find_active_claim(self, family_id: str, schedule_id: str) -> Optional[Claim]: ...

    @abstractmethod
    def list_claims(
        self,
        barangay_id: Optional[str] = None,
        schedule_id: Optional[str] = None,
        family_id: Optional[str] = None,
        status: Optional[ClaimStatus] = None
    ) -> List[Claim]: ...

    @abstractmethod
    def count_claims(self, schedule_id: str) -> int:
        """Count claims of any status on a schedule."""

    @abstractmethod
    def reserve_slot(self, schedule_id: str, capacity: int) -> bool:
        """Atomically take one of `capacity` recipient slots; False when full."""

    @abstractmethod
    def release_slot(self, schedule_id: str) -> None: ...

    # Audit logs

    @abstractmethod
    def insert_audit_log(self, entry: AuditLog) -> AuditLog: ...

    @abstractmethod
    def list_audit_logs(
        self,
        barangay_id: Optional[str] = None,
        action: Optional[str] = None,
        actor_id: Optional[str] = None,
        limit: int = 100
    ) -> List[AuditLog]: ...
