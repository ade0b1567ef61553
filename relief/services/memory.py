# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
In-process store for local development and tests.

Entities are kept as serialized documents, so callers never share mutable
state with the store. Unique keys are enforced under a single lock, which
makes the check and the insert one atomic step. Conditional updates compare
the stored state under the same lock.
"""

import logging
import threading
from collections import OrderedDict
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Type, TypeVar

from relief.models.entities import (
    AuditLog,
    Barangay,
    Claim,
    DonationSchedule,
    Family,
    FamilyMember,
    SENIOR_CITIZEN_MIN_AGE,
    User,
    VerifiableAttribute
)
from relief.models.enums import AttributeKind, ClaimStatus, ScheduleStatus, UserRole, VerificationStatus
from .store import ConflictError, DuplicateEntryError, ReliefStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InMemoryReliefStore(ReliefStore):
    """Thread-safe dictionary-backed implementation of ReliefStore."""

    def __init__(self):
        self._lock = threading.RLock()
        self._collections: Dict[str, "OrderedDict[str, Dict]"] = {}
        self._barangay_codes: Dict[str, str] = {}
        self._family_heads: Dict[str, str] = {}
        self._active_claims: Dict[Tuple[str, str], str] = {}
        self._reserved_slots: Dict[str, int] = {}
        self._audit_logs: List[Dict] = []
        logger.info("In-memory store initialized")

    def _collection(self, name: str) -> "OrderedDict[str, Dict]":
        return self._collections.setdefault(name, OrderedDict())

    def _put(self, name: str, entity) -> None:
        self._collection(name)[entity.id] = entity.to_document()

    def _get(self, name: str, entity_id: str, model: Type[T]) -> Optional[T]:
        with self._lock:
            document = self._collection(name).get(entity_id)
        return model.from_document(document) if document is not None else None

    def _find(self, name: str, model: Type[T], predicate: Callable[[T], bool]) -> List[T]:
        with self._lock:
            documents = list(self._collection(name).values())
        entities = [model.from_document(document) for document in documents]
        return [entity for entity in entities if predicate(entity)]

    def _replace(self, name: str, entity) -> None:
        with self._lock:
            if entity.id not in self._collection(name):
                raise KeyError(f"{name} document not found: {entity.id}")
            self._put(name, entity)

    # Barangays

    def insert_barangay(self, barangay: Barangay) -> Barangay:
        with self._lock:
            if barangay.code in self._barangay_codes:
                raise DuplicateEntryError("barangays", barangay.code)
            self._barangay_codes[barangay.code] = barangay.id
            self._put("barangays", barangay)
        return barangay

    def get_barangay(self, barangay_id: str) -> Optional[Barangay]:
        return self._get("barangays", barangay_id, Barangay)

    # Users

    def insert_user(self, user: User) -> User:
        with self._lock:
            self._put("users", user)
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        return self._get("users", user_id, User)

    def update_user(self, user: User) -> User:
        self._replace("users", user)
        return user

    def list_residents(self, barangay_id: str, active_only: bool = True) -> List[User]:
        return self._find("users", User, lambda user: (
            user.role == UserRole.RESIDENT
            and user.barangay_id == barangay_id
            and (user.is_active or not active_only)
        ))

    def list_pending_residents(self, barangay_id: Optional[str] = None) -> List[User]:
        pending = self._find("users", User, lambda user: (
            user.role == UserRole.RESIDENT
            and not user.is_active
            and (barangay_id is None or user.barangay_id == barangay_id)
        ))
        return sorted(pending, key=lambda user: user.created_at, reverse=True)

    def _pending_user(self, user_id: str) -> Optional[User]:
        document = self._collection("users").get(user_id)
        if document is None:
            return None
        user = User.from_document(document)
        return user if user.role == UserRole.RESIDENT and not user.is_active else None

    def activate_user(self, user_id: str) -> bool:
        with self._lock:
            user = self._pending_user(user_id)
            if user is None:
                return False
            self._put("users", user.model_copy(update={"is_active": True, "updated_at": datetime.utcnow()}))
            return True

    def delete_pending_user(self, user_id: str) -> bool:
        with self._lock:
            if self._pending_user(user_id) is None:
                return False
            del self._collection("users")[user_id]
            return True

    # Families

    def insert_family(self, family: Family) -> Family:
        with self._lock:
            if family.head_id in self._family_heads:
                raise DuplicateEntryError("families", family.head_id)
            self._family_heads[family.head_id] = family.id
            self._put("families", family)
        return family

    def get_family(self, family_id: str) -> Optional[Family]:
        return self._get("families", family_id, Family)

    def get_family_by_head(self, head_id: str) -> Optional[Family]:
        with self._lock:
            family_id = self._family_heads.get(head_id)
        return self.get_family(family_id) if family_id else None

    def update_family(self, family: Family) -> Family:
        self._replace("families", family)
        return family

    def list_families(self, barangay_id: str) -> List[Family]:
        return self._find("families", Family, lambda family: family.barangay_id == barangay_id)

    def delete_family(self, family_id: str) -> bool:
        with self._lock:
            document = self._collection("families").pop(family_id, None)
            if document is None:
                return False
            self._family_heads.pop(document["headId"], None)
            return True

    # Family members

    def insert_member(self, member: FamilyMember) -> FamilyMember:
        with self._lock:
            self._put("family_members", member)
        return member

    def get_member(self, member_id: str) -> Optional[FamilyMember]:
        return self._get("family_members", member_id, FamilyMember)

    def _stored_member(self, member_id: str) -> FamilyMember:
        document = self._collection("family_members").get(member_id)
        if document is None:
            raise ConflictError("family_members", member_id)
        return FamilyMember.from_document(document)

    def update_member_profile(self, member: FamilyMember, fields: Iterable[str]) -> FamilyMember:
        fields = set(fields)
        with self._lock:
            stored = self._stored_member(member.id)
            if "age" in fields:
                expected = member.attribute(AttributeKind.SENIOR).status
                current = stored.attribute(AttributeKind.SENIOR).status
                if current != expected:
                    raise ConflictError("family_members", member.id, current.value)
            changes = {field: getattr(member, field) for field in fields}
            changes["updated_at"] = member.updated_at
            updated = stored.model_copy(update=changes)
            self._put("family_members", updated)
        return updated

    def update_member_attribute(
        self,
        member_id: str,
        attribute: VerifiableAttribute,
        expected_status: VerificationStatus
    ) -> FamilyMember:
        with self._lock:
            stored = self._stored_member(member_id)
            current = stored.attribute(attribute.kind).status
            if current != VerificationStatus(expected_status):
                raise ConflictError("family_members", member_id, current.value)
            needs_age = attribute.kind == AttributeKind.SENIOR and (
                attribute.value or attribute.status != VerificationStatus.UNSET
            )
            if needs_age and (stored.age is None or stored.age < SENIOR_CITIZEN_MIN_AGE):
                raise ConflictError("family_members", member_id, current.value)
            updated = stored.with_attribute(attribute)
            self._put("family_members", updated)
        return updated

    def delete_member(self, member_id: str) -> bool:
        with self._lock:
            return self._collection("family_members").pop(member_id, None) is not None

    def list_members(self, family_id: str) -> List[FamilyMember]:
        return self._find("family_members", FamilyMember, lambda member: member.family_id == family_id)

    # Donation schedules

    def insert_schedule(self, schedule: DonationSchedule) -> DonationSchedule:
        with self._lock:
            self._put("donation_schedules", schedule)
        return schedule

    def get_schedule(self, schedule_id: str) -> Optional[DonationSchedule]:
        return self._get("donation_schedules", schedule_id, DonationSchedule)

    def update_schedule(self, schedule: DonationSchedule) -> DonationSchedule:
        self._replace("donation_schedules", schedule)
        return schedule

    def delete_schedule(self, schedule_id: str) -> bool:
        with self._lock:
            schedules = self._collection("donation_schedules")
            if schedule_id not in schedules:
                return False
            if any(claim["scheduleId"] == schedule_id for claim in self._collection("claims").values()):
                raise ConflictError("donation_schedules", schedule_id, schedules[schedule_id]["status"])
            self._reserved_slots.pop(schedule_id, None)
            del schedules[schedule_id]
            return True

    def list_schedules(self, barangay_id: str, status: Optional[ScheduleStatus] = None) -> List[DonationSchedule]:
        return self._find("donation_schedules", DonationSchedule, lambda schedule: (
            schedule.barangay_id == barangay_id
            and (status is None or schedule.status == status)
        ))

    # Claims

    def insert_claim(self, claim: Claim) -> Claim:
        key = (claim.family_id, claim.schedule_id)
        with self._lock:
            if claim.schedule_id not in self._collection("donation_schedules"):
                raise ConflictError("donation_schedules", claim.schedule_id)
            if claim.active:
                if key in self._active_claims:
                    raise DuplicateEntryError("claims", f"{key[0]}:{key[1]}")
                self._active_claims[key] = claim.id
            self._put("claims", claim)
        return claim

    def get_claim(self, claim_id: str) -> Optional[Claim]:
        return self._get("claims", claim_id, Claim)

    def update_claim(self, claim: Claim, expected_status: ClaimStatus) -> Claim:
        key = (claim.family_id, claim.schedule_id)
        with self._lock:
            document = self._collection("claims").get(claim.id)
            if document is None:
                raise KeyError(f"claims document not found: {claim.id}")
            if document["status"] != ClaimStatus(expected_status).value:
                raise ConflictError("claims", claim.id, document["status"])
            self._put("claims", claim)
            if not claim.active and self._active_claims.get(key) == claim.id:
                del self._active_claims[key]
        return claim

    def find_active_claim(self, family_id: str, schedule_id: str) -> Optional[Claim]:
        with self._lock:
            claim_id = self._active_claims.get((family_id, schedule_id))
        return self.get_claim(claim_id) if claim_id else None

    def list_claims(
        self,
        barangay_id: Optional[str] = None,
        schedule_id: Optional[str] = None,
        family_id: Optional[str] = None,
        status: Optional[ClaimStatus] = None
    ) -> List[Claim]:
        return self._find("claims", Claim, lambda claim: (
            (barangay_id is None or claim.barangay_id == barangay_id)
            and (schedule_id is None or claim.schedule_id == schedule_id)
            and (family_id is None or claim.family_id == family_id)
            and (status is None or claim.status == status)
        ))

    def count_claims(self, schedule_id: str) -> int:
        return len(self.list_claims(schedule_id=schedule_id))

    def reserve_slot(self, schedule_id: str, capacity: int) -> bool:
        with self._lock:
            taken = self._reserved_slots.get(schedule_id, 0)
            if taken >= capacity:
                return False
            self._reserved_slots[schedule_id] = taken + 1
            return True

    def release_slot(self, schedule_id: str) -> None:
        with self._lock:
            taken = self._reserved_slots.get(schedule_id, 0)
            self._reserved_slots[schedule_id] = max(taken - 1, 0)

    # Audit logs

    def insert_audit_log(self, entry: AuditLog) -> AuditLog:
        with self._lock:
            self._audit_logs.append(entry.model_dump(mode="json", by_alias=True))
        return entry

    def list_audit_logs(
        self,
        barangay_id: Optional[str] = None,
        action: Optional[str] = None,
        actor_id: Optional[str] = None,
        limit: int = 100
    ) -> List[AuditLog]:
        with self._lock:
            documents = list(reversed(self._audit_logs))
        entries = [AuditLog.model_validate(document) for document in documents]
        return [
            entry for entry in entries
            if (barangay_id is None or entry.barangay_id == barangay_id)
            and (action is None or entry.action == action)
            and (actor_id is None or entry.actor_id == actor_id)
        ][:limit]
