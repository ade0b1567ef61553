# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Claim lifecycle service.

Claim uniqueness per (family, schedule) is enforced by the store's unique
key, so concurrent create_claim calls yield exactly one claim. Status changes
are conditional on the status that was read, so of two racing transitions
only one is applied. Audit and SMS side effects run after the state change
and never undo it.
"""

import logging
from typing import List, Optional, Tuple

from opentelemetry import trace

from relief.domain import claims as claim_rules
from relief.domain.authorization import (
    check_actor_kind,
    require_access,
    require_resident
)
from relief.domain.eligibility import EligibilityRules, is_eligible
from relief.errors import (
    AuthorizationError,
    DuplicateClaimError,
    EligibilityError,
    NotFoundError,
    ReliefError,
    TransitionError,
    ValidationError
)
from relief.models.actors import Actor, AdminActor, BarangayStaffActor, ResidentActor
from relief.models.entities import Claim, DonationSchedule, Family
from relief.models.enums import AuditAction, ClaimStatus
from relief.observability.tracing import record_rejection
from .audit import AuditRecorder
from .families import load_household, resident_family
from .notifications import NotificationDispatcher, build_claimed_message
from .store import ConflictError, DuplicateEntryError, ReliefStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

CAPACITY_REACHED = "Schedule has reached its maximum number of recipients"


class ClaimService:
    """Create claims and advance them through staff verification."""

    def __init__(
        self,
        store: ReliefStore,
        audit: AuditRecorder,
        notifications: NotificationDispatcher,
        rules: Optional[EligibilityRules] = None,
        allow_claims_on_distributed: bool = False
    ):
        self.store = store
        self.audit = audit
        self.notifications = notifications
        self.rules = rules or EligibilityRules()
        self.allow_claims_on_distributed = allow_claims_on_distributed

    def create_claim(
        self,
        actor: Actor,
        family_id: str,
        schedule_id: str,
        member_id: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Claim:
        """
        Claim a schedule for a family.

        Args:
            actor: Resident heading the family, or staff of its barangay
            family_id: Claiming family
            schedule_id: Claimed schedule
            member_id: Member collecting instead of the head (optional)
            notes: Free-text notes (optional)

        Returns:
            Claim: New PENDING claim

        Raises:
            EligibilityError: Schedule closed or full, or family not eligible
            DuplicateClaimError: Family already holds an active claim
        """
        with tracer.start_as_current_span("claims.create") as span:
            span.set_attributes({
                "actor.user_id": actor.user_id,
                "family.id": family_id,
                "schedule.id": schedule_id
            })
            try:
                family = self._family_for(actor, family_id)
                schedule = self.store.get_schedule(schedule_id)
                if schedule is None or schedule.barangay_id != family.barangay_id:
                    raise NotFoundError("Schedule not found")

                open_check = claim_rules.validate_schedule_open(schedule, self.allow_claims_on_distributed)
                if not open_check.is_valid:
                    raise EligibilityError(open_check.message)

                household = load_household(self.store, family)
                claimant_check = claim_rules.validate_claimant(household.head)
                if not claimant_check.is_valid:
                    raise EligibilityError(claimant_check.message)

                eligibility = is_eligible(household, schedule, self.rules)
                if not eligibility.eligible:
                    raise EligibilityError(eligibility.reason)

                if member_id is not None and member_id not in {m.id for m in household.members}:
                    raise ValidationError("Family member does not belong to this family")

                # Fast path only; the store's unique key is the guard
                if self.store.find_active_claim(family.id, schedule.id) is not None:
                    raise DuplicateClaimError()

                claim = Claim(
                    family_id=family.id,
                    schedule_id=schedule.id,
                    barangay_id=family.barangay_id,
                    claimed_by=actor.user_id,
                    member_id=member_id,
                    notes=notes.strip() if notes and notes.strip() else None
                )
                self._insert(claim, schedule)

                span.set_attribute("claim.id", claim.id)
                self.audit.append(
                    actor.user_id,
                    AuditAction.CLAIM_CREATED,
                    f"Claimed donation: {schedule.title} for {household.head.full_name}",
                    barangay_id=claim.barangay_id,
                    entity_id=claim.id
                )
                logger.info(
                    "Claim created",
                    extra={"claim_id": claim.id, "family_id": family.id, "schedule_id": schedule.id}
                )
                return claim

            except ReliefError as e:
                record_rejection(
                    span, logger, "create_claim", e,
                    actor_id=actor.user_id, family_id=family_id, schedule_id=schedule_id
                )
                raise

    def verify(self, actor: Actor, claim_id: str, notes: Optional[str] = None) -> Claim:
        """Staff confirm a PENDING claim."""
        with tracer.start_as_current_span("claims.verify") as span:
            span.set_attributes({"actor.user_id": actor.user_id, "claim.id": claim_id})
            try:
                claim = self._staff_claim(actor, claim_id)
                self._check_transition(claim, ClaimStatus.VERIFIED)

                verified = claim_rules.verify_claim(claim, actor.user_id, notes)
                self._save(claim, verified)

                self.audit.append(
                    actor.user_id,
                    AuditAction.CLAIM_VERIFIED,
                    f"Verified claim {claim.id}",
                    barangay_id=claim.barangay_id,
                    entity_id=claim.id
                )
                return verified

            except ReliefError as e:
                record_rejection(span, logger, "verify_claim", e, actor_id=actor.user_id, claim_id=claim_id)
                raise

    def mark_claimed(self, actor: Actor, claim_id: str, notes: Optional[str] = None) -> Claim:
        """Record the physical hand-off of a VERIFIED claim and notify the family head."""
        with tracer.start_as_current_span("claims.mark_claimed") as span:
            span.set_attributes({"actor.user_id": actor.user_id, "claim.id": claim_id})
            try:
                claim = self._staff_claim(actor, claim_id)
                self._check_transition(claim, ClaimStatus.CLAIMED)

                completed = claim_rules.complete_claim(claim, notes)
                self._save(claim, completed)

                self.audit.append(
                    actor.user_id,
                    AuditAction.CLAIM_COMPLETED,
                    f"Marked claim {claim.id} as claimed",
                    barangay_id=claim.barangay_id,
                    entity_id=claim.id
                )

            except ReliefError as e:
                record_rejection(span, logger, "mark_claimed", e, actor_id=actor.user_id, claim_id=claim_id)
                raise

            self._notify_claimed(completed)
            return completed

    def reject(self, actor: Actor, claim_id: str, notes: Optional[str] = None) -> Claim:
        """Staff refuse a PENDING claim; the family may claim again."""
        with tracer.start_as_current_span("claims.reject") as span:
            span.set_attributes({"actor.user_id": actor.user_id, "claim.id": claim_id})
            try:
                claim = self._staff_claim(actor, claim_id)
                self._check_transition(claim, ClaimStatus.REJECTED)

                rejected = claim_rules.reject_claim(claim, actor.user_id, notes)
                self._save(claim, rejected)

                schedule = self.store.get_schedule(claim.schedule_id)
                if schedule is not None and schedule.max_recipients:
                    self.store.release_slot(schedule.id)

                self.audit.append(
                    actor.user_id,
                    AuditAction.CLAIM_REJECTED,
                    f"Rejected claim {claim.id}",
                    barangay_id=claim.barangay_id,
                    entity_id=claim.id
                )
                return rejected

            except ReliefError as e:
                record_rejection(span, logger, "reject_claim", e, actor_id=actor.user_id, claim_id=claim_id)
                raise

    def list_claims(
        self,
        actor: Actor,
        schedule_id: Optional[str] = None,
        status: Optional[ClaimStatus] = None
    ) -> List[Claim]:
        """Claims in the staff member's barangay; all barangays for admins."""
        allowed = check_actor_kind(actor, (BarangayStaffActor, AdminActor))
        if not allowed.allowed:
            raise AuthorizationError(allowed.reason)

        if schedule_id is not None:
            schedule = self.store.get_schedule(schedule_id)
            if schedule is None:
                raise NotFoundError("Schedule not found")
            require_access(actor, schedule.barangay_id, "Schedule")

        barangay_id = None if isinstance(actor, AdminActor) else actor.barangay_id
        return self.store.list_claims(
            barangay_id=barangay_id,
            schedule_id=schedule_id,
            status=ClaimStatus(status) if status is not None else None
        )

    def list_family_claims(self, actor: Actor) -> List[Claim]:
        """Claims of the acting resident's family."""
        family = resident_family(self.store, require_resident(actor))
        return self.store.list_claims(family_id=family.id)

    def _family_for(self, actor: Actor, family_id: str) -> Family:
        allowed = check_actor_kind(actor, (ResidentActor, BarangayStaffActor))
        if not allowed.allowed:
            raise AuthorizationError(allowed.reason)

        family = self.store.get_family(family_id)
        if family is None:
            raise NotFoundError("Family not found")
        if isinstance(actor, ResidentActor):
            if family.head_id != actor.user_id:
                raise NotFoundError("Family not found")
        else:
            require_access(actor, family.barangay_id, "Family")
        return family

    def _insert(self, claim: Claim, schedule: DonationSchedule) -> None:
        reserved = False
        if schedule.max_recipients:
            if not self.store.reserve_slot(schedule.id, schedule.max_recipients):
                raise EligibilityError(CAPACITY_REACHED)
            reserved = True

        try:
            self.store.insert_claim(claim)
        except DuplicateEntryError:
            if reserved:
                self.store.release_slot(schedule.id)
            raise DuplicateClaimError()
        except ConflictError:
            if reserved:
                self.store.release_slot(schedule.id)
            raise NotFoundError("Schedule not found")
        except Exception:
            if reserved:
                self.store.release_slot(schedule.id)
            raise

    def _staff_claim(self, actor: Actor, claim_id: str) -> Claim:
        allowed = check_actor_kind(actor, (BarangayStaffActor,))
        if not allowed.allowed:
            raise AuthorizationError(allowed.reason)

        claim = self.store.get_claim(claim_id)
        if claim is None:
            raise NotFoundError("Claim not found")
        require_access(actor, claim.barangay_id, "Claim")
        return claim

    def _save(self, claim: Claim, updated: Claim) -> None:
        try:
            self.store.update_claim(updated, expected_status=claim.status)
        except ConflictError as e:
            raise TransitionError(
                f"Claim was updated by another request and is now {e.current_state}",
                current_state=e.current_state
            )

    @staticmethod
    def _check_transition(claim: Claim, new_status: ClaimStatus) -> None:
        result = claim_rules.validate_status_transition(claim.status, new_status)
        if not result.is_valid:
            raise TransitionError(result.message, current_state=ClaimStatus(claim.status).value)

    def _claimant_names(self, claim: Claim) -> Tuple[Optional[str], Optional[str], str]:
        family = self.store.get_family(claim.family_id)
        head = self.store.get_user(family.head_id) if family else None
        if head is None:
            return None, None, ""
        claimer_name = head.full_name
        if claim.member_id:
            member = self.store.get_member(claim.member_id)
            if member is not None:
                claimer_name = member.name
        return head.phone, head.full_name, claimer_name

    def _notify_claimed(self, claim: Claim) -> None:
        try:
            schedule = self.store.get_schedule(claim.schedule_id)
            phone, head_name, claimer_name = self._claimant_names(claim)
            if schedule is None or head_name is None:
                return
            message = build_claimed_message(
                head_name,
                claimer_name,
                schedule,
                claim.claimed_at_physical,
                self.notifications.signature
            )
            self.notifications.notify(phone, message)
        except Exception as e:
            logger.error(
                "Failed to send claimed notification",
                extra={"claim_id": claim.id, "error": str(e)},
                exc_info=True
            )
