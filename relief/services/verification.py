# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Special-status verification workflow for family members.

Each write replaces only the one attribute and only while it still has the
status the decision was made on.
"""

import logging
from typing import Optional, Tuple

from opentelemetry import trace
from pydantic import ValidationError as PydanticValidationError

from relief.domain import attributes
from relief.domain.authorization import (
    check_actor_kind,
    require_access,
    require_staff
)
from relief.errors import (
    AuthorizationError,
    NotFoundError,
    ReliefError,
    TransitionError,
    ValidationError,
    from_pydantic
)
from relief.models.actors import Actor, BarangayStaffActor, ResidentActor
from relief.models.entities import Family, FamilyMember
from relief.models.enums import (
    AttributeKind,
    AuditAction,
    VerificationDecision,
    VerificationStatus
)
from relief.observability.tracing import record_rejection
from .audit import AuditRecorder
from .store import ConflictError, ReliefStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class VerificationService:
    """Submit, review and clear per-member special statuses."""

    def __init__(self, store: ReliefStore, audit: AuditRecorder):
        self.store = store
        self.audit = audit

    def submit(self, actor: Actor, member_id: str, kind: AttributeKind, evidence_ref: Optional[str]) -> FamilyMember:
        """
        Declare a special status with evidence, entering PENDING.

        Args:
            actor: Head of the member's family, or staff of its barangay
            member_id: Family member ID
            kind: Attribute kind
            evidence_ref: Evidence document reference

        Returns:
            FamilyMember: Updated member
        """
        with tracer.start_as_current_span("verification.submit") as span:
            span.set_attributes({"actor.user_id": actor.user_id, "member.id": member_id, "attribute.kind": str(kind)})
            try:
                kind = self._kind(kind)
                family, member = self._member_for_household(actor, member_id)

                result = attributes.validate_submission(member, kind, evidence_ref)
                if not result.is_valid:
                    raise ValidationError(result.message, result.errors)

                current = member.attribute(kind).status
                self._check_transition(kind, current, VerificationStatus.PENDING)

                updated = self._apply(attributes.submit_attribute, member, kind, evidence_ref)
                updated = self._save(member, updated, kind)

                self.audit.append(
                    actor.user_id,
                    AuditAction.FAMILY_MEMBER_VERIFICATION_SUBMITTED,
                    f"Submitted {kind.value} verification for {member.name}",
                    barangay_id=family.barangay_id,
                    entity_id=member.id
                )
                return updated

            except ReliefError as e:
                record_rejection(span, logger, "submit_verification", e, actor_id=actor.user_id, member_id=member_id)
                raise

    def approve(
        self,
        actor: Actor,
        member_id: str,
        kind: AttributeKind,
        decision: VerificationDecision
    ) -> FamilyMember:
        """
        Record the staff decision on a PENDING status.

        Args:
            actor: Staff of the member's barangay
            member_id: Family member ID
            kind: Attribute kind
            decision: APPROVE or REJECT

        Returns:
            FamilyMember: Updated member
        """
        with tracer.start_as_current_span("verification.approve") as span:
            span.set_attributes({"actor.user_id": actor.user_id, "member.id": member_id, "attribute.kind": str(kind)})
            try:
                staff = require_staff(actor)
                kind = self._kind(kind)
                try:
                    decision = VerificationDecision(decision)
                except ValueError:
                    raise ValidationError(f"Invalid verification decision: {decision}")

                family, member = self._load(member_id)
                require_access(staff, family.barangay_id, "Family member")

                target = (
                    VerificationStatus.APPROVED if decision == VerificationDecision.APPROVE
                    else VerificationStatus.REJECTED
                )
                self._check_transition(kind, member.attribute(kind).status, target)

                updated = self._apply(attributes.review_attribute, member, kind, decision)
                updated = self._save(member, updated, kind)

                span.set_attribute("verification.decision", decision.value)
                self.audit.append(
                    actor.user_id,
                    AuditAction.FAMILY_MEMBER_VERIFICATION_UPDATED,
                    f"{target.value.capitalize()} {kind.value} status for {member.name}",
                    barangay_id=family.barangay_id,
                    entity_id=member.id
                )
                return updated

            except ReliefError as e:
                record_rejection(span, logger, "approve_verification", e, actor_id=actor.user_id, member_id=member_id)
                raise

    def clear(self, actor: Actor, member_id: str, kind: AttributeKind) -> FamilyMember:
        """Reset a status to UNSET so it can be submitted again."""
        with tracer.start_as_current_span("verification.clear") as span:
            span.set_attributes({"actor.user_id": actor.user_id, "member.id": member_id, "attribute.kind": str(kind)})
            try:
                kind = self._kind(kind)
                family, member = self._member_for_household(actor, member_id)

                updated = self._apply(attributes.clear_attribute, member, kind)
                updated = self._save(member, updated, kind)

                self.audit.append(
                    actor.user_id,
                    AuditAction.FAMILY_MEMBER_VERIFICATION_CLEARED,
                    f"Cleared {kind.value} status for {member.name}",
                    barangay_id=family.barangay_id,
                    entity_id=member.id
                )
                return updated

            except ReliefError as e:
                record_rejection(span, logger, "clear_verification", e, actor_id=actor.user_id, member_id=member_id)
                raise

    def _load(self, member_id: str) -> Tuple[Family, FamilyMember]:
        member = self.store.get_member(member_id)
        family = self.store.get_family(member.family_id) if member else None
        if member is None or family is None:
            raise NotFoundError("Family member not found")
        return family, member

    def _member_for_household(self, actor: Actor, member_id: str) -> Tuple[Family, FamilyMember]:
        """Load a member the actor may declare statuses for."""
        allowed = check_actor_kind(actor, (ResidentActor, BarangayStaffActor))
        if not allowed.allowed:
            raise AuthorizationError(allowed.reason)

        family, member = self._load(member_id)
        if isinstance(actor, ResidentActor):
            if family.head_id != actor.user_id:
                raise NotFoundError("Family member not found")
        else:
            require_access(actor, family.barangay_id, "Family member")
        return family, member

    @staticmethod
    def _kind(kind) -> AttributeKind:
        try:
            return AttributeKind(kind)
        except ValueError:
            raise ValidationError(f"Invalid verification type: {kind}")

    @staticmethod
    def _check_transition(kind: AttributeKind, current: VerificationStatus, new: VerificationStatus) -> None:
        result = attributes.validate_status_transition(kind, current, new)
        if not result.is_valid:
            raise TransitionError(result.message, current_state=VerificationStatus(current).value)

    def _save(self, member: FamilyMember, updated: FamilyMember, kind: AttributeKind) -> FamilyMember:
        try:
            return self.store.update_member_attribute(
                member.id,
                updated.attribute(kind),
                expected_status=member.attribute(kind).status
            )
        except ConflictError as e:
            if e.current_state is None:
                raise NotFoundError("Family member not found")
            raise TransitionError(
                f"{kind.value} status was changed by another request",
                current_state=e.current_state
            )

    @staticmethod
    def _apply(change, member: FamilyMember, *args) -> FamilyMember:
        try:
            return change(member, *args)
        except PydanticValidationError as e:
            raise from_pydantic(e, "Invalid family member")
