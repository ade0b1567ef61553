# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Family registration and member management.
"""

import logging
from typing import Any, List, Tuple

from opentelemetry import trace
from pydantic import ValidationError as PydanticValidationError

from relief.domain.authorization import require_resident
from relief.domain.eligibility import Household
from relief.errors import (
    NotFoundError,
    ReliefError,
    TransitionError,
    ValidationError,
    from_pydantic
)
from relief.models.actors import Actor, ResidentActor
from relief.models.entities import Family, FamilyMember, User
from relief.models.enums import AuditAction, UserRole
from relief.models.requests import AddMemberRequest, UpdateMemberRequest, parse_request
from relief.observability.tracing import record_rejection
from .audit import AuditRecorder
from .store import ConflictError, DuplicateEntryError, ReliefStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def load_household(store: ReliefStore, family: Family) -> Household:
    """Load the head and members the eligibility rules read."""
    head = store.get_user(family.head_id)
    if head is None:
        raise NotFoundError("Family head not found")
    return Household(family=family, head=head, members=store.list_members(family.id))


def resident_family(store: ReliefStore, actor: ResidentActor) -> Family:
    """The family headed by the acting resident."""
    family = store.get_family_by_head(actor.user_id)
    if family is None:
        raise NotFoundError("Family not found")
    return family


class FamilyService:
    """Family registry; residents manage their own household."""

    def __init__(self, store: ReliefStore, audit: AuditRecorder):
        self.store = store
        self.audit = audit

    def register_family(self, actor: Actor) -> Family:
        """
        Register the family headed by the acting resident.

        Args:
            actor: Resident heading the new family

        Returns:
            Family: The new family, UNCLASSIFIED
        """
        with tracer.start_as_current_span("families.register") as span:
            span.set_attribute("actor.user_id", actor.user_id)
            try:
                resident = require_resident(actor)
                head = self._resident_user(resident)

                family = Family(head_id=head.id, barangay_id=head.barangay_id)
                try:
                    self.store.insert_family(family)
                except DuplicateEntryError:
                    raise TransitionError("Resident already heads a family")

                span.set_attribute("family.id", family.id)
                self.audit.append(
                    actor.user_id,
                    AuditAction.FAMILY_REGISTERED,
                    f"Registered family headed by {head.full_name}",
                    barangay_id=family.barangay_id,
                    entity_id=family.id
                )
                logger.info(f"Registered family {family.id} in barangay {family.barangay_id}")
                return family

            except ReliefError as e:
                record_rejection(span, logger, "register_family", e, actor_id=actor.user_id)
                raise

    def get_family(self, actor: Actor) -> Tuple[Family, List[FamilyMember]]:
        """The acting resident's family and its members."""
        family = resident_family(self.store, require_resident(actor))
        return family, self.store.list_members(family.id)

    def add_member(self, actor: Actor, request: Any) -> FamilyMember:
        """
        Add a member to the acting resident's family.

        Args:
            actor: Resident heading the family
            request: AddMemberRequest or equivalent mapping

        Returns:
            FamilyMember: The new member with all attributes UNSET
        """
        with tracer.start_as_current_span("families.add_member") as span:
            span.set_attribute("actor.user_id", actor.user_id)
            try:
                family = resident_family(self.store, require_resident(actor))
                data = parse_request(AddMemberRequest, request)
                member = self._build(FamilyMember, family_id=family.id, **data.model_dump())
                self.store.insert_member(member)

                span.set_attribute("member.id", member.id)
                self.audit.append(
                    actor.user_id,
                    AuditAction.FAMILY_MEMBER_ADDED,
                    f"Added family member: {member.name} ({member.relation.value})",
                    barangay_id=family.barangay_id,
                    entity_id=member.id
                )
                return member

            except ReliefError as e:
                record_rejection(span, logger, "add_member", e, actor_id=actor.user_id)
                raise

    def update_member(self, actor: Actor, member_id: str, request: Any) -> FamilyMember:
        """
        Update a member's profile fields.

        Re-validates the whole member, so an age change that would invalidate
        a set senior status is refused. Only the changed fields are written, so
        a concurrent verification decision is kept.
        """
        with tracer.start_as_current_span("families.update_member") as span:
            span.set_attributes({"actor.user_id": actor.user_id, "member.id": member_id})
            try:
                family, member = self._owned_member(actor, member_id)
                changes = parse_request(UpdateMemberRequest, request).model_dump(exclude_unset=True)
                if not changes:
                    raise ValidationError("No fields to update")

                revised = self._revise(member, **changes)
                try:
                    updated = self.store.update_member_profile(revised, changes.keys())
                except ConflictError as e:
                    if e.current_state is None:
                        raise NotFoundError("Family member not found")
                    raise TransitionError(
                        "Senior citizen status changed while updating age, reload and retry",
                        current_state=e.current_state
                    )

                self.audit.append(
                    actor.user_id,
                    AuditAction.FAMILY_MEMBER_UPDATED,
                    f"Updated family member: {updated.name} ({', '.join(sorted(changes))})",
                    barangay_id=family.barangay_id,
                    entity_id=member_id
                )
                return updated

            except ReliefError as e:
                record_rejection(span, logger, "update_member", e, actor_id=actor.user_id, member_id=member_id)
                raise

    def remove_member(self, actor: Actor, member_id: str) -> None:
        """Remove a member from the acting resident's family."""
        with tracer.start_as_current_span("families.remove_member") as span:
            span.set_attributes({"actor.user_id": actor.user_id, "member.id": member_id})
            try:
                family, member = self._owned_member(actor, member_id)
                self.store.delete_member(member.id)

                self.audit.append(
                    actor.user_id,
                    AuditAction.FAMILY_MEMBER_REMOVED,
                    f"Removed family member: {member.name}",
                    barangay_id=family.barangay_id,
                    entity_id=member_id
                )

            except ReliefError as e:
                record_rejection(span, logger, "remove_member", e, actor_id=actor.user_id, member_id=member_id)
                raise

    def _resident_user(self, actor: ResidentActor) -> User:
        user = self.store.get_user(actor.user_id)
        if user is None or user.role != UserRole.RESIDENT:
            raise NotFoundError("Resident not found")
        if not user.barangay_id:
            raise ValidationError("Resident is not assigned to a barangay")
        return user

    def _owned_member(self, actor: Actor, member_id: str) -> Tuple[Family, FamilyMember]:
        family = resident_family(self.store, require_resident(actor))
        member = self.store.get_member(member_id)
        if member is None or member.family_id != family.id:
            raise NotFoundError("Family member not found")
        return family, member

    @staticmethod
    def _build(model, **fields):
        try:
            return model(**fields)
        except PydanticValidationError as e:
            raise from_pydantic(e, "Invalid family member")

    @staticmethod
    def _revise(member: FamilyMember, **changes) -> FamilyMember:
        try:
            return member.revised(**changes)
        except PydanticValidationError as e:
            raise from_pydantic(e, "Invalid family member")
