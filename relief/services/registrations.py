# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Admin review of resident self-registrations.

Residents register inactive and cannot claim until an admin approves them.
Approval and rejection are conditional on the user still being pending, so
of two racing decisions only the first is applied.
"""

import logging
from typing import List, Optional

from opentelemetry import trace

from relief.domain.authorization import check_actor_kind
from relief.errors import AuthorizationError, NotFoundError, ReliefError, TransitionError
from relief.models.actors import Actor, AdminActor
from relief.models.entities import User
from relief.models.enums import AuditAction, UserRole
from relief.observability.tracing import record_rejection
from .audit import AuditRecorder
from .store import ReliefStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class RegistrationService:
    """Pending resident registrations awaiting admin approval."""

    def __init__(self, store: ReliefStore, audit: AuditRecorder):
        self.store = store
        self.audit = audit

    def list_pending(self, actor: Actor, barangay_id: Optional[str] = None) -> List[User]:
        """Inactive residents, newest registration first."""
        self._require_admin(actor)
        return self.store.list_pending_residents(barangay_id)

    def approve_registration(self, actor: Actor, user_id: str) -> User:
        """
        Activate a pending resident.

        Raises:
            NotFoundError: No resident with that ID
            TransitionError: The registration was already decided
        """
        with tracer.start_as_current_span("registrations.approve") as span:
            span.set_attributes({"actor.user_id": actor.user_id, "user.id": user_id})
            try:
                self._require_admin(actor)
                user = self._resident(user_id)

                if not self.store.activate_user(user.id):
                    raise TransitionError("Registration is no longer pending", current_state=self._decided_state(user.id))

                self.audit.append(
                    actor.user_id,
                    AuditAction.USER_APPROVED,
                    f"Approved resident registration for user {user.id}",
                    barangay_id=user.barangay_id,
                    entity_id=user.id
                )
                logger.info("Resident registration approved", extra={"user_id": user.id})
                return self.store.get_user(user.id)

            except ReliefError as e:
                record_rejection(span, logger, "approve_registration", e, actor_id=actor.user_id, user_id=user_id)
                raise

    def reject_registration(self, actor: Actor, user_id: str) -> None:
        """
        Delete a pending resident together with any family they registered.

        Raises:
            NotFoundError: No resident with that ID
            TransitionError: The registration was already decided
        """
        with tracer.start_as_current_span("registrations.reject") as span:
            span.set_attributes({"actor.user_id": actor.user_id, "user.id": user_id})
            try:
                self._require_admin(actor)
                user = self._resident(user_id)

                if not self.store.delete_pending_user(user.id):
                    raise TransitionError("Registration is no longer pending", current_state=self._decided_state(user.id))

                family = self.store.get_family_by_head(user.id)
                if family is not None:
                    for member in self.store.list_members(family.id):
                        self.store.delete_member(member.id)
                    self.store.delete_family(family.id)
                    span.set_attribute("family.id", family.id)

                self.audit.append(
                    actor.user_id,
                    AuditAction.USER_REJECTED,
                    f"Rejected resident registration for user {user.id}",
                    barangay_id=user.barangay_id,
                    entity_id=user.id
                )
                logger.info("Resident registration rejected", extra={"user_id": user.id})

            except ReliefError as e:
                record_rejection(span, logger, "reject_registration", e, actor_id=actor.user_id, user_id=user_id)
                raise

    @staticmethod
    def _require_admin(actor: Actor) -> None:
        allowed = check_actor_kind(actor, (AdminActor,))
        if not allowed.allowed:
            raise AuthorizationError(allowed.reason)

    def _decided_state(self, user_id: str) -> str:
        return "APPROVED" if self.store.get_user(user_id) is not None else "REJECTED"

    def _resident(self, user_id: str) -> User:
        user = self.store.get_user(user_id)
        if user is None or user.role != UserRole.RESIDENT:
            raise NotFoundError("User not found")
        return user
