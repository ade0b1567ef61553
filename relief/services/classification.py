# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Family wealth classification registry.
"""

import logging

from opentelemetry import trace

from relief.domain.authorization import require_access, require_staff
from relief.errors import NotFoundError, ReliefError, ValidationError
from relief.models.actors import Actor
from relief.models.entities import Family
from relief.models.enums import AuditAction, FamilyClassification, UserRole
from relief.observability.tracing import record_rejection
from .audit import AuditRecorder
from .store import ReliefStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class ClassificationService:
    """Staff-assigned classification of resident families."""

    def __init__(self, store: ReliefStore, audit: AuditRecorder):
        self.store = store
        self.audit = audit

    def set_classification(self, actor: Actor, resident_id: str, classification: FamilyClassification) -> Family:
        """
        Classify the family headed by a resident.

        Args:
            actor: Staff of the resident's barangay
            resident_id: Family head user ID
            classification: New classification

        Returns:
            Family: Updated family
        """
        with tracer.start_as_current_span("classification.set") as span:
            span.set_attributes({"actor.user_id": actor.user_id, "resident.id": resident_id})
            try:
                staff = require_staff(actor)
                try:
                    classification = FamilyClassification(classification)
                except ValueError:
                    raise ValidationError(f"Invalid classification: {classification}")

                resident = self.store.get_user(resident_id)
                if resident is None or resident.role != UserRole.RESIDENT:
                    raise NotFoundError("Resident not found")
                require_access(staff, resident.barangay_id, "Resident")

                family = self.store.get_family_by_head(resident.id)
                if family is None:
                    raise NotFoundError("Family not found")

                previous = family.classification
                updated = family.model_copy(update={"classification": classification})
                updated.touch()
                self.store.update_family(updated)

                span.set_attribute("classification", classification.value)
                self.audit.append(
                    actor.user_id,
                    AuditAction.CLASSIFICATION_UPDATED,
                    f"Classified {resident.full_name} as {classification.value} (was {previous.value})",
                    barangay_id=family.barangay_id,
                    entity_id=family.id
                )
                return updated

            except ReliefError as e:
                record_rejection(span, logger, "set_classification", e, actor_id=actor.user_id, resident_id=resident_id)
                raise

    def get_classification(self, family_id: str) -> FamilyClassification:
        """Current classification; new families are UNCLASSIFIED."""
        family = self.store.get_family(family_id)
        if family is None:
            raise NotFoundError("Family not found")
        return family.classification
