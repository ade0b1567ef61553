# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Donation schedule lifecycle service.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, List, Optional

from opentelemetry import trace
from pydantic import ValidationError as PydanticValidationError

from relief.domain import schedules as schedule_rules
from relief.domain.authorization import require_access, require_resident, require_staff
from relief.domain.eligibility import EligibilityRules, Household, filter_eligible_schedules, is_eligible
from relief.errors import (
    NotFoundError,
    ReliefError,
    TransitionError,
    ValidationError,
    from_pydantic
)
from relief.models.actors import Actor
from relief.models.entities import DonationSchedule, Family
from relief.models.enums import AuditAction, ScheduleStatus
from relief.models.requests import CreateScheduleRequest, UpdateScheduleRequest, parse_request
from relief.observability.tracing import record_rejection
from .audit import AuditRecorder
from .families import load_household, resident_family
from .notifications import (
    DispatchSummary,
    NotificationDispatcher,
    build_cancellation_message,
    build_new_schedule_message,
    build_reminder_message
)
from .store import ConflictError, ReliefStore

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass
class ClaimableSchedule:
    """Schedule a resident's family may claim."""
    schedule: DonationSchedule
    has_claimed: bool


class ScheduleService:
    """Create, update and close donation schedules."""

    def __init__(
        self,
        store: ReliefStore,
        audit: AuditRecorder,
        notifications: NotificationDispatcher,
        rules: Optional[EligibilityRules] = None
    ):
        self.store = store
        self.audit = audit
        self.notifications = notifications
        self.rules = rules or EligibilityRules()

    def create_schedule(self, actor: Actor, request: Any) -> DonationSchedule:
        """
        Create a SCHEDULED distribution in the staff member's barangay.

        Eligible active residents are told about it by SMS.

        Args:
            actor: Barangay staff
            request: CreateScheduleRequest or equivalent mapping

        Returns:
            DonationSchedule: The new schedule
        """
        with tracer.start_as_current_span("schedules.create") as span:
            span.set_attribute("actor.user_id", actor.user_id)
            try:
                staff = require_staff(actor)
                data = parse_request(CreateScheduleRequest, request)
                self._check_date(data.date)

                schedule = self._build(
                    barangay_id=staff.barangay_id,
                    created_by=staff.user_id,
                    **data.model_dump()
                )
                self.store.insert_schedule(schedule)

                span.set_attribute("schedule.id", schedule.id)
                self.audit.append(
                    actor.user_id,
                    AuditAction.SCHEDULE_CREATED,
                    f"Created donation schedule: {schedule.title}",
                    barangay_id=schedule.barangay_id,
                    entity_id=schedule.id
                )

            except ReliefError as e:
                record_rejection(span, logger, "create_schedule", e, actor_id=actor.user_id)
                raise

            self._announce(actor, schedule, build_new_schedule_message(schedule, self.notifications.signature))
            return schedule

    def update_schedule(self, actor: Actor, schedule_id: str, request: Any) -> DonationSchedule:
        """Replace the editable fields of a SCHEDULED schedule."""
        with tracer.start_as_current_span("schedules.update") as span:
            span.set_attributes({"actor.user_id": actor.user_id, "schedule.id": schedule_id})
            try:
                schedule = self._staff_schedule(actor, schedule_id)
                if schedule.status != ScheduleStatus.SCHEDULED:
                    raise TransitionError(
                        f"Only scheduled donations can be edited (current status: {schedule.status.value})",
                        current_state=schedule.status.value
                    )

                data = parse_request(UpdateScheduleRequest, request)
                self._check_date(data.date)

                fields = schedule.model_dump()
                fields.update(data.model_dump())
                updated = self._build(**fields)
                updated.touch()
                self.store.update_schedule(updated)

                self.audit.append(
                    actor.user_id,
                    AuditAction.SCHEDULE_UPDATED,
                    f"Updated donation schedule: {updated.title}",
                    barangay_id=updated.barangay_id,
                    entity_id=updated.id
                )
                return updated

            except ReliefError as e:
                record_rejection(span, logger, "update_schedule", e, actor_id=actor.user_id, schedule_id=schedule_id)
                raise

    def mark_distributed(self, actor: Actor, schedule_id: str) -> DonationSchedule:
        """Close a schedule after distribution."""
        return self._change_status(actor, schedule_id, ScheduleStatus.DISTRIBUTED)

    def cancel(self, actor: Actor, schedule_id: str, reason: Optional[str] = None) -> DonationSchedule:
        """Cancel a schedule and tell eligible residents why."""
        schedule = self._change_status(actor, schedule_id, ScheduleStatus.CANCELLED, reason)
        self._announce(
            actor,
            schedule,
            build_cancellation_message(schedule, reason, self.notifications.signature)
        )
        return schedule

    def delete_schedule(self, actor: Actor, schedule_id: str) -> None:
        """
        Delete a schedule that has no claims.

        Raises:
            TransitionError: The schedule has claims of any status
        """
        with tracer.start_as_current_span("schedules.delete") as span:
            span.set_attributes({"actor.user_id": actor.user_id, "schedule.id": schedule_id})
            try:
                schedule = self._staff_schedule(actor, schedule_id)

                result = schedule_rules.validate_deletion(self.store.count_claims(schedule.id))
                if not result.is_valid:
                    raise TransitionError(result.message, current_state=schedule.status.value)

                try:
                    deleted = self.store.delete_schedule(schedule.id)
                except ConflictError:
                    # A claim was created after the count
                    raise TransitionError(schedule_rules.DELETE_WITH_CLAIMS_ERROR, current_state=schedule.status.value)
                if not deleted:
                    raise NotFoundError("Schedule not found")

                self.audit.append(
                    actor.user_id,
                    AuditAction.SCHEDULE_DELETED,
                    f"Deleted donation schedule: {schedule.title}",
                    barangay_id=schedule.barangay_id,
                    entity_id=schedule.id
                )

            except ReliefError as e:
                record_rejection(span, logger, "delete_schedule", e, actor_id=actor.user_id, schedule_id=schedule_id)
                raise

    def auto_distribute_past(self, actor: Actor) -> List[DonationSchedule]:
        """Mark SCHEDULED schedules dated before today as DISTRIBUTED."""
        with tracer.start_as_current_span("schedules.auto_distribute") as span:
            staff = require_staff(actor)
            past = schedule_rules.find_past_scheduled(
                self.store.list_schedules(staff.barangay_id, ScheduleStatus.SCHEDULED)
            )

            updated = []
            for schedule in past:
                distributed = schedule.model_copy(update={"status": ScheduleStatus.DISTRIBUTED})
                distributed.touch()
                self.store.update_schedule(distributed)
                updated.append(distributed)

            span.set_attribute("schedules.updated", len(updated))
            if updated:
                self.audit.append(
                    actor.user_id,
                    AuditAction.SCHEDULE_AUTO_UPDATED,
                    f"Auto-updated {len(updated)} past schedule(s) to DISTRIBUTED: "
                    + ", ".join(schedule.title for schedule in updated),
                    barangay_id=staff.barangay_id
                )
                logger.info(f"Auto-distributed {len(updated)} past schedules in barangay {staff.barangay_id}")
            return updated

    def list_schedules(self, actor: Actor, status: Optional[ScheduleStatus] = None) -> List[DonationSchedule]:
        """All schedules of the staff member's barangay."""
        staff = require_staff(actor)
        return self.store.list_schedules(staff.barangay_id, ScheduleStatus(status) if status else None)

    def list_claimable(self, actor: Actor) -> List[ClaimableSchedule]:
        """SCHEDULED schedules the acting resident's family is eligible for."""
        resident = require_resident(actor)
        household = load_household(self.store, resident_family(self.store, resident))

        schedules = filter_eligible_schedules(
            household,
            self.store.list_schedules(household.family.barangay_id, ScheduleStatus.SCHEDULED),
            self.rules
        )
        return [
            ClaimableSchedule(
                schedule=schedule,
                has_claimed=self.store.find_active_claim(household.family.id, schedule.id) is not None
            )
            for schedule in schedules
        ]

    def list_unclaimed_families(self, actor: Actor, schedule_id: str) -> List[Household]:
        """Eligible families with an active head and no active claim on the schedule."""
        schedule = self._staff_schedule(actor, schedule_id)

        unclaimed = []
        for family in self.store.list_families(schedule.barangay_id):
            if self.store.find_active_claim(family.id, schedule.id) is not None:
                continue
            try:
                household = load_household(self.store, family)
            except NotFoundError:
                logger.warning(f"Family {family.id} has no head record, skipping")
                continue
            if household.head.is_active and is_eligible(household, schedule, self.rules).eligible:
                unclaimed.append(household)
        return unclaimed

    def send_reminders(self, actor: Actor, schedule_id: str) -> DispatchSummary:
        """SMS a reminder to every unclaimed eligible family head."""
        with tracer.start_as_current_span("schedules.send_reminders") as span:
            span.set_attributes({"actor.user_id": actor.user_id, "schedule.id": schedule_id})
            try:
                schedule = self._staff_schedule(actor, schedule_id)
                if schedule.status != ScheduleStatus.SCHEDULED:
                    raise TransitionError(
                        f"Reminders can only be sent for scheduled donations (current status: {schedule.status.value})",
                        current_state=schedule.status.value
                    )
                households = self.list_unclaimed_families(actor, schedule_id)

            except ReliefError as e:
                record_rejection(span, logger, "send_reminders", e, actor_id=actor.user_id, schedule_id=schedule_id)
                raise

            summary = self.notifications.broadcast(
                [household.head.phone for household in households],
                build_reminder_message(schedule, self.notifications.signature)
            )
            self.audit.append(
                actor.user_id,
                AuditAction.REMINDER_SENT,
                f"Sent reminder notifications for schedule: {schedule.title} "
                f"({summary.sent_count} sent, {summary.failed_count} failed)",
                barangay_id=schedule.barangay_id,
                entity_id=schedule.id
            )
            return summary

    def _change_status(
        self,
        actor: Actor,
        schedule_id: str,
        new_status: ScheduleStatus,
        reason: Optional[str] = None
    ) -> DonationSchedule:
        with tracer.start_as_current_span("schedules.change_status") as span:
            span.set_attributes({
                "actor.user_id": actor.user_id,
                "schedule.id": schedule_id,
                "schedule.status": new_status.value
            })
            try:
                schedule = self._staff_schedule(actor, schedule_id)
                result = schedule_rules.validate_status_transition(schedule.status, new_status)
                if not result.is_valid:
                    raise TransitionError(result.message, current_state=schedule.status.value)

                updated = schedule.model_copy(update={"status": new_status})
                updated.touch()
                self.store.update_schedule(updated)

                detail = f"Updated schedule status: {schedule.title} to {new_status.value}"
                if reason and reason.strip():
                    detail += f" (reason: {reason.strip()})"
                self.audit.append(
                    actor.user_id,
                    AuditAction.SCHEDULE_STATUS_UPDATED,
                    detail,
                    barangay_id=schedule.barangay_id,
                    entity_id=schedule.id
                )
                return updated

            except ReliefError as e:
                record_rejection(
                    span, logger, "change_schedule_status", e,
                    actor_id=actor.user_id, schedule_id=schedule_id, new_status=new_status.value
                )
                raise

    def _staff_schedule(self, actor: Actor, schedule_id: str) -> DonationSchedule:
        staff = require_staff(actor)
        schedule = self.store.get_schedule(schedule_id)
        if schedule is None:
            raise NotFoundError("Schedule not found")
        require_access(staff, schedule.barangay_id, "Schedule")
        return schedule

    def _recipients(self, schedule: DonationSchedule) -> List[Optional[str]]:
        """Phones of active residents eligible for the schedule."""
        phones = []
        for resident in self.store.list_residents(schedule.barangay_id, active_only=True):
            family = self.store.get_family_by_head(resident.id)
            if family is not None:
                household = Household(family=family, head=resident, members=self.store.list_members(family.id))
            else:
                household = Household(
                    family=Family(head_id=resident.id, barangay_id=schedule.barangay_id),
                    head=resident
                )
            if is_eligible(household, schedule, self.rules).eligible:
                phones.append(resident.phone)
        return phones

    def _announce(self, actor: Actor, schedule: DonationSchedule, message: str) -> Optional[DispatchSummary]:
        try:
            summary = self.notifications.broadcast(self._recipients(schedule), message)
        except Exception as e:
            logger.error(
                "Failed to broadcast schedule notification",
                extra={"schedule_id": schedule.id, "error": str(e)},
                exc_info=True
            )
            return None

        if summary.sent_count:
            self.audit.append(
                actor.user_id,
                AuditAction.SMS_NOTIFICATION_SENT,
                f"SMS notifications sent for {schedule.title}: "
                f"{summary.sent_count} sent, {summary.failed_count} failed",
                barangay_id=schedule.barangay_id,
                entity_id=schedule.id
            )
        return summary

    @staticmethod
    def _check_date(schedule_date: date) -> None:
        result = schedule_rules.validate_schedule_date(schedule_date)
        if not result.is_valid:
            raise ValidationError(result.message, result.errors)

    @staticmethod
    def _build(**fields) -> DonationSchedule:
        try:
            return DonationSchedule(**fields)
        except PydanticValidationError as e:
            raise from_pydantic(e, "Invalid donation schedule")
