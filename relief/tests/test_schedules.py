# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for schedule rules and the schedule lifecycle service.
"""

import pytest
from datetime import date, timedelta
from freezegun import freeze_time

from relief.domain.schedules import (
    DELETE_WITH_CLAIMS_ERROR,
    PAST_DATE_ERROR,
    format_schedule_date,
    format_time_12h,
    validate_schedule_date,
    validate_status_transition
)
from relief.models.actors import ResidentActor
from relief.errors import AuthorizationError, NotFoundError, TransitionError, ValidationError
from relief.models.enums import (
    AuditAction,
    ClaimStatus,
    DonationType,
    FamilyClassification,
    ScheduleStatus,
    TargetClassification
)


class TestScheduleRules:
    """Pure schedule rules."""

    @pytest.mark.parametrize("current,new,valid", [
        (ScheduleStatus.SCHEDULED, ScheduleStatus.DISTRIBUTED, True),
        (ScheduleStatus.SCHEDULED, ScheduleStatus.CANCELLED, True),
        (ScheduleStatus.DISTRIBUTED, ScheduleStatus.CANCELLED, False),
        (ScheduleStatus.CANCELLED, ScheduleStatus.SCHEDULED, False)
    ])
    def test_transitions(self, current, new, valid):
        assert validate_status_transition(current, new).is_valid is valid

    @freeze_time("2026-10-19")
    def test_date_must_not_be_past(self):
        assert validate_schedule_date(date(2026, 10, 19)).is_valid
        assert validate_schedule_date(date(2026, 10, 20)).is_valid
        result = validate_schedule_date(date(2026, 10, 18))
        assert not result.is_valid
        assert result.message == PAST_DATE_ERROR

    @pytest.mark.parametrize("value,expected", [
        ("00:15", "12:15 AM"),
        ("09:05", "9:05 AM"),
        ("12:00", "12:00 PM"),
        ("17:30", "5:30 PM")
    ])
    def test_format_time_12h(self, value, expected):
        assert format_time_12h(value) == expected

    def test_format_schedule_date(self, make_schedule):
        schedule = make_schedule(date=date(2026, 10, 20))
        assert format_schedule_date(schedule) == "Tuesday, October 20, 2026"


class TestCreateSchedule:
    """Schedule creation and announcement."""

    def test_staff_creates_schedule(self, core, staff, schedule_payload):
        schedule = core.schedules.create_schedule(staff, schedule_payload)

        assert schedule.status == ScheduleStatus.SCHEDULED
        assert schedule.barangay_id == staff.barangay_id
        assert schedule.created_by == staff.user_id
        assert schedule.target_classification == TargetClassification.ALL
        assert core.store.get_schedule(schedule.id) is not None
        assert core.audit.query(action=AuditAction.SCHEDULE_CREATED)[0].entity_id == schedule.id

    def test_announces_to_eligible_active_residents(self, core, staff, schedule_payload, make_resident, gateway):
        make_resident(first_name="Eligible", phone="09171111111", classification=FamilyClassification.LOW_CLASS)
        make_resident(first_name="Other", phone="09172222222", classification=FamilyClassification.HIGH_CLASS)
        make_resident(first_name="Pending", phone="09173333333", is_active=False,
                      classification=FamilyClassification.LOW_CLASS)
        make_resident(first_name="NoPhone", phone="12", classification=FamilyClassification.LOW_CLASS)

        schedule_payload["target_classification"] = "LOW_CLASS"
        core.schedules.create_schedule(staff, schedule_payload)

        gateway.send.assert_called_once()
        phones, message = gateway.send.call_args[0]
        assert phones == ["+639171111111"]
        assert message.startswith("NEW DONATION SCHEDULE!")
        assert "1:00 PM - 5:30 PM" in message
        assert message.endswith("- MSWDO-GLAN CBDS")
        assert core.audit.query(action=AuditAction.SMS_NOTIFICATION_SENT)

    @freeze_time("2026-10-19")
    def test_past_date_rejected(self, core, staff, schedule_payload):
        schedule_payload["date"] = "2026-10-18"
        with pytest.raises(ValidationError) as exc_info:
            core.schedules.create_schedule(staff, schedule_payload)
        assert exc_info.value.message == PAST_DATE_ERROR
        assert core.store.list_schedules(staff.barangay_id) == []

    def test_missing_fields_rejected(self, core, staff, schedule_payload):
        del schedule_payload["location"]
        with pytest.raises(ValidationError) as exc_info:
            core.schedules.create_schedule(staff, schedule_payload)
        assert exc_info.value.status_code == 400

    def test_end_before_start_rejected(self, core, staff, schedule_payload):
        schedule_payload["end_time"] = "12:00"
        with pytest.raises(ValidationError) as exc_info:
            core.schedules.create_schedule(staff, schedule_payload)
        assert "End time must be after start time" in exc_info.value.message

    def test_resident_cannot_create(self, core, resident, schedule_payload):
        actor, _, _, _ = resident
        with pytest.raises(AuthorizationError):
            core.schedules.create_schedule(actor, schedule_payload)

    def test_gateway_failure_keeps_schedule(self, core, staff, schedule_payload, resident, gateway):
        gateway.send.side_effect = RuntimeError("gateway down")
        schedule = core.schedules.create_schedule(staff, schedule_payload)
        assert core.store.get_schedule(schedule.id) is not None


class TestUpdateSchedule:
    """Full updates and status changes."""

    def test_update_replaces_fields(self, core, staff, make_schedule, schedule_payload):
        schedule = make_schedule()
        schedule_payload["title"] = "Updated Title"

        updated = core.schedules.update_schedule(staff, schedule.id, schedule_payload)

        assert updated.title == "Updated Title"
        assert updated.created_by == schedule.created_by
        assert core.store.get_schedule(schedule.id).title == "Updated Title"

    @freeze_time("2026-10-19")
    def test_update_rejects_past_date(self, core, staff, make_schedule, schedule_payload):
        schedule = make_schedule(date=date(2026, 10, 25))
        schedule_payload["date"] = "2026-10-01"
        with pytest.raises(ValidationError):
            core.schedules.update_schedule(staff, schedule.id, schedule_payload)

    @freeze_time("2026-10-19")
    def test_status_only_change_allowed_for_past_schedule(self, core, staff, make_schedule):
        schedule = make_schedule(date=date(2026, 10, 1))
        assert core.schedules.mark_distributed(staff, schedule.id).status == ScheduleStatus.DISTRIBUTED

    def test_terminal_schedule_cannot_change(self, core, staff, make_schedule):
        schedule = make_schedule()
        core.schedules.mark_distributed(staff, schedule.id)

        with pytest.raises(TransitionError) as exc_info:
            core.schedules.cancel(staff, schedule.id)
        assert exc_info.value.current_state == "DISTRIBUTED"

    def test_cancel_notifies_with_reason(self, core, staff, make_schedule, resident, gateway):
        schedule = make_schedule()

        cancelled = core.schedules.cancel(staff, schedule.id, reason="Typhoon signal no. 2")

        assert cancelled.status == ScheduleStatus.CANCELLED
        phones, message = gateway.send.call_args[0]
        assert message.startswith("SCHEDULE CANCELLED!")
        assert "Reason: Typhoon signal no. 2" in message
        entry = core.audit.query(action=AuditAction.SCHEDULE_STATUS_UPDATED)[0]
        assert "CANCELLED" in entry.detail

    def test_other_barangay_staff_sees_not_found(self, core, other_staff, make_schedule):
        with pytest.raises(NotFoundError):
            core.schedules.mark_distributed(other_staff, make_schedule().id)


class TestDeleteSchedule:
    """Deletion only without claims."""

    def test_delete_without_claims(self, core, staff, make_schedule):
        schedule = make_schedule()
        core.schedules.delete_schedule(staff, schedule.id)
        assert core.store.get_schedule(schedule.id) is None
        assert core.audit.query(action=AuditAction.SCHEDULE_DELETED)

    def test_delete_with_rejected_claim_refused(self, core, staff, resident, make_schedule):
        actor, _, family, _ = resident
        schedule = make_schedule()
        claim = core.claims.create_claim(actor, family.id, schedule.id)
        core.claims.reject(staff, claim.id)

        with pytest.raises(TransitionError) as exc_info:
            core.schedules.delete_schedule(staff, schedule.id)

        assert exc_info.value.message == DELETE_WITH_CLAIMS_ERROR
        assert core.store.get_schedule(schedule.id) is not None

    def test_claim_created_after_count_blocks_delete(self, core, staff, resident, make_schedule, monkeypatch):
        actor, _, family, _ = resident
        schedule = make_schedule()
        count_claims = core.store.count_claims

        def count_then_claim(schedule_id):
            counted = count_claims(schedule_id)
            core.claims.create_claim(actor, family.id, schedule_id)
            return counted

        monkeypatch.setattr(core.store, "count_claims", count_then_claim)

        with pytest.raises(TransitionError) as exc_info:
            core.schedules.delete_schedule(staff, schedule.id)

        assert exc_info.value.message == DELETE_WITH_CLAIMS_ERROR
        assert core.store.get_schedule(schedule.id) is not None
        assert len(core.store.list_claims(schedule_id=schedule.id)) == 1
        assert not core.audit.query(action=AuditAction.SCHEDULE_DELETED)


class TestAutoDistribute:
    """Past SCHEDULED schedules become DISTRIBUTED."""

    @freeze_time("2026-10-19")
    def test_only_past_scheduled_are_updated(self, core, staff, make_schedule):
        past = make_schedule(date=date(2026, 10, 18), title="Past")
        today = make_schedule(date=date(2026, 10, 19), title="Today")
        cancelled = make_schedule(date=date(2026, 10, 1), title="Cancelled", status=ScheduleStatus.CANCELLED)

        updated = core.schedules.auto_distribute_past(staff)

        assert [schedule.id for schedule in updated] == [past.id]
        assert core.store.get_schedule(past.id).status == ScheduleStatus.DISTRIBUTED
        assert core.store.get_schedule(today.id).status == ScheduleStatus.SCHEDULED
        assert core.store.get_schedule(cancelled.id).status == ScheduleStatus.CANCELLED
        assert "Past" in core.audit.query(action=AuditAction.SCHEDULE_AUTO_UPDATED)[0].detail

    def test_nothing_to_update_writes_no_audit(self, core, staff, make_schedule):
        make_schedule()
        assert core.schedules.auto_distribute_past(staff) == []
        assert core.audit.query(action=AuditAction.SCHEDULE_AUTO_UPDATED) == []


class TestResidentViews:
    """Claimable schedules, unclaimed families and reminders."""

    def test_list_claimable_marks_claimed(self, core, resident, make_schedule):
        actor, _, family, _ = resident
        general = make_schedule(title="General")
        other = make_schedule(title="Second")
        make_schedule(title="PWD Only", type=DonationType.PWD)
        make_schedule(title="Closed", status=ScheduleStatus.CANCELLED)
        core.claims.create_claim(actor, family.id, general.id)

        claimable = {item.schedule.title: item.has_claimed for item in core.schedules.list_claimable(actor)}

        assert claimable == {"General": True, "Second": False}
        assert other.id in [item.schedule.id for item in core.schedules.list_claimable(actor)]

    def test_unclaimed_families_and_reminders(self, core, staff, make_resident, make_schedule, gateway):
        schedule = make_schedule()
        claimed_actor, _, claimed_family, _ = make_resident(first_name="Claimed", phone="09171111111")
        make_resident(first_name="Waiting", phone="09172222222")
        make_resident(first_name="Inactive", phone="09173333333", is_active=False)
        core.claims.create_claim(claimed_actor, claimed_family.id, schedule.id)

        households = core.schedules.list_unclaimed_families(staff, schedule.id)
        assert [household.head.first_name for household in households] == ["Waiting"]

        summary = core.schedules.send_reminders(staff, schedule.id)

        assert summary.sent_count == 1
        phones, message = gateway.send.call_args[0]
        assert phones == ["+639172222222"]
        assert message.startswith("DONATION REMINDER!")
        assert core.audit.query(action=AuditAction.REMINDER_SENT)

    def test_rejected_claim_counts_as_unclaimed(self, core, staff, resident, make_schedule):
        actor, _, family, _ = resident
        schedule = make_schedule()
        claim = core.claims.create_claim(actor, family.id, schedule.id)
        core.claims.reject(staff, claim.id)

        households = core.schedules.list_unclaimed_families(staff, schedule.id)
        assert [household.family.id for household in households] == [family.id]
        assert core.store.get_claim(claim.id).status == ClaimStatus.REJECTED

    def test_reminders_refused_for_cancelled_schedule(self, core, staff, make_schedule):
        schedule = make_schedule(status=ScheduleStatus.CANCELLED)
        with pytest.raises(TransitionError):
            core.schedules.send_reminders(staff, schedule.id)

    def test_list_claimable_requires_family(self, core, barangay):
        with pytest.raises(NotFoundError):
            core.schedules.list_claimable(ResidentActor(user_id="missing", barangay_id=barangay.id))


def test_schedule_factory_defaults_to_next_week(make_schedule):
    assert make_schedule().date == date.today() + timedelta(days=7)
