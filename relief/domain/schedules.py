# SPDX-License-Identifier: Apache-2.0

"""
Donation schedule rules: status transitions and date validation.
"""

from datetime import date
from typing import Dict, List, Optional, Sequence

from relief.domain.claims import ValidationResult
from relief.models.entities import DonationSchedule
from relief.models.enums import ScheduleStatus


# SCHEDULED -> DISTRIBUTED | CANCELLED
VALID_TRANSITIONS: Dict[ScheduleStatus, List[ScheduleStatus]] = {
    ScheduleStatus.SCHEDULED: [ScheduleStatus.DISTRIBUTED, ScheduleStatus.CANCELLED],
    ScheduleStatus.DISTRIBUTED: [],  # Terminal state
    ScheduleStatus.CANCELLED: []  # Terminal state
}

PAST_DATE_ERROR = "Schedule date cannot be in the past. Please select today or a future date."
DELETE_WITH_CLAIMS_ERROR = "Cannot delete schedule with existing claims. Change status to CANCELLED instead."


def validate_status_transition(current_status: ScheduleStatus, new_status: ScheduleStatus) -> ValidationResult:
    """
    Validate schedule status transition.

    Args:
        current_status: Current schedule status
        new_status: Desired new status

    Returns:
        ValidationResult with validation status and errors
    """
    current_status = ScheduleStatus(current_status)
    new_status = ScheduleStatus(new_status)
    if new_status in VALID_TRANSITIONS[current_status]:
        return ValidationResult(is_valid=True, errors=[])

    return ValidationResult(
        is_valid=False,
        errors=[f"Invalid schedule status transition from {current_status.value} to {new_status.value}"]
    )


def validate_schedule_date(schedule_date: date, today: Optional[date] = None) -> ValidationResult:
    """Schedule dates must be today or later."""
    today = today or date.today()
    if schedule_date < today:
        return ValidationResult(is_valid=False, errors=[PAST_DATE_ERROR])
    return ValidationResult(is_valid=True, errors=[])


def validate_deletion(claims_count: int) -> ValidationResult:
    """Schedules with claims must be cancelled instead of deleted."""
    if claims_count > 0:
        return ValidationResult(is_valid=False, errors=[DELETE_WITH_CLAIMS_ERROR])
    return ValidationResult(is_valid=True, errors=[])


def find_past_scheduled(schedules: Sequence[DonationSchedule], today: Optional[date] = None) -> List[DonationSchedule]:
    """SCHEDULED schedules whose date has passed."""
    today = today or date.today()
    return [
        schedule for schedule in schedules
        if schedule.status == ScheduleStatus.SCHEDULED and schedule.date < today
    ]


def format_time_12h(time_24: str) -> str:
    """Convert 'HH:MM' to 'H:MM AM/PM'."""
    hours, minutes = time_24.split(":")
    hour24 = int(hours)
    hour12 = 12 if hour24 == 0 else hour24 - 12 if hour24 > 12 else hour24
    suffix = "PM" if hour24 >= 12 else "AM"
    return f"{hour12}:{minutes} {suffix}"


def format_time_range(schedule: DonationSchedule) -> str:
    return f"{format_time_12h(schedule.start_time)} - {format_time_12h(schedule.end_time)}"


def format_schedule_date(schedule: DonationSchedule) -> str:
    """Long date, e.g. 'Tuesday, October 20, 2026'."""
    day = schedule.date
    return f"{day.strftime('%A')}, {day.strftime('%B')} {day.day}, {day.year}"
