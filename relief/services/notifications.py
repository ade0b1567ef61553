# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
SMS notification dispatch.

Messages are delivered through an Android SMS Gateway compatible HTTP API.
Dispatch is best effort: failures are logged and reported in the result,
never raised to the operation that triggered the notification.
"""

import re
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

import requests
from opentelemetry import trace

from relief.domain.schedules import format_schedule_date, format_time_range
from relief.models.entities import DonationSchedule

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_SIGNATURE = "MSWDO-GLAN CBDS"
PHONE_LENGTH = 13


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalize a Philippine mobile number to +63XXXXXXXXXX.

    Returns None for numbers that do not normalize to 13 characters.
    """
    if not phone:
        return None

    digits = re.sub(r'\D', '', phone)
    if digits.startswith('09'):
        normalized = '+63' + digits[1:]
    elif digits.startswith('9'):
        normalized = '+63' + digits
    elif digits.startswith('63'):
        normalized = '+' + digits
    else:
        normalized = '+63' + digits

    if len(normalized) != PHONE_LENGTH:
        return None
    return normalized


# Message builders

def _signed(body: str, signature: str) -> str:
    return f"{body}\n\n- {signature}"


def format_claimed_at(moment: datetime) -> str:
    """Long timestamp, e.g. 'October 19, 2026 02:30 PM'."""
    return f"{moment.strftime('%B')} {moment.day}, {moment.year} {moment.strftime('%I:%M %p')}"


def build_claimed_message(
    head_name: str,
    claimer_name: str,
    schedule: DonationSchedule,
    claimed_at: datetime,
    signature: str = DEFAULT_SIGNATURE
) -> str:
    return _signed(
        f"DONATION CLAIMED\n\nHi {head_name},\n\n"
        f"{claimer_name} has claimed the donation \"{schedule.title}\" on {format_claimed_at(claimed_at)}.",
        signature
    )


def build_new_schedule_message(schedule: DonationSchedule, signature: str = DEFAULT_SIGNATURE) -> str:
    return _signed(
        f"NEW DONATION SCHEDULE!\n\n{schedule.title}\n\n{schedule.description}\n\n"
        f"Date: {format_schedule_date(schedule)}\n"
        f"Time: {format_time_range(schedule)}\n"
        f"Location: {schedule.location}\n\n"
        "Please check your resident dashboard for more details.",
        signature
    )


def build_cancellation_message(
    schedule: DonationSchedule,
    reason: Optional[str] = None,
    signature: str = DEFAULT_SIGNATURE
) -> str:
    reason_line = f"Reason: {reason.strip()}\n\n" if reason and reason.strip() else ""
    return _signed(
        f"SCHEDULE CANCELLED!\n\n{schedule.title}\n\n"
        f"Date: {format_schedule_date(schedule)}\n"
        f"Time: {format_time_range(schedule)}\n"
        f"Location: {schedule.location}\n\n"
        f"{reason_line}"
        "We apologize for any inconvenience. Please check your resident dashboard for updates.",
        signature
    )


def build_reminder_message(schedule: DonationSchedule, signature: str = DEFAULT_SIGNATURE) -> str:
    return _signed(
        f"DONATION REMINDER!\n\n{schedule.title}\n\n"
        "Your family has not yet claimed this donation.\n\n"
        f"Date: {format_schedule_date(schedule)}\n"
        f"Time: {format_time_range(schedule)}\n"
        f"Location: {schedule.location}",
        signature
    )


# Transport

class SMSGateway(ABC):
    """SMS transport."""

    @abstractmethod
    def send(self, phone_numbers: List[str], message: str) -> bool:
        """Send one message to the given numbers. Returns True if accepted."""


class SMSGatewayClient(SMSGateway):
    """Android SMS Gateway compatible HTTP client."""

    def __init__(
        self,
        url: Optional[str],
        username: Optional[str],
        password: Optional[str],
        timeout: int = 10,
        session: Optional[requests.Session] = None
    ):
        self.url = url
        self.username = username
        self.password = password
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def enabled(self) -> bool:
        return bool(self.url and self.username and self.password)

    def send(self, phone_numbers: List[str], message: str) -> bool:
        if not self.enabled:
            logger.info("SMS gateway is not configured, skipping send")
            return False

        payload = {
            "message": message,
            "phoneNumbers": phone_numbers,
            "withDeliveryReport": True,
            "ttl": 3600
        }

        try:
            response = self.session.post(
                self.url,
                json=payload,
                auth=(self.username, self.password),
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(
                "SMS gateway request failed",
                extra={"recipients": len(phone_numbers), "error": str(e)}
            )
            return False

        if not 200 <= response.status_code < 300:
            logger.error(
                "SMS gateway rejected message",
                extra={"recipients": len(phone_numbers), "status_code": response.status_code}
            )
            return False

        logger.debug(f"SMS accepted by gateway for {len(phone_numbers)} recipient(s)")
        return True


# Dispatch

@dataclass
class DispatchSummary:
    """Outcome of a broadcast."""
    sent_count: int = 0
    failed_count: int = 0
    skipped_count: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed_count == 0


class NotificationDispatcher:
    """Best-effort SMS delivery with phone normalization."""

    def __init__(self, gateway: Optional[SMSGateway] = None, signature: str = DEFAULT_SIGNATURE):
        self.gateway = gateway
        self.signature = signature

    def notify(self, recipient_phone: Optional[str], message: str) -> bool:
        """
        Send a message to one recipient.

        Args:
            recipient_phone: Phone number as entered
            message: Message text

        Returns:
            bool: True if the gateway accepted the message
        """
        with tracer.start_as_current_span("notifications.notify") as span:
            phone = normalize_phone(recipient_phone)
            if phone is None:
                logger.debug("Skipping notification to invalid phone number")
                span.set_attribute("notification.skipped", True)
                return False

            return self._deliver([phone], message, span)

    def broadcast(self, phones: Iterable[Optional[str]], message: str) -> DispatchSummary:
        """
        Send one message to many recipients.

        Invalid numbers are skipped; duplicates are sent once.

        Args:
            phones: Phone numbers as entered
            message: Message text

        Returns:
            DispatchSummary: Sent, failed and skipped counts
        """
        with tracer.start_as_current_span("notifications.broadcast") as span:
            summary = DispatchSummary()
            recipients = []
            for phone in phones:
                normalized = normalize_phone(phone)
                if normalized is None:
                    summary.skipped_count += 1
                elif normalized not in recipients:
                    recipients.append(normalized)

            span.set_attributes({
                "notification.recipients": len(recipients),
                "notification.skipped": summary.skipped_count
            })

            if not recipients:
                return summary

            if self._deliver(recipients, message, span):
                summary.sent_count = len(recipients)
            else:
                summary.failed_count = len(recipients)
                summary.errors.append("SMS gateway did not accept the message")

            logger.info(
                "SMS broadcast finished",
                extra={
                    "sent_count": summary.sent_count,
                    "failed_count": summary.failed_count,
                    "skipped_count": summary.skipped_count
                }
            )
            return summary

    def _deliver(self, recipients: List[str], message: str, span) -> bool:
        if self.gateway is None:
            logger.info("No SMS gateway configured, notification dropped")
            return False
        try:
            return self.gateway.send(recipients, message)
        except Exception as e:
            span.record_exception(e)
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            logger.error(
                "SMS transport failed",
                extra={"recipients": len(recipients), "error": str(e)},
                exc_info=True
            )
            return False
