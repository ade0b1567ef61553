# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - Persistence, side effects and operation services.
"""

from .store import ReliefStore, ConflictError, DuplicateEntryError
from .memory import InMemoryReliefStore
from .mongodb import MongoDBService, MongoReliefStore
from .audit import AuditRecorder
from .notifications import (
    NotificationDispatcher,
    DispatchSummary,
    SMSGateway,
    SMSGatewayClient,
    normalize_phone
)
from .families import FamilyService
from .classification import ClassificationService
from .verification import VerificationService
from .schedules import ScheduleService, ClaimableSchedule
from .claims import ClaimService
from .registrations import RegistrationService

__all__ = [
    "ReliefStore",
    "ConflictError",
    "DuplicateEntryError",
    "InMemoryReliefStore",
    "MongoDBService",
    "MongoReliefStore",
    "AuditRecorder",
    "NotificationDispatcher",
    "DispatchSummary",
    "SMSGateway",
    "SMSGatewayClient",
    "normalize_phone",
    "FamilyService",
    "ClassificationService",
    "VerificationService",
    "ScheduleService",
    "ClaimableSchedule",
    "ClaimService",
    "RegistrationService"
]
