# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Barangay relief core entry point.

Builds every service once at process start over a single store. An outer
request layer authenticates users, converts them with actor_for() and calls
the services on the returned ReliefCore.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from relief.config import ReliefSettings
from relief.observability.config import setup_observability
from relief.services.audit import AuditRecorder
from relief.services.claims import ClaimService
from relief.services.classification import ClassificationService
from relief.services.families import FamilyService
from relief.services.memory import InMemoryReliefStore
from relief.services.mongodb import MongoDBService, MongoReliefStore
from relief.services.notifications import NotificationDispatcher, SMSGateway, SMSGatewayClient
from relief.services.registrations import RegistrationService
from relief.services.schedules import ScheduleService
from relief.services.store import ReliefStore
from relief.services.verification import VerificationService

logger = logging.getLogger(__name__)


@dataclass
class ReliefCore:
    """Constructed services sharing one store."""
    settings: ReliefSettings
    store: ReliefStore
    audit: AuditRecorder
    notifications: NotificationDispatcher
    families: FamilyService
    classification: ClassificationService
    verification: VerificationService
    schedules: ScheduleService
    claims: ClaimService
    registrations: RegistrationService


def create_store(settings: ReliefSettings) -> ReliefStore:
    """
    MongoDB store, or the in-memory store for the test environment.

    Index creation is idempotent; the partial unique index on active claims
    must exist before the first claim is written.
    """
    if settings.environment == 'test':
        return InMemoryReliefStore()
    mongo_service = MongoDBService(settings.mongodb_uri, settings.mongodb_database)
    mongo_service.create_indexes()
    return MongoReliefStore(mongo_service)


def create_core(
    settings: Optional[ReliefSettings] = None,
    store: Optional[ReliefStore] = None,
    gateway: Optional[SMSGateway] = None
) -> ReliefCore:
    """
    Wire the relief services.

    Args:
        settings: Settings, read from the environment when omitted
        store: Store override, built from settings when omitted
        gateway: SMS transport override, built from settings when omitted

    Returns:
        ReliefCore: Ready-to-use services
    """
    settings = settings or ReliefSettings.from_env()
    setup_observability(settings.environment)
    store = store or create_store(settings)
    gateway = gateway or SMSGatewayClient(
        settings.sms_gateway_url,
        settings.sms_username,
        settings.sms_password,
        timeout=settings.sms_timeout
    )

    audit = AuditRecorder(store)
    notifications = NotificationDispatcher(gateway, signature=settings.sms_sender_signature)
    rules = settings.eligibility_rules

    core = ReliefCore(
        settings=settings,
        store=store,
        audit=audit,
        notifications=notifications,
        families=FamilyService(store, audit),
        classification=ClassificationService(store, audit),
        verification=VerificationService(store, audit),
        schedules=ScheduleService(store, audit, notifications, rules),
        claims=ClaimService(
            store,
            audit,
            notifications,
            rules,
            allow_claims_on_distributed=settings.allow_claims_on_distributed
        ),
        registrations=RegistrationService(store, audit)
    )

    logger.info(
        "Relief core initialized",
        extra={
            "environment": settings.environment,
            "store": type(store).__name__,
            "wheelchair_rule": settings.wheelchair_rule.value,
            "allow_claims_on_distributed": settings.allow_claims_on_distributed
        }
    )
    return core
