# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import pytest
from datetime import date, timedelta
from unittest.mock import Mock

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'

from relief.app import create_core
from relief.config import ReliefSettings
from relief.models.actors import AdminActor, BarangayStaffActor, ResidentActor
from relief.models.entities import Barangay, DonationSchedule, Family, FamilyMember, User
from relief.models.enums import FamilyClassification, FamilyRelation, UserRole
from relief.services.memory import InMemoryReliefStore
from relief.services.notifications import SMSGateway


@pytest.fixture
def store():
    """Fresh in-memory store."""
    return InMemoryReliefStore()


@pytest.fixture
def gateway():
    """SMS transport double accepting every message."""
    transport = Mock(spec=SMSGateway)
    transport.send.return_value = True
    return transport


@pytest.fixture
def settings():
    """Test settings with default rules."""
    return ReliefSettings(environment='test')


@pytest.fixture
def core(settings, store, gateway):
    """Wired services over the in-memory store."""
    return create_core(settings, store=store, gateway=gateway)


@pytest.fixture
def barangay(store):
    return store.insert_barangay(Barangay(code="poblacion", name="Poblacion"))


@pytest.fixture
def other_barangay(store):
    return store.insert_barangay(Barangay(code="tango", name="Tango"))


@pytest.fixture
def staff_user(store, barangay):
    return store.insert_user(User(
        role=UserRole.BARANGAY,
        first_name="Maria",
        last_name="Santos",
        barangay_id=barangay.id
    ))


@pytest.fixture
def staff(staff_user):
    """Staff actor of the primary barangay."""
    return BarangayStaffActor(user_id=staff_user.id, barangay_id=staff_user.barangay_id)


@pytest.fixture
def other_staff(store, other_barangay):
    """Staff actor of a different barangay."""
    user = store.insert_user(User(
        role=UserRole.BARANGAY,
        first_name="Jose",
        last_name="Reyes",
        barangay_id=other_barangay.id
    ))
    return BarangayStaffActor(user_id=user.id, barangay_id=other_barangay.id)


@pytest.fixture
def admin(store):
    user = store.insert_user(User(role=UserRole.ADMIN, first_name="Admin", last_name="User"))
    return AdminActor(user_id=user.id)


@pytest.fixture
def make_resident(store, barangay):
    """Factory for a resident heading a registered family."""
    def _make(first_name="Juan", barangay_id=None, members=(),
              classification=FamilyClassification.UNCLASSIFIED, **profile):
        head = store.insert_user(User(
            role=UserRole.RESIDENT,
            first_name=first_name,
            last_name="Dela Cruz",
            phone=profile.pop("phone", "0917 123 4567"),
            barangay_id=barangay_id or barangay.id,
            **profile
        ))
        family = store.insert_family(Family(
            head_id=head.id,
            barangay_id=head.barangay_id,
            classification=classification
        ))
        saved = [
            store.insert_member(FamilyMember(family_id=family.id, **member))
            for member in members
        ]
        actor = ResidentActor(user_id=head.id, barangay_id=head.barangay_id)
        return actor, head, family, saved
    return _make


@pytest.fixture
def resident(make_resident):
    """(actor, head, family, members) for a resident with one child."""
    return make_resident(members=[{"name": "Ana Dela Cruz", "relation": FamilyRelation.CHILD, "age": 10}])


@pytest.fixture
def make_schedule(store, barangay, staff_user):
    """Factory inserting a schedule directly into the store."""
    def _make(**overrides):
        fields = {
            "barangay_id": barangay.id,
            "title": "Rice Distribution",
            "description": "5kg rice per family",
            "date": date.today() + timedelta(days=7),
            "start_time": "08:00",
            "end_time": "12:00",
            "location": "Barangay Hall",
            "created_by": staff_user.id
        }
        fields.update(overrides)
        return store.insert_schedule(DonationSchedule(**fields))
    return _make


@pytest.fixture
def schedule_payload():
    """Valid create-schedule payload dated next week."""
    return {
        "title": "School Supplies",
        "description": "Notebooks and pens",
        "date": (date.today() + timedelta(days=7)).isoformat(),
        "start_time": "13:00",
        "end_time": "17:30",
        "location": "Covered Court",
        "type": "GENERAL",
        "target_classification": "all"
    }
