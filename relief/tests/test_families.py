# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for family registration, member management and classification.
"""

import pytest

from relief.errors import AuthorizationError, NotFoundError, TransitionError, ValidationError
from relief.models.actors import ResidentActor
from relief.models.entities import User
from relief.models.enums import (
    AttributeKind,
    AuditAction,
    FamilyClassification,
    FamilyRelation,
    UserRole,
    VerificationDecision,
    VerificationStatus
)


@pytest.fixture
def new_resident(store, barangay):
    user = store.insert_user(User(
        role=UserRole.RESIDENT,
        first_name="Rosa",
        last_name="Lim",
        phone="09181234567",
        barangay_id=barangay.id
    ))
    return ResidentActor(user_id=user.id, barangay_id=barangay.id)


class TestRegisterFamily:
    """One family per resident."""

    def test_register_family(self, core, new_resident):
        family = core.families.register_family(new_resident)

        assert family.head_id == new_resident.user_id
        assert family.classification == FamilyClassification.UNCLASSIFIED
        assert core.classification.get_classification(family.id) == FamilyClassification.UNCLASSIFIED
        assert core.audit.query(action=AuditAction.FAMILY_REGISTERED)[0].entity_id == family.id

    def test_second_family_refused(self, core, new_resident):
        core.families.register_family(new_resident)
        with pytest.raises(TransitionError):
            core.families.register_family(new_resident)

    def test_staff_cannot_register(self, core, staff):
        with pytest.raises(AuthorizationError):
            core.families.register_family(staff)


class TestMembers:
    """Member add, update and remove."""

    def test_add_member(self, core, new_resident):
        core.families.register_family(new_resident)
        member = core.families.add_member(new_resident, {
            "name": "  Carlo Lim ",
            "relation": "CHILD",
            "age": 9,
            "is_student": True
        })

        assert member.name == "Carlo Lim"
        assert member.is_student
        family, members = core.families.get_family(new_resident)
        assert [m.id for m in members] == [member.id]
        assert core.audit.query(action=AuditAction.FAMILY_MEMBER_ADDED)

    def test_add_member_requires_family(self, core, new_resident):
        with pytest.raises(NotFoundError):
            core.families.add_member(new_resident, {"name": "Carlo", "relation": "CHILD"})

    def test_invalid_member_payload(self, core, new_resident):
        core.families.register_family(new_resident)
        with pytest.raises(ValidationError) as exc_info:
            core.families.add_member(new_resident, {"name": "Carlo", "relation": "COUSIN"})
        assert exc_info.value.validation_errors

    def test_update_member(self, core, resident):
        actor, _, _, members = resident
        updated = core.families.update_member(actor, members[0].id, {"age": 11, "is_student": True})

        assert updated.age == 11
        assert updated.is_student
        assert updated.name == members[0].name
        assert core.store.get_member(members[0].id).age == 11

    def test_update_cannot_break_senior_age(self, core, staff, make_resident):
        actor, _, _, members = make_resident(members=[
            {"name": "Lolo", "relation": FamilyRelation.GRANDPARENT, "age": 70}
        ])
        core.verification.submit(actor, members[0].id, AttributeKind.SENIOR, "senior.jpg")
        core.verification.approve(staff, members[0].id, AttributeKind.SENIOR, VerificationDecision.APPROVE)

        with pytest.raises(ValidationError) as exc_info:
            core.families.update_member(actor, members[0].id, {"age": 50})

        assert "age 60" in exc_info.value.message
        assert core.store.get_member(members[0].id).age == 70

    def test_profile_edit_keeps_concurrent_approval(self, core, staff, resident, monkeypatch):
        actor, _, _, members = resident
        member_id = members[0].id
        core.verification.submit(actor, member_id, AttributeKind.PWD, "pwd.jpg")
        stale = core.store.get_member(member_id)
        core.verification.approve(staff, member_id, AttributeKind.PWD, VerificationDecision.APPROVE)
        monkeypatch.setattr(core.store, "get_member", lambda _: stale)

        updated = core.families.update_member(actor, member_id, {"name": "Ana D. Cruz"})
        monkeypatch.undo()

        assert updated.has_approved(AttributeKind.PWD)
        stored = core.store.get_member(member_id)
        assert stored.name == "Ana D. Cruz"
        assert stored.has_approved(AttributeKind.PWD)

    def test_age_change_refused_after_concurrent_senior_submission(self, core, make_resident, monkeypatch):
        actor, _, _, members = make_resident(members=[
            {"name": "Lolo", "relation": FamilyRelation.GRANDPARENT, "age": 70}
        ])
        stale = core.store.get_member(members[0].id)
        core.verification.submit(actor, members[0].id, AttributeKind.SENIOR, "senior.jpg")
        monkeypatch.setattr(core.store, "get_member", lambda _: stale)

        with pytest.raises(TransitionError) as exc_info:
            core.families.update_member(actor, members[0].id, {"age": 50})
        monkeypatch.undo()

        assert exc_info.value.current_state == "PENDING"
        stored = core.store.get_member(members[0].id)
        assert stored.age == 70
        assert stored.attribute(AttributeKind.SENIOR).status == VerificationStatus.PENDING

    def test_empty_update_rejected(self, core, resident):
        actor, _, _, members = resident
        with pytest.raises(ValidationError):
            core.families.update_member(actor, members[0].id, {})

    def test_remove_member(self, core, resident):
        actor, _, _, members = resident
        core.families.remove_member(actor, members[0].id)

        assert core.store.get_member(members[0].id) is None
        assert core.audit.query(action=AuditAction.FAMILY_MEMBER_REMOVED)

    def test_cannot_touch_another_family(self, core, resident, make_resident):
        _, _, _, members = resident
        stranger, _, _, _ = make_resident(first_name="Pedro")

        with pytest.raises(NotFoundError):
            core.families.update_member(stranger, members[0].id, {"age": 12})
        with pytest.raises(NotFoundError):
            core.families.remove_member(stranger, members[0].id)


class TestClassification:
    """Staff classification of resident families."""

    def test_set_classification(self, core, staff, resident):
        _, head, family, _ = resident

        updated = core.classification.set_classification(staff, head.id, FamilyClassification.LOW_CLASS)

        assert updated.classification == FamilyClassification.LOW_CLASS
        assert core.classification.get_classification(family.id) == FamilyClassification.LOW_CLASS
        entry = core.audit.query(action=AuditAction.CLASSIFICATION_UPDATED)[0]
        assert entry.barangay_id == family.barangay_id
        assert "LOW_CLASS" in entry.detail

    def test_other_barangay_staff_sees_not_found(self, core, other_staff, resident):
        _, head, _, _ = resident
        with pytest.raises(NotFoundError):
            core.classification.set_classification(other_staff, head.id, FamilyClassification.LOW_CLASS)

    def test_resident_cannot_classify(self, core, resident):
        actor, head, _, _ = resident
        with pytest.raises(AuthorizationError):
            core.classification.set_classification(actor, head.id, FamilyClassification.HIGH_CLASS)

    def test_invalid_classification(self, core, staff, resident):
        _, head, _, _ = resident
        with pytest.raises(ValidationError):
            core.classification.set_classification(staff, head.id, "RICH")

    def test_unknown_family(self, core):
        with pytest.raises(NotFoundError):
            core.classification.get_classification("000000000000000000000000")
