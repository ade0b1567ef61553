# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the special-status verification workflow.
"""

import threading
import pytest
from concurrent.futures import ThreadPoolExecutor

from relief.domain.attributes import validate_status_transition
from relief.errors import AuthorizationError, NotFoundError, TransitionError, ValidationError
from relief.models.enums import (
    AttributeKind,
    AuditAction,
    DonationType,
    FamilyRelation,
    VerificationDecision,
    VerificationStatus
)


@pytest.fixture
def household(make_resident):
    return make_resident(members=[
        {"name": "Lola Ising", "relation": FamilyRelation.GRANDPARENT, "age": 67},
        {"name": "Ben", "relation": FamilyRelation.CHILD, "age": 12}
    ])


class TestAttributeTransitions:
    """Pure per-attribute transitions."""

    @pytest.mark.parametrize("current,new,valid", [
        (VerificationStatus.UNSET, VerificationStatus.PENDING, True),
        (VerificationStatus.PENDING, VerificationStatus.APPROVED, True),
        (VerificationStatus.PENDING, VerificationStatus.REJECTED, True),
        (VerificationStatus.UNSET, VerificationStatus.APPROVED, False),
        (VerificationStatus.APPROVED, VerificationStatus.PENDING, False),
        (VerificationStatus.REJECTED, VerificationStatus.APPROVED, False)
    ])
    def test_transitions(self, current, new, valid):
        assert validate_status_transition(AttributeKind.PWD, current, new).is_valid is valid


class TestSubmit:
    """Resident declarations."""

    def test_submit_enters_pending(self, core, household):
        actor, _, _, members = household
        member = core.verification.submit(actor, members[1].id, AttributeKind.PWD, "uploads/pwd-id.jpg")

        attribute = member.attribute(AttributeKind.PWD)
        assert attribute.status == VerificationStatus.PENDING
        assert attribute.value is True
        assert attribute.evidence_ref == "uploads/pwd-id.jpg"
        assert core.store.get_member(member.id).is_pwd
        assert core.audit.query(action=AuditAction.FAMILY_MEMBER_VERIFICATION_SUBMITTED)

    @pytest.mark.parametrize("evidence", [None, "", "   "])
    def test_evidence_required(self, core, household, evidence):
        actor, _, _, members = household
        with pytest.raises(ValidationError) as exc_info:
            core.verification.submit(actor, members[1].id, AttributeKind.INDIGENT, evidence)
        assert "Evidence document is required" in exc_info.value.message
        assert core.store.get_member(members[1].id).attribute(AttributeKind.INDIGENT).status == VerificationStatus.UNSET

    def test_senior_requires_age(self, core, household):
        actor, _, _, members = household
        with pytest.raises(ValidationError) as exc_info:
            core.verification.submit(actor, members[1].id, AttributeKind.SENIOR, "senior-id.jpg")
        assert "age 60" in exc_info.value.message

        member = core.verification.submit(actor, members[0].id, AttributeKind.SENIOR, "senior-id.jpg")
        assert member.is_senior_citizen

    def test_resubmit_requires_clear(self, core, staff, household):
        actor, _, _, members = household
        core.verification.submit(actor, members[1].id, AttributeKind.PWD, "pwd.jpg")

        with pytest.raises(TransitionError):
            core.verification.submit(actor, members[1].id, AttributeKind.PWD, "pwd-2.jpg")

        core.verification.approve(staff, members[1].id, AttributeKind.PWD, VerificationDecision.REJECT)
        cleared = core.verification.clear(actor, members[1].id, AttributeKind.PWD)
        assert cleared.attribute(AttributeKind.PWD).status == VerificationStatus.UNSET
        assert cleared.attribute(AttributeKind.PWD).evidence_ref is None

        again = core.verification.submit(actor, members[1].id, AttributeKind.PWD, "pwd-2.jpg")
        assert again.attribute(AttributeKind.PWD).status == VerificationStatus.PENDING

    def test_attributes_are_independent(self, core, staff, household):
        actor, _, _, members = household
        member_id = members[0].id
        core.verification.submit(actor, member_id, AttributeKind.SENIOR, "senior.jpg")
        core.verification.submit(actor, member_id, AttributeKind.PWD, "pwd.jpg")
        core.verification.approve(staff, member_id, AttributeKind.SENIOR, VerificationDecision.APPROVE)

        member = core.store.get_member(member_id)
        assert member.attribute(AttributeKind.SENIOR).status == VerificationStatus.APPROVED
        assert member.attribute(AttributeKind.PWD).status == VerificationStatus.PENDING
        assert member.attribute(AttributeKind.INDIGENT).status == VerificationStatus.UNSET

    def test_other_family_member_not_found(self, core, household, make_resident):
        _, _, _, members = household
        stranger, _, _, _ = make_resident(first_name="Pedro")
        with pytest.raises(NotFoundError):
            core.verification.submit(stranger, members[1].id, AttributeKind.PWD, "pwd.jpg")

    def test_staff_may_submit_for_own_barangay(self, core, staff, other_staff, household):
        _, _, _, members = household
        with pytest.raises(NotFoundError):
            core.verification.submit(other_staff, members[1].id, AttributeKind.PWD, "pwd.jpg")

        member = core.verification.submit(staff, members[1].id, AttributeKind.PWD, "pwd.jpg")
        assert member.attribute(AttributeKind.PWD).status == VerificationStatus.PENDING

    def test_unknown_kind_rejected(self, core, household):
        actor, _, _, members = household
        with pytest.raises(ValidationError):
            core.verification.submit(actor, members[1].id, "veteran", "doc.jpg")


class TestApprove:
    """Staff review."""

    def test_approval_makes_family_eligible(self, core, staff, household, make_schedule):
        actor, _, family, members = household
        schedule = make_schedule(type=DonationType.PWD)
        core.verification.submit(actor, members[1].id, AttributeKind.PWD, "pwd.jpg")

        assert schedule.id not in [item.schedule.id for item in core.schedules.list_claimable(actor)]

        member = core.verification.approve(staff, members[1].id, AttributeKind.PWD, VerificationDecision.APPROVE)
        assert member.has_approved(AttributeKind.PWD)
        assert schedule.id in [item.schedule.id for item in core.schedules.list_claimable(actor)]
        assert core.audit.query(action=AuditAction.FAMILY_MEMBER_VERIFICATION_UPDATED)

    def test_reject_clears_flag(self, core, staff, household):
        actor, _, _, members = household
        core.verification.submit(actor, members[1].id, AttributeKind.INDIGENT, "cert.pdf")

        member = core.verification.approve(staff, members[1].id, AttributeKind.INDIGENT, "REJECT")

        attribute = member.attribute(AttributeKind.INDIGENT)
        assert attribute.status == VerificationStatus.REJECTED
        assert attribute.value is False

    def test_only_pending_can_be_reviewed(self, core, staff, household):
        _, _, _, members = household
        with pytest.raises(TransitionError) as exc_info:
            core.verification.approve(staff, members[1].id, AttributeKind.PWD, VerificationDecision.APPROVE)
        assert exc_info.value.current_state == "UNSET"

    def test_resident_cannot_approve(self, core, household):
        actor, _, _, members = household
        core.verification.submit(actor, members[1].id, AttributeKind.PWD, "pwd.jpg")
        with pytest.raises(AuthorizationError):
            core.verification.approve(actor, members[1].id, AttributeKind.PWD, VerificationDecision.APPROVE)

    def test_other_barangay_staff_sees_not_found(self, core, other_staff, household):
        actor, _, _, members = household
        core.verification.submit(actor, members[1].id, AttributeKind.PWD, "pwd.jpg")
        with pytest.raises(NotFoundError):
            core.verification.approve(other_staff, members[1].id, AttributeKind.PWD, VerificationDecision.APPROVE)

    def test_invalid_decision(self, core, staff, household):
        actor, _, _, members = household
        core.verification.submit(actor, members[1].id, AttributeKind.PWD, "pwd.jpg")
        with pytest.raises(ValidationError):
            core.verification.approve(staff, members[1].id, AttributeKind.PWD, "MAYBE")

    def test_stale_decision_is_refused(self, core, staff, household, monkeypatch):
        actor, _, _, members = household
        core.verification.submit(actor, members[1].id, AttributeKind.PWD, "pwd.jpg")
        stale = core.store.get_member(members[1].id)
        core.verification.approve(staff, members[1].id, AttributeKind.PWD, VerificationDecision.REJECT)
        monkeypatch.setattr(core.store, "get_member", lambda _: stale)

        with pytest.raises(TransitionError) as exc_info:
            core.verification.approve(staff, members[1].id, AttributeKind.PWD, VerificationDecision.APPROVE)
        monkeypatch.undo()

        assert exc_info.value.current_state == "REJECTED"
        assert not core.store.get_member(members[1].id).has_approved(AttributeKind.PWD)

    def test_racing_decisions_apply_one(self, core, staff, household, monkeypatch):
        actor, _, _, members = household
        member_id = members[1].id
        core.verification.submit(actor, member_id, AttributeKind.PWD, "pwd.jpg")
        both_read = threading.Barrier(2, timeout=5)
        get_member = core.store.get_member

        def read_then_wait(requested_id):
            found = get_member(requested_id)
            both_read.wait()
            return found

        monkeypatch.setattr(core.store, "get_member", read_then_wait)

        def decide(decision):
            try:
                member = core.verification.approve(staff, member_id, AttributeKind.PWD, decision)
                return member.attribute(AttributeKind.PWD).status.value
            except TransitionError as e:
                return f"refused:{e.current_state}"

        with ThreadPoolExecutor(max_workers=2) as executor:
            outcomes = list(executor.map(decide, [VerificationDecision.APPROVE, VerificationDecision.REJECT]))
        monkeypatch.undo()

        applied = [outcome for outcome in outcomes if not outcome.startswith("refused")]
        assert len(applied) == 1
        assert f"refused:{applied[0]}" in outcomes
        assert core.store.get_member(member_id).attribute(AttributeKind.PWD).status.value == applied[0]
