# Overview: Pytest coverage for the report lifecycle state machine.

"""
Lifecycle State Machine Tests

Pure tests: no database, no app context. Every (status, action, role)
combination outside the transition table must raise InvalidTransition.
"""

from datetime import datetime
from itertools import product

import pytest

from reportflow.errors import InvalidTransition, ValidationError
from reportflow.permissions import VALID_ROLES
from reportflow.services import lifecycle_service as lifecycle
from reportflow.services.lifecycle_service import (
    ACTION_ADVANCE,
    ACTION_EDIT_DURING_REVIEW,
    ACTION_FINALIZE,
    ACTION_REJECT,
    ACTION_SUBMIT,
    STATUS_APPROVED,
    STATUS_DRAFT,
    STATUS_PENDING_CITY,
    STATUS_PENDING_SUBDISTRICT,
    STATUS_REJECTED,
    TRANSITIONS,
    VALID_STATUSES,
)


NOW = datetime(2026, 10, 1, 9, 30)

LEGAL = {
    (STATUS_DRAFT, ACTION_SUBMIT, "branch_user"): STATUS_PENDING_SUBDISTRICT,
    (STATUS_REJECTED, ACTION_SUBMIT, "branch_user"): STATUS_PENDING_SUBDISTRICT,
    (STATUS_PENDING_SUBDISTRICT, ACTION_ADVANCE, "subdistrict_admin"): STATUS_PENDING_CITY,
    (STATUS_PENDING_SUBDISTRICT, ACTION_EDIT_DURING_REVIEW, "subdistrict_admin"): STATUS_PENDING_CITY,
    (STATUS_PENDING_CITY, ACTION_FINALIZE, "city_admin"): STATUS_APPROVED,
    (STATUS_PENDING_CITY, ACTION_REJECT, "city_admin"): STATUS_REJECTED,
}


class TestTransitionTable:

    @pytest.mark.parametrize("key,expected", sorted(LEGAL.items()))
    def test_legal_transitions(self, key, expected):
        status, action, role = key
        result = lifecycle.apply_transition(status, action, role)
        assert result.to_status == expected
        assert result.from_status == status
        assert result.transition == action

    def test_every_other_combination_is_invalid(self):
        for status, action, role in product(sorted(VALID_STATUSES), sorted(TRANSITIONS), sorted(VALID_ROLES)):
            if (status, action, role) in LEGAL:
                continue
            assert not lifecycle.can_transition(status, action, role)
            with pytest.raises(InvalidTransition):
                lifecycle.apply_transition(status, action, role)

    def test_approved_is_terminal(self):
        for action, role in product(TRANSITIONS, VALID_ROLES):
            assert not lifecycle.can_transition(STATUS_APPROVED, action, role)
        assert lifecycle.legal_actions(STATUS_APPROVED, "city_admin") == []

    def test_rejected_only_leaves_through_submit(self):
        for role in VALID_ROLES:
            actions = lifecycle.legal_actions(STATUS_REJECTED, role)
            assert actions in ([], [ACTION_SUBMIT])

    def test_no_single_step_from_pending_subdistrict_to_approved(self):
        for transition in TRANSITIONS.values():
            if STATUS_PENDING_SUBDISTRICT in transition.from_statuses:
                assert transition.to_status != STATUS_APPROVED

    def test_unknown_action(self):
        with pytest.raises(InvalidTransition):
            lifecycle.apply_transition(STATUS_DRAFT, "publish", "branch_user")

    def test_unknown_status(self):
        with pytest.raises(InvalidTransition):
            lifecycle.apply_transition("archived", ACTION_SUBMIT, "branch_user")


class TestApprovalStepSelection:

    def test_pending_subdistrict_means_advance(self):
        assert lifecycle.approval_action_for(STATUS_PENDING_SUBDISTRICT) == ACTION_ADVANCE

    def test_pending_city_means_finalize(self):
        assert lifecycle.approval_action_for(STATUS_PENDING_CITY) == ACTION_FINALIZE

    @pytest.mark.parametrize("status", [STATUS_DRAFT, STATUS_REJECTED, STATUS_APPROVED])
    def test_nothing_to_approve(self, status):
        with pytest.raises(InvalidTransition):
            lifecycle.approval_action_for(status)


class TestSideEffects:

    def test_submit_stamps_and_clears_reason(self):
        result = lifecycle.apply_transition(STATUS_REJECTED, ACTION_SUBMIT, "branch_user")
        changes = lifecycle.changes_for(result, actor_id=7, now=NOW)
        assert changes == {
            "status": STATUS_PENDING_SUBDISTRICT,
            "submitted_at": NOW,
            "rejection_reason": None,
        }

    def test_advance_records_reviewer(self):
        result = lifecycle.apply_transition(STATUS_PENDING_SUBDISTRICT, ACTION_ADVANCE, "subdistrict_admin")
        changes = lifecycle.changes_for(result, actor_id=3, now=NOW)
        assert changes["status"] == STATUS_PENDING_CITY
        assert changes["advanced_by_user_id"] == 3
        assert changes["advanced_at"] == NOW

    def test_edit_during_review_has_the_same_effect_as_advance(self):
        edited = lifecycle.apply_transition(STATUS_PENDING_SUBDISTRICT, ACTION_EDIT_DURING_REVIEW, "subdistrict_admin")
        advanced = lifecycle.apply_transition(STATUS_PENDING_SUBDISTRICT, ACTION_ADVANCE, "subdistrict_admin")
        assert edited.to_status == advanced.to_status
        assert edited.side_effects == advanced.side_effects
        assert edited.transition != advanced.transition

    def test_finalize_records_approver(self):
        result = lifecycle.apply_transition(STATUS_PENDING_CITY, ACTION_FINALIZE, "city_admin")
        changes = lifecycle.changes_for(result, actor_id=5, now=NOW)
        assert changes == {"status": STATUS_APPROVED, "approved_at": NOW, "approved_by_user_id": 5}

    def test_reject_records_stripped_reason(self):
        result = lifecycle.apply_transition(STATUS_PENDING_CITY, ACTION_REJECT, "city_admin")
        changes = lifecycle.changes_for(result, actor_id=5, now=NOW, reason="  incomplete data ")
        assert changes["status"] == STATUS_REJECTED
        assert changes["rejection_reason"] == "incomplete data"
        assert changes["rejected_by_user_id"] == 5

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_reject_requires_reason(self, reason):
        result = lifecycle.apply_transition(STATUS_PENDING_CITY, ACTION_REJECT, "city_admin")
        with pytest.raises(ValidationError):
            lifecycle.changes_for(result, actor_id=5, now=NOW, reason=reason)
