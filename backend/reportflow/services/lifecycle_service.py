# Overview: Report lifecycle state machine; pure transition rules, no database work.

"""
Report Lifecycle Service

================================================================================
PURPOSE: Decide which status a report moves to, and what gets stamped on it
================================================================================

STATE MACHINE:

    draft ----------\
                     submit          advance                  finalize
    rejected -------+-------> pending_subdistrict -------> pending_city -------> approved
       ^                             |                          |
       |                             | edit_during_review       |
       |                             +------------------------->|
       |                                                        |
       +----------------------------- reject -------------------+

    submit:              branch_user,       draft|rejected      -> pending_subdistrict
    advance:             subdistrict_admin, pending_subdistrict -> pending_city
    finalize:            city_admin,        pending_city        -> approved
    reject:              city_admin,        pending_city        -> rejected
    edit_during_review:  subdistrict_admin, pending_subdistrict -> pending_city

RULES (NON-NEGOTIABLE):
1. Nothing else is legal; everything else raises InvalidTransition
2. approved is terminal
3. rejected only leaves through submit
4. pending_subdistrict never reaches approved in one step
5. This module never reads or writes storage; callers persist the result

edit_during_review is kept as its own named transition: a subdistrict admin
correcting a report under review also forwards it to the city.
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from reportflow.errors import InvalidTransition, ValidationError
from reportflow.models.reports import (
    REPORT_STATUSES,
    REPORT_STATUS_APPROVED,
    REPORT_STATUS_DRAFT,
    REPORT_STATUS_PENDING_CITY,
    REPORT_STATUS_PENDING_SUBDISTRICT,
    REPORT_STATUS_REJECTED,
)
from reportflow.permissions.roles import (
    ROLE_BRANCH_USER,
    ROLE_CITY_ADMIN,
    ROLE_SUBDISTRICT_ADMIN,
)


STATUS_DRAFT = REPORT_STATUS_DRAFT
STATUS_PENDING_SUBDISTRICT = REPORT_STATUS_PENDING_SUBDISTRICT
STATUS_PENDING_CITY = REPORT_STATUS_PENDING_CITY
STATUS_APPROVED = REPORT_STATUS_APPROVED
STATUS_REJECTED = REPORT_STATUS_REJECTED
VALID_STATUSES = REPORT_STATUSES

ACTION_SUBMIT = "submit"
ACTION_ADVANCE = "advance"
ACTION_FINALIZE = "finalize"
ACTION_REJECT = "reject"
ACTION_EDIT_DURING_REVIEW = "edit_during_review"

# Side effects a caller must apply together with the new status
EFFECT_STAMP_SUBMITTED = "stamp_submitted"
EFFECT_STAMP_ADVANCED = "stamp_advanced"
EFFECT_STAMP_APPROVED = "stamp_approved"
EFFECT_STAMP_REJECTED = "stamp_rejected"
EFFECT_RECORD_REJECTION_REASON = "record_rejection_reason"
EFFECT_CLEAR_REJECTION_REASON = "clear_rejection_reason"


@dataclass(frozen=True)
class Transition:
    name: str
    from_statuses: frozenset
    to_status: str
    role: str
    side_effects: tuple = ()


@dataclass(frozen=True)
class TransitionResult:
    transition: str
    from_status: str
    to_status: str
    side_effects: tuple


TRANSITIONS = {
    ACTION_SUBMIT: Transition(
        name=ACTION_SUBMIT,
        from_statuses=frozenset({STATUS_DRAFT, STATUS_REJECTED}),
        to_status=STATUS_PENDING_SUBDISTRICT,
        role=ROLE_BRANCH_USER,
        side_effects=(EFFECT_STAMP_SUBMITTED, EFFECT_CLEAR_REJECTION_REASON),
    ),
    ACTION_ADVANCE: Transition(
        name=ACTION_ADVANCE,
        from_statuses=frozenset({STATUS_PENDING_SUBDISTRICT}),
        to_status=STATUS_PENDING_CITY,
        role=ROLE_SUBDISTRICT_ADMIN,
        side_effects=(EFFECT_STAMP_ADVANCED,),
    ),
    ACTION_FINALIZE: Transition(
        name=ACTION_FINALIZE,
        from_statuses=frozenset({STATUS_PENDING_CITY}),
        to_status=STATUS_APPROVED,
        role=ROLE_CITY_ADMIN,
        side_effects=(EFFECT_STAMP_APPROVED,),
    ),
    ACTION_REJECT: Transition(
        name=ACTION_REJECT,
        from_statuses=frozenset({STATUS_PENDING_CITY}),
        to_status=STATUS_REJECTED,
        role=ROLE_CITY_ADMIN,
        side_effects=(EFFECT_STAMP_REJECTED, EFFECT_RECORD_REJECTION_REASON),
    ),
    ACTION_EDIT_DURING_REVIEW: Transition(
        name=ACTION_EDIT_DURING_REVIEW,
        from_statuses=frozenset({STATUS_PENDING_SUBDISTRICT}),
        to_status=STATUS_PENDING_CITY,
        role=ROLE_SUBDISTRICT_ADMIN,
        side_effects=(EFFECT_STAMP_ADVANCED,),
    ),
}

# Which approval step a status is waiting for
_APPROVAL_ACTION_BY_STATUS = {
    STATUS_PENDING_SUBDISTRICT: ACTION_ADVANCE,
    STATUS_PENDING_CITY: ACTION_FINALIZE,
}


def validate_status(status: str) -> None:
    """
    Validate that a status value is one of the allowed states.

    Raises:
        InvalidTransition: If status is not in VALID_STATUSES
    """
    if status not in VALID_STATUSES:
        raise InvalidTransition(
            f"Invalid status '{status}'. Must be one of: {', '.join(sorted(VALID_STATUSES))}"
        )


def can_transition(from_status: str, action: str, role: str) -> bool:
    """Check whether (status, action, role) names a legal transition."""
    validate_status(from_status)
    transition = TRANSITIONS.get(action)
    if transition is None:
        return False
    return from_status in transition.from_statuses and role == transition.role


def apply_transition(from_status: str, action: str, role: str) -> TransitionResult:
    """
    Compute the outcome of an action without touching storage.

    Raises:
        InvalidTransition: If the action is unknown, not legal from
            from_status, or not performed by this role
    """
    validate_status(from_status)

    transition = TRANSITIONS.get(action)
    if transition is None:
        raise InvalidTransition(f"Unknown action '{action}'")

    if from_status not in transition.from_statuses:
        raise InvalidTransition(
            f"Cannot {action} a report in status '{from_status}'",
            action=action,
            status=from_status,
        )

    if role != transition.role:
        raise InvalidTransition(
            f"Action '{action}' is not performed by role '{role}'",
            action=action,
            role=role,
        )

    return TransitionResult(
        transition=transition.name,
        from_status=from_status,
        to_status=transition.to_status,
        side_effects=transition.side_effects,
    )


def approval_action_for(status: str) -> str:
    """
    Pick the approval step from the report's current status.

    The approver never names the step; pending_subdistrict always means
    advance and pending_city always means finalize.
    """
    validate_status(status)
    action = _APPROVAL_ACTION_BY_STATUS.get(status)
    if action is None:
        raise InvalidTransition(
            f"Cannot approve a report in status '{status}'",
            action="approve",
            status=status,
        )
    return action


def legal_actions(status: str, role: str) -> list[str]:
    """All transitions a role could take from a status, in table order."""
    return [name for name in TRANSITIONS if can_transition(status, name, role)]


def changes_for(
    result: TransitionResult,
    *,
    actor_id: int,
    now: datetime,
    reason: str | None = None,
) -> dict:
    """
    Translate a transition's side effects into column changes.

    Pure: the returned dict is handed to the repository by the caller.
    """
    changes = {"status": result.to_status}

    for effect in result.side_effects:
        if effect == EFFECT_STAMP_SUBMITTED:
            changes["submitted_at"] = now
        elif effect == EFFECT_STAMP_ADVANCED:
            changes["advanced_at"] = now
            changes["advanced_by_user_id"] = actor_id
        elif effect == EFFECT_STAMP_APPROVED:
            changes["approved_at"] = now
            changes["approved_by_user_id"] = actor_id
        elif effect == EFFECT_STAMP_REJECTED:
            changes["rejected_at"] = now
            changes["rejected_by_user_id"] = actor_id
        elif effect == EFFECT_RECORD_REJECTION_REASON:
            if not reason or not reason.strip():
                raise ValidationError("Rejection reason is required")
            changes["rejection_reason"] = reason.strip()
        elif effect == EFFECT_CLEAR_REJECTION_REASON:
            changes["rejection_reason"] = None

    return changes
