# Overview: Authorization predicates for report actions and the security audit trail.

"""
Report Permission Engine

Every predicate answers "can this actor perform this action on this report
right now" by combining three things:

1. The role x action x status truth table (permissions/matrix.py)
2. Ownership (branch users only act on reports they created)
3. Location scope (reviewers only act on reports in their subdistrict/city)

DESIGN PRINCIPLES:
- Fail closed: an actor without an assignment never matches a scope
- Predicates are pure; they never query or write the database
- Log denials only: require() writes a SecurityEvent, then raises

SCOPE MATCHING:
Reports carry both location ids and location display names. By default scope
is matched on display name, which is how existing data has always been
matched. SCOPE_MATCH_MODE = "id" switches every predicate to foreign-key
matching.
"""

from __future__ import annotations

from ..extensions import db
from reportflow.actor import Actor
from reportflow.errors import PermissionDenied
from reportflow.models import Report, SecurityEvent
from reportflow.permissions import (
    APPROVE_REPORT,
    COMMENT_REPORT,
    CREATE_REPORT,
    DELETE_REPORT,
    EDIT_DURING_REVIEW,
    EDIT_REPORT,
    REJECT_REPORT,
    SUBMIT_REPORT,
    VIEW_REPORT,
    ROLE_BRANCH_USER,
    ROLE_CITY_ADMIN,
    ROLE_SUBDISTRICT_ADMIN,
    ROLE_SUPER_ADMIN,
    role_allows,
)
from reportflow.models.reports import REPORT_STATUS_PENDING_CITY, REPORT_STATUS_PENDING_SUBDISTRICT
from reportflow.config import SCOPE_MATCH_ID, SCOPE_MATCH_NAME
from reportflow.time_utils import utcnow


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_FAILED
    - LOGOUT
    - USER_CREATED
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    return event


def require(
    allowed: bool,
    *,
    actor: Actor,
    action: str,
    report_id: int | None = None,
    reason: str,
) -> None:
    """
    Raise PermissionDenied (after logging it) unless allowed is true.

    Usage:
        require(can_edit(actor, report), actor=actor, action=EDIT_REPORT,
                report_id=report.id, reason="Not the creator")
    """
    if allowed:
        return

    resource = f"report:{report_id}" if report_id is not None else "report"
    log_security_event(
        user_id=actor.id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=action,
        reason=reason,
    )
    raise PermissionDenied(reason, action=action, report_id=report_id)


# -- Scope -------------------------------------------------------------------


def subdistrict_matches(actor: Actor, report: Report, *, match_by: str = SCOPE_MATCH_NAME) -> bool:
    if match_by == SCOPE_MATCH_ID:
        return actor.subdistrict_id is not None and report.subdistrict_id == actor.subdistrict_id
    return bool(actor.subdistrict_name) and report.subdistrict_name == actor.subdistrict_name


def city_matches(actor: Actor, report: Report, *, match_by: str = SCOPE_MATCH_NAME) -> bool:
    if match_by == SCOPE_MATCH_ID:
        return actor.city_id is not None and report.city_id == actor.city_id
    return bool(actor.city_name) and report.city_name == actor.city_name


def scope_matches(actor: Actor, report: Report, *, match_by: str = SCOPE_MATCH_NAME) -> bool:
    """Does the report fall inside the actor's own location assignment?"""
    if actor.role == ROLE_BRANCH_USER:
        return report.created_by_user_id == actor.id
    if actor.role == ROLE_SUBDISTRICT_ADMIN:
        return subdistrict_matches(actor, report, match_by=match_by)
    if actor.role == ROLE_CITY_ADMIN:
        return city_matches(actor, report, match_by=match_by)
    return actor.role == ROLE_SUPER_ADMIN


def scope_criteria(actor: Actor, *, match_by: str = SCOPE_MATCH_NAME) -> dict | None:
    """
    Column equality criteria equivalent to scope_matches, for queries.

    Returns None when the actor has no usable assignment (matches nothing).
    """
    if actor.role == ROLE_BRANCH_USER:
        return {"created_by_user_id": actor.id}

    if actor.role == ROLE_SUBDISTRICT_ADMIN:
        if match_by == SCOPE_MATCH_ID:
            return {"subdistrict_id": actor.subdistrict_id} if actor.subdistrict_id is not None else None
        return {"subdistrict_name": actor.subdistrict_name} if actor.subdistrict_name else None

    if actor.role == ROLE_CITY_ADMIN:
        if match_by == SCOPE_MATCH_ID:
            return {"city_id": actor.city_id} if actor.city_id is not None else None
        return {"city_name": actor.city_name} if actor.city_name else None

    if actor.role == ROLE_SUPER_ADMIN:
        return {}

    return None


# -- Predicates --------------------------------------------------------------


def _is_creator(actor: Actor, report: Report) -> bool:
    return report.created_by_user_id == actor.id


def can_create(actor: Actor, in_flight_count: int) -> bool:
    """Branch users may start a report only while none of theirs awaits review."""
    return role_allows(actor.role, CREATE_REPORT) and in_flight_count == 0


def can_edit(actor: Actor, report: Report) -> bool:
    return role_allows(actor.role, EDIT_REPORT, report.status) and _is_creator(actor, report)


def can_submit(actor: Actor, report: Report) -> bool:
    return role_allows(actor.role, SUBMIT_REPORT, report.status) and _is_creator(actor, report)


def can_edit_during_review(actor: Actor, report: Report, *, match_by: str = SCOPE_MATCH_NAME) -> bool:
    return (
        role_allows(actor.role, EDIT_DURING_REVIEW, report.status)
        and subdistrict_matches(actor, report, match_by=match_by)
    )


def can_advance(actor: Actor, report: Report, *, match_by: str = SCOPE_MATCH_NAME) -> bool:
    """Subdistrict approval step."""
    return (
        actor.role == ROLE_SUBDISTRICT_ADMIN
        and report.status == REPORT_STATUS_PENDING_SUBDISTRICT
        and role_allows(actor.role, APPROVE_REPORT, report.status)
        and subdistrict_matches(actor, report, match_by=match_by)
    )


def can_finalize(actor: Actor, report: Report, *, match_by: str = SCOPE_MATCH_NAME) -> bool:
    """City approval step."""
    return (
        actor.role == ROLE_CITY_ADMIN
        and report.status == REPORT_STATUS_PENDING_CITY
        and role_allows(actor.role, APPROVE_REPORT, report.status)
        and city_matches(actor, report, match_by=match_by)
    )


def can_approve(actor: Actor, report: Report, *, match_by: str = SCOPE_MATCH_NAME) -> bool:
    """The approver never picks the step; the report's status does."""
    if report.status == REPORT_STATUS_PENDING_SUBDISTRICT:
        return can_advance(actor, report, match_by=match_by)
    if report.status == REPORT_STATUS_PENDING_CITY:
        return can_finalize(actor, report, match_by=match_by)
    return False


def can_reject(
    actor: Actor,
    report: Report,
    reason: str | None,
    *,
    match_by: str = SCOPE_MATCH_NAME,
) -> bool:
    has_reason = reason is not None and bool(str(reason).strip())
    return (
        has_reason
        and role_allows(actor.role, REJECT_REPORT, report.status)
        and city_matches(actor, report, match_by=match_by)
    )


def can_delete(actor: Actor, report: Report, external_allowed: bool) -> bool:
    return (
        role_allows(actor.role, DELETE_REPORT, report.status)
        and _is_creator(actor, report)
        and bool(external_allowed)
    )


def can_view(actor: Actor, report: Report, *, match_by: str = SCOPE_MATCH_NAME) -> bool:
    return (
        role_allows(actor.role, VIEW_REPORT, report.status)
        and scope_matches(actor, report, match_by=match_by)
    )


def can_comment(actor: Actor, report: Report, *, match_by: str = SCOPE_MATCH_NAME) -> bool:
    return (
        role_allows(actor.role, COMMENT_REPORT, report.status)
        and scope_matches(actor, report, match_by=match_by)
    )


def capabilities(
    actor: Actor,
    report: Report,
    *,
    in_flight_count: int = 0,
    external_delete_allowed: bool = False,
    match_by: str = SCOPE_MATCH_NAME,
) -> dict:
    """Every action the actor could take on this report right now, for the UI."""
    return {
        "can_view": can_view(actor, report, match_by=match_by),
        "can_comment": can_comment(actor, report, match_by=match_by),
        "can_edit": (
            can_edit(actor, report)
            or can_edit_during_review(actor, report, match_by=match_by)
        ),
        "can_submit": can_submit(actor, report) and in_flight_count == 0,
        "can_approve": can_approve(actor, report, match_by=match_by),
        # A reason is collected when the action is taken
        "can_reject": can_reject(actor, report, "-", match_by=match_by),
        "can_delete": can_delete(actor, report, external_delete_allowed),
    }
