# Overview: Report workflow use cases; ties permissions, lifecycle and storage together.

"""
Report Workflow Service

Each mutating operation follows the same shape:

1. Load the report and remember the status it was observed in
2. Ask the permission engine; a denial is logged and raised
3. Ask the lifecycle state machine for the next status and its side effects
4. Write through the repository with a compare-and-swap on the observed
   status; a lost race raises ConcurrencyConflict and writes nothing

Identity is always the explicit ``actor`` argument. Nothing here reads
flask.g or the request.
"""

from __future__ import annotations

import logging

from flask import current_app

from reportflow.actor import Actor
from reportflow.errors import ConcurrencyConflict, InvalidTransition, NotFound, ValidationError
from reportflow.models import Report, ReportComment
from reportflow.permissions import (
    APPROVE_REPORT,
    COMMENT_REPORT,
    CREATE_REPORT,
    DELETE_REPORT,
    EDIT_DURING_REVIEW,
    EDIT_REPORT,
    EDITABLE_STATUSES,
    REJECT_REPORT,
    SUBMIT_REPORT,
    VIEW_REPORT,
    statuses_for,
)
from reportflow.services import lifecycle_service as lifecycle
from reportflow.services import location_service
from reportflow.services import permission_service
from reportflow.services import report_repository
from reportflow.services.concurrency import rollback_on_error
from reportflow.services.permission_service import SCOPE_MATCH_NAME
from reportflow.services.report_repository import ReportFilters
from reportflow.time_utils import utcnow
from reportflow.validation import (
    LOCATION_FIELDS,
    REPORT_AUTHOR_POLICY,
    REPORT_REVIEWER_POLICY,
    REQUIRED_FOR_SUBMISSION,
    enforce_rules_report_submission,
    validate_payload,
)


logger = logging.getLogger(__name__)


def scope_match_mode() -> str:
    """How admin scope is matched against reports ("name" or "id"); checked in create_app."""
    return current_app.config.get("SCOPE_MATCH_MODE", SCOPE_MATCH_NAME)


def _submission_values(report: Report, patch: dict | None = None) -> dict:
    values = {field: getattr(report, field) for field in REQUIRED_FOR_SUBMISSION + LOCATION_FIELDS}
    if patch:
        values.update({k: v for k, v in patch.items() if k in values})
    return values


def _apply_changes(report: Report, changes: dict) -> None:
    for field, value in changes.items():
        setattr(report, field, value)


# =============================================================================
# AUTHORING
# =============================================================================


@rollback_on_error
def create(actor: Actor, data: dict | None, *, submit: bool = False) -> Report:
    """
    Start a report for the actor's own branch.

    The location triple defaults to the actor's branch chain. With
    submit=True the report must already be complete and goes straight to
    pending_subdistrict; otherwise it is saved as a draft.

    Raises:
        PermissionDenied: Not a branch user, or a report is already in review
        ValidationError: Bad payload, foreign branch, or inconsistent location
        ConcurrencyConflict: A concurrent submission took the in-flight slot
    """
    patch = validate_payload(model=Report, payload=data, policy=REPORT_AUTHOR_POLICY, partial=False)

    in_flight = 0
    if actor.is_branch_user:
        report_repository.lock_actor(actor.id)
        in_flight = report_repository.count_in_flight_reports(actor.id)

    permission_service.require(
        permission_service.can_create(actor, in_flight),
        actor=actor,
        action=CREATE_REPORT,
        reason=(
            "A previous report is still awaiting review"
            if actor.is_branch_user
            else "Only branch users can create reports"
        ),
    )

    branch_id = patch.pop("branch_id", actor.branch_id)
    subdistrict_id = patch.pop("subdistrict_id", actor.subdistrict_id)
    city_id = patch.pop("city_id", actor.city_id)

    if actor.branch_id is None:
        raise ValidationError("Your account is not assigned to a branch")
    if branch_id != actor.branch_id:
        raise ValidationError(
            "Reports can only be filed for your own branch",
            branch_id=branch_id,
        )

    chain = location_service.validate_location_triple(branch_id, subdistrict_id, city_id)

    now = utcnow()
    report = Report(
        **patch,
        **chain.to_report_fields(),
        status=lifecycle.STATUS_DRAFT,
        created_by_user_id=actor.id,
        created_at=now,
        updated_at=now,
        version_id=1,
    )
    if "branch_manager" not in patch:
        report.branch_manager = chain.branch_manager

    if submit:
        enforce_rules_report_submission(_submission_values(report))
        result = lifecycle.apply_transition(lifecycle.STATUS_DRAFT, lifecycle.ACTION_SUBMIT, actor.role)
        _apply_changes(report, lifecycle.changes_for(result, actor_id=actor.id, now=now))

    report = report_repository.insert_report(report)
    logger.info("Report %s created by user %s with status %s", report.id, actor.id, report.status)
    return report


@rollback_on_error
def edit(actor: Actor, report_id: int, data: dict | None) -> Report:
    """
    Change report content.

    Branch users edit their own draft/rejected reports; the status does not
    change. A subdistrict admin correcting a pending_subdistrict report in
    their scope goes through the named edit_during_review transition, which
    forwards the report to pending_city.

    Raises:
        NotFound, PermissionDenied, ValidationError, ConcurrencyConflict
    """
    report = report_repository.load_report(report_id)

    if actor.is_subdistrict_admin:
        return _edit_during_review(actor, report, data)

    observed_status = report.status
    permission_service.require(
        permission_service.can_edit(actor, report),
        actor=actor,
        action=EDIT_REPORT,
        report_id=report.id,
        reason="Only the creator can edit a draft or rejected report",
    )

    patch = validate_payload(model=Report, payload=data, policy=REPORT_AUTHOR_POLICY, partial=True)

    if any(field in patch for field in LOCATION_FIELDS):
        branch_id = patch.pop("branch_id", report.branch_id)
        subdistrict_id = patch.pop("subdistrict_id", report.subdistrict_id)
        city_id = patch.pop("city_id", report.city_id)
        if branch_id != actor.branch_id:
            raise ValidationError(
                "Reports can only be filed for your own branch",
                branch_id=branch_id,
            )
        chain = location_service.validate_location_triple(branch_id, subdistrict_id, city_id)
        patch.update(chain.to_report_fields())

    if not patch:
        return report

    patch["updated_at"] = utcnow()
    saved = report_repository.save_report(report.id, patch, expected_prior_status=observed_status)
    logger.info("Report %s edited by user %s", saved.id, actor.id)
    return saved


def _edit_during_review(actor: Actor, report: Report, data: dict | None) -> Report:
    observed_status = report.status
    permission_service.require(
        permission_service.can_edit_during_review(actor, report, match_by=scope_match_mode()),
        actor=actor,
        action=EDIT_DURING_REVIEW,
        report_id=report.id,
        reason="Reports can only be corrected while awaiting review in your subdistrict",
    )

    patch = validate_payload(model=Report, payload=data, policy=REPORT_REVIEWER_POLICY, partial=True)

    now = utcnow()
    result = lifecycle.apply_transition(observed_status, lifecycle.ACTION_EDIT_DURING_REVIEW, actor.role)
    changes = dict(patch)
    changes.update(lifecycle.changes_for(result, actor_id=actor.id, now=now))
    changes["updated_at"] = now

    saved = report_repository.save_report(report.id, changes, expected_prior_status=observed_status)
    logger.info(
        "Report %s corrected during review by user %s; %s -> %s",
        saved.id, actor.id, result.from_status, result.to_status,
    )
    return saved


@rollback_on_error
def submit(actor: Actor, report_id: int) -> Report:
    """
    Send an own draft/rejected report to subdistrict review.

    Raises:
        NotFound: Unknown report
        InvalidTransition: Report is not draft or rejected
        PermissionDenied: Not the creator, or another report is in review
        ValidationError: Report incomplete or location inconsistent
        ConcurrencyConflict: Status moved, or a concurrent submission won
    """
    report = report_repository.load_report(report_id)
    observed_status = report.status

    if observed_status not in EDITABLE_STATUSES:
        raise InvalidTransition(
            f"Cannot submit a report in status '{observed_status}'",
            action=lifecycle.ACTION_SUBMIT,
            status=observed_status,
        )

    permission_service.require(
        permission_service.can_submit(actor, report),
        actor=actor,
        action=SUBMIT_REPORT,
        report_id=report.id,
        reason="Only the creator can submit this report",
    )

    report_repository.lock_actor(actor.id)
    permission_service.require(
        report_repository.count_in_flight_reports(actor.id) == 0,
        actor=actor,
        action=SUBMIT_REPORT,
        report_id=report.id,
        reason="A previous report is still awaiting review",
    )

    enforce_rules_report_submission(_submission_values(report))
    chain = location_service.validate_location_triple(
        report.branch_id, report.subdistrict_id, report.city_id
    )

    now = utcnow()
    result = lifecycle.apply_transition(observed_status, lifecycle.ACTION_SUBMIT, actor.role)
    changes = chain.to_report_fields()
    changes.update(lifecycle.changes_for(result, actor_id=actor.id, now=now))
    changes["updated_at"] = now

    saved = report_repository.save_report(report.id, changes, expected_prior_status=observed_status)
    logger.info("Report %s submitted by user %s", saved.id, actor.id)
    return saved


@rollback_on_error
def delete(actor: Actor, report_id: int) -> None:
    """
    Delete an own draft/rejected report.

    The local guard runs first; the delegated delete rule is consulted only
    when it passes.

    Raises:
        NotFound, PermissionDenied, ConcurrencyConflict
    """
    report = report_repository.load_report(report_id)
    observed_status = report.status

    permission_service.require(
        permission_service.can_delete(actor, report, external_allowed=True),
        actor=actor,
        action=DELETE_REPORT,
        report_id=report.id,
        reason="Only the creator can delete a draft or rejected report",
    )
    permission_service.require(
        report_repository.external_can_delete(actor.id, report.id),
        actor=actor,
        action=DELETE_REPORT,
        report_id=report.id,
        reason="Deletion refused by the delete policy",
    )

    report_repository.delete_report(report.id, expected_prior_status=observed_status)
    logger.info("Report %s deleted by user %s", report_id, actor.id)


# =============================================================================
# REVIEW
# =============================================================================


@rollback_on_error
def approve(actor: Actor, report_id: int) -> Report:
    """
    Approve at the actor's level.

    pending_subdistrict advances to pending_city; pending_city finalizes to
    approved. The step is chosen from the report's status, never by the
    caller, so a report can never skip the city level.

    Raises:
        NotFound, InvalidTransition, PermissionDenied, ConcurrencyConflict
    """
    report = report_repository.load_report(report_id)
    observed_status = report.status

    action = lifecycle.approval_action_for(observed_status)
    match_by = scope_match_mode()

    if action == lifecycle.ACTION_ADVANCE:
        allowed = permission_service.can_advance(actor, report, match_by=match_by)
    else:
        allowed = permission_service.can_finalize(actor, report, match_by=match_by)

    permission_service.require(
        allowed,
        actor=actor,
        action=APPROVE_REPORT,
        report_id=report.id,
        reason="Report is not awaiting your review",
    )

    now = utcnow()
    result = lifecycle.apply_transition(observed_status, action, actor.role)
    changes = lifecycle.changes_for(result, actor_id=actor.id, now=now)
    changes["updated_at"] = now

    try:
        saved = report_repository.save_report(report.id, changes, expected_prior_status=observed_status)
    except ConcurrencyConflict:
        logger.warning("Approval of report %s by user %s lost a race", report_id, actor.id)
        raise

    logger.info(
        "Report %s %s by user %s; %s -> %s",
        saved.id, result.transition, actor.id, result.from_status, result.to_status,
    )
    return saved


@rollback_on_error
def reject(actor: Actor, report_id: int, reason: str | None) -> Report:
    """
    Send a pending_city report back to its creator with a reason.

    Raises:
        ValidationError: Empty reason (checked before anything else)
        NotFound: Unknown report
        InvalidTransition: Report is not pending_city
        PermissionDenied: Not the city admin for the report's city
        ConcurrencyConflict: Status moved since it was read
    """
    if reason is None or not str(reason).strip():
        raise ValidationError("Rejection reason is required")
    reason = str(reason).strip()

    report = report_repository.load_report(report_id)
    observed_status = report.status

    if observed_status != lifecycle.STATUS_PENDING_CITY:
        raise InvalidTransition(
            f"Cannot reject a report in status '{observed_status}'",
            action=lifecycle.ACTION_REJECT,
            status=observed_status,
        )

    permission_service.require(
        permission_service.can_reject(actor, report, reason, match_by=scope_match_mode()),
        actor=actor,
        action=REJECT_REPORT,
        report_id=report.id,
        reason="Only the city admin for this report's city can reject it",
    )

    now = utcnow()
    result = lifecycle.apply_transition(observed_status, lifecycle.ACTION_REJECT, actor.role)
    changes = lifecycle.changes_for(result, actor_id=actor.id, now=now, reason=reason)
    changes["updated_at"] = now

    saved = report_repository.save_report(report.id, changes, expected_prior_status=observed_status)
    logger.info("Report %s rejected by user %s", saved.id, actor.id)
    return saved


# =============================================================================
# READ SIDE
# =============================================================================


def list_visible(actor: Actor, filters: ReportFilters | None = None) -> list[Report]:
    """
    Reports the actor may see, newest first.

    branch_user: own reports. subdistrict_admin: its subdistrict, no drafts.
    city_admin: its city, only from pending_city on. super_admin: all.
    """
    statuses = statuses_for(actor.role, VIEW_REPORT)
    criteria = permission_service.scope_criteria(actor, match_by=scope_match_mode())
    if not statuses or criteria is None:
        return []
    return report_repository.find_reports(criteria=criteria, statuses=statuses, filters=filters)


def list_pending_action(actor: Actor, filters: ReportFilters | None = None) -> list[Report]:
    """Reports waiting for this actor's approval."""
    statuses = statuses_for(actor.role, APPROVE_REPORT)
    criteria = permission_service.scope_criteria(actor, match_by=scope_match_mode())
    if not statuses or criteria is None:
        return []
    return report_repository.find_reports(criteria=criteria, statuses=statuses, filters=filters)


def get_visible(actor: Actor, report_id: int) -> Report:
    """
    Raises:
        NotFound: Unknown report, or one outside the actor's visibility
    """
    report = report_repository.load_report(report_id)
    if not permission_service.can_view(actor, report, match_by=scope_match_mode()):
        raise NotFound(f"Report {report_id} not found", report_id=report_id)
    return report


def capabilities_for(actor: Actor, report: Report) -> dict:
    """What the actor can do with a report right now."""
    in_flight = 0
    if actor.is_branch_user and report.created_by_user_id == actor.id:
        in_flight = report_repository.count_in_flight_reports(actor.id)

    external_delete_allowed = False
    if permission_service.can_delete(actor, report, external_allowed=True):
        external_delete_allowed = report_repository.external_can_delete(actor.id, report.id)

    return permission_service.capabilities(
        actor,
        report,
        in_flight_count=in_flight,
        external_delete_allowed=external_delete_allowed,
        match_by=scope_match_mode(),
    )


@rollback_on_error
def add_comment(actor: Actor, report_id: int, text: str | None) -> ReportComment:
    """
    Append a comment to a visible report.

    Raises:
        ValidationError: Empty text
        NotFound: Unknown or invisible report
        PermissionDenied: Actor may view but not comment
    """
    if text is None or not str(text).strip():
        raise ValidationError("Comment text is required")

    report = get_visible(actor, report_id)
    permission_service.require(
        permission_service.can_comment(actor, report, match_by=scope_match_mode()),
        actor=actor,
        action=COMMENT_REPORT,
        report_id=report.id,
        reason="You cannot comment on this report",
    )

    comment = report_repository.append_comment(report.id, actor.id, actor.name, str(text).strip())
    logger.info("Comment %s added to report %s by user %s", comment.id, report.id, actor.id)
    return comment
