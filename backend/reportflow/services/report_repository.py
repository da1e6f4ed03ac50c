# Overview: Storage boundary for reports and comments; the only module that writes them.

"""
Report Repository

The workflow never touches the database directly; it goes through these
functions. Every write that depends on a previously observed status is a
compare-and-swap: it only lands if the row still has that status, otherwise
ConcurrencyConflict is raised and nothing is written.

The one-in-flight rule is additionally backed by a partial unique index
(uq_reports_one_in_flight_per_creator); a violation is reported as
ConcurrencyConflict as well.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from reportflow.errors import ConcurrencyConflict, NotFound
from reportflow.models import Report, ReportComment, User
from reportflow.permissions import IN_FLIGHT_STATUSES
from reportflow.services.concurrency import compare_and_delete, compare_and_swap, lock_for_update
from reportflow.time_utils import utcnow


DEFAULT_LIST_LIMIT = 200
MAX_LIST_LIMIT = 500


@dataclass(frozen=True)
class ReportFilters:
    """Optional narrowing applied on top of an actor's visibility scope."""
    status: str | None = None
    branch_id: int | None = None
    subdistrict_id: int | None = None
    city_id: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    limit: int = DEFAULT_LIST_LIMIT


def load_report(report_id: int) -> Report:
    """
    Raises:
        NotFound: If no report has this id
    """
    report = db.session.get(Report, report_id)
    if report is None:
        raise NotFound(f"Report {report_id} not found", report_id=report_id)
    return report


def insert_report(report: Report) -> Report:
    """
    Persist a new report.

    Raises:
        ConcurrencyConflict: If a concurrent submission already holds the
            creator's in-flight slot
    """
    db.session.add(report)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConcurrencyConflict(
            "Another report by this user is already awaiting review",
            created_by_user_id=report.created_by_user_id,
        ) from exc
    return report


def save_report(report_id: int, changes: dict, expected_prior_status: str) -> Report:
    """
    Apply changes only if the report still has expected_prior_status.

    Raises:
        ConcurrencyConflict: If the status moved since it was read, or the
            write would break the one-in-flight index
    """
    values = dict(changes)
    values["version_id"] = Report.version_id + 1
    values.setdefault("updated_at", utcnow())

    try:
        swapped = compare_and_swap(
            Report,
            key=report_id,
            expected={"status": expected_prior_status},
            changes=values,
        )
    except IntegrityError as exc:
        db.session.rollback()
        raise ConcurrencyConflict(
            "Another report by this user is already awaiting review",
            report_id=report_id,
        ) from exc

    if not swapped:
        db.session.rollback()
        raise ConcurrencyConflict(
            f"Report {report_id} changed while it was being processed; reload and retry",
            report_id=report_id,
            expected_status=expected_prior_status,
        )

    db.session.commit()
    return load_report(report_id)


def delete_report(report_id: int, expected_prior_status: str) -> None:
    """
    Delete a report (and its comments) if it still has expected_prior_status.

    Raises:
        ConcurrencyConflict: If the status moved since it was read
    """
    db.session.execute(delete(ReportComment).where(ReportComment.report_id == report_id))

    deleted = compare_and_delete(
        Report,
        key=report_id,
        expected={"status": expected_prior_status},
    )
    if not deleted:
        db.session.rollback()
        raise ConcurrencyConflict(
            f"Report {report_id} changed while it was being deleted; reload and retry",
            report_id=report_id,
            expected_status=expected_prior_status,
        )

    db.session.commit()


def lock_actor(actor_id: int) -> User | None:
    """Serialize decisions about one user's report set (no-op on SQLite)."""
    return lock_for_update(db.session.query(User).filter_by(id=actor_id)).first()


def count_in_flight_reports(actor_id: int) -> int:
    """Reports created by actor_id that await review at any level."""
    return (
        db.session.query(Report)
        .filter(Report.created_by_user_id == actor_id)
        .filter(Report.status.in_(IN_FLIGHT_STATUSES))
        .count()
    )


def external_can_delete(actor_id: int, report_id: int) -> bool:
    """
    Delegated delete rule, evaluated after the workflow's own guard.

    Deletion is refused for inactive accounts and for reports that ever
    received final approval.
    """
    user = db.session.get(User, actor_id)
    if user is None or not user.is_active:
        return False

    report = db.session.get(Report, report_id)
    if report is None:
        return False

    return report.approved_at is None


def find_reports(
    *,
    criteria: dict,
    statuses,
    filters: ReportFilters | None = None,
) -> list[Report]:
    """
    Query reports matching equality criteria, restricted to statuses.

    criteria keys are Report column names (e.g. created_by_user_id,
    subdistrict_name, city_id). Newest first.
    """
    filters = filters or ReportFilters()
    statuses = set(statuses)

    if filters.status is not None:
        if filters.status not in statuses:
            return []
        statuses = {filters.status}

    query = db.session.query(Report).filter(Report.status.in_(statuses))

    for column, value in criteria.items():
        query = query.filter(getattr(Report, column) == value)

    if filters.branch_id is not None:
        query = query.filter(Report.branch_id == filters.branch_id)
    if filters.subdistrict_id is not None:
        query = query.filter(Report.subdistrict_id == filters.subdistrict_id)
    if filters.city_id is not None:
        query = query.filter(Report.city_id == filters.city_id)
    if filters.start_date is not None:
        query = query.filter(Report.report_date >= filters.start_date)
    if filters.end_date is not None:
        query = query.filter(Report.report_date <= filters.end_date)

    limit = max(1, min(filters.limit or DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT))

    return (
        query.order_by(Report.created_at.desc(), Report.id.desc())
        .limit(limit)
        .all()
    )


def append_comment(report_id: int, user_id: int, user_name: str, text: str) -> ReportComment:
    """Append a comment. Comments are never updated or removed individually."""
    comment = ReportComment(
        report_id=report_id,
        user_id=user_id,
        user_name=user_name,
        text=text,
        created_at=utcnow(),
    )
    db.session.add(comment)
    db.session.commit()
    return comment
