# Overview: Pytest coverage for compare-and-swap writes and racing workflow calls.

"""
Concurrency Tests

A race is simulated by running a competing workflow call from inside the
first call's storage write, after the first call has already read the
report and made its decision. Exactly one of the two must win; the loser
gets ConcurrencyConflict and writes nothing.
"""

import pytest
from sqlalchemy.exc import OperationalError

from reportflow.errors import ConcurrencyConflict
from reportflow.models import Report, ReportComment, User
from reportflow.services import report_repository, workflow_service
from reportflow.services.concurrency import compare_and_swap, rollback_on_error, run_with_retry


def race_on(monkeypatch, name, competitor):
    """
    Patch report_repository.<name> so its first call runs competitor()
    before doing the real write.
    """
    original = getattr(report_repository, name)
    raced = []

    def racing(*args, **kwargs):
        if not raced:
            raced.append(True)
            competitor()
        return original(*args, **kwargs)

    monkeypatch.setattr(report_repository, name, racing)
    return raced


def reload(db_session, report_id):
    db_session.expire_all()
    return db_session.get(Report, report_id)


# =============================================================================
# RACING WORKFLOW CALLS
# =============================================================================


class TestRacingReviews:

    def test_two_city_admins_approve_at_once(self, actors, pending_city_report, monkeypatch, db_session):
        report_id = pending_city_report.id
        raced = race_on(
            monkeypatch, "save_report",
            lambda: workflow_service.approve(actors.jakarta_admin_2, report_id),
        )

        with pytest.raises(ConcurrencyConflict):
            workflow_service.approve(actors.jakarta_admin, report_id)

        assert raced
        report = reload(db_session, report_id)
        assert report.status == "approved"
        assert report.approved_by_user_id == actors.jakarta_admin_2.id

    def test_reject_loses_to_approve(self, actors, pending_city_report, monkeypatch, db_session):
        report_id = pending_city_report.id
        race_on(
            monkeypatch, "save_report",
            lambda: workflow_service.approve(actors.jakarta_admin_2, report_id),
        )

        with pytest.raises(ConcurrencyConflict):
            workflow_service.reject(actors.jakarta_admin, report_id, "incomplete data")

        report = reload(db_session, report_id)
        assert report.status == "approved"
        assert report.rejection_reason is None

    def test_approve_loses_to_reject(self, actors, pending_city_report, monkeypatch, db_session):
        report_id = pending_city_report.id
        race_on(
            monkeypatch, "save_report",
            lambda: workflow_service.reject(actors.jakarta_admin_2, report_id, "numbers do not add up"),
        )

        with pytest.raises(ConcurrencyConflict):
            workflow_service.approve(actors.jakarta_admin, report_id)

        report = reload(db_session, report_id)
        assert report.status == "rejected"
        assert report.approved_at is None

    def test_correction_races_approval(self, actors, pending_subdistrict_report, monkeypatch, db_session):
        report_id = pending_subdistrict_report.id
        race_on(
            monkeypatch, "save_report",
            lambda: workflow_service.edit(actors.menteng_admin, report_id, {"title": "Corrected"}),
        )

        with pytest.raises(ConcurrencyConflict):
            workflow_service.approve(actors.menteng_admin, report_id)

        report = reload(db_session, report_id)
        assert report.status == "pending_city"
        assert report.title == "Corrected"

    def test_loser_can_retry_against_fresh_state(self, actors, pending_city_report, monkeypatch):
        report_id = pending_city_report.id
        race_on(
            monkeypatch, "save_report",
            lambda: workflow_service.reject(actors.jakarta_admin_2, report_id, "missing receipts"),
        )

        with pytest.raises(ConcurrencyConflict):
            workflow_service.approve(actors.jakarta_admin, report_id)

        # Fresh state: rejected, back with the creator
        resubmitted = workflow_service.submit(actors.branch_user, report_id)
        assert resubmitted.status == "pending_subdistrict"


class TestRacingAuthoring:

    def test_delete_loses_to_submit(self, actors, draft_report, monkeypatch, db_session):
        report_id = draft_report.id
        workflow_service.add_comment(actors.branch_user, report_id, "draft note")
        race_on(
            monkeypatch, "delete_report",
            lambda: workflow_service.submit(actors.branch_user, report_id),
        )

        with pytest.raises(ConcurrencyConflict):
            workflow_service.delete(actors.branch_user, report_id)

        report = reload(db_session, report_id)
        assert report.status == "pending_subdistrict"
        assert db_session.query(ReportComment).filter_by(report_id=report_id).count() == 1

    def test_two_submissions_by_one_user(self, actors, payload, monkeypatch, db_session):
        first = workflow_service.create(actors.branch_user, payload(title="First"))
        second = workflow_service.create(actors.branch_user, payload(title="Second"))
        first_id, second_id = first.id, second.id

        race_on(
            monkeypatch, "save_report",
            lambda: workflow_service.submit(actors.branch_user, second_id),
        )

        with pytest.raises(ConcurrencyConflict):
            workflow_service.submit(actors.branch_user, first_id)

        assert reload(db_session, first_id).status == "draft"
        assert reload(db_session, second_id).status == "pending_subdistrict"

    def test_stale_in_flight_count_on_create(self, actors, payload, pending_subdistrict_report, monkeypatch, db_session):
        # Decision made on a read that missed the pending report
        monkeypatch.setattr(report_repository, "count_in_flight_reports", lambda actor_id: 0)

        with pytest.raises(ConcurrencyConflict):
            workflow_service.create(actors.branch_user, payload(), submit=True)

        in_flight = db_session.query(Report).filter(
            Report.created_by_user_id == actors.branch_user.id,
            Report.status.in_(["pending_subdistrict", "pending_city"]),
        ).count()
        assert in_flight == 1


# =============================================================================
# REPOSITORY PRIMITIVES
# =============================================================================


class TestCompareAndSwap:

    def test_matching_status_is_written(self, draft_report, db_session):
        swapped = compare_and_swap(
            Report,
            key=draft_report.id,
            expected={"status": "draft"},
            changes={"title": "Swapped"},
        )
        db_session.commit()

        assert swapped is True
        assert reload(db_session, draft_report.id).title == "Swapped"

    def test_stale_status_writes_nothing(self, draft_report, db_session):
        swapped = compare_and_swap(
            Report,
            key=draft_report.id,
            expected={"status": "pending_city"},
            changes={"title": "Swapped"},
        )
        db_session.commit()

        assert swapped is False
        assert reload(db_session, draft_report.id).title == "September sales"

    def test_save_report_bumps_version(self, draft_report):
        saved = report_repository.save_report(draft_report.id, {"title": "v2"}, expected_prior_status="draft")
        assert saved.version_id == 2

    def test_save_report_conflict(self, draft_report, db_session):
        with pytest.raises(ConcurrencyConflict) as exc_info:
            report_repository.save_report(
                draft_report.id,
                {"status": "pending_subdistrict"},
                expected_prior_status="rejected",
            )

        assert exc_info.value.details["expected_status"] == "rejected"
        report = reload(db_session, draft_report.id)
        assert report.status == "draft"
        assert report.version_id == 1

    def test_delete_conflict_keeps_row(self, pending_subdistrict_report, db_session):
        with pytest.raises(ConcurrencyConflict):
            report_repository.delete_report(pending_subdistrict_report.id, expected_prior_status="draft")
        assert reload(db_session, pending_subdistrict_report.id) is not None


class TestRetryHelpers:

    def test_retries_transient_errors(self, app):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise OperationalError("UPDATE reports", {}, Exception("database is locked"))
            return "ok"

        assert run_with_retry(flaky, attempts=3, backoff_base=0) == "ok"
        assert len(calls) == 3

    def test_gives_up_after_attempts(self, app):
        def always_locked():
            raise OperationalError("UPDATE reports", {}, Exception("database is locked"))

        with pytest.raises(OperationalError):
            run_with_retry(always_locked, attempts=2, backoff_base=0)

    def test_conflicts_are_not_retried(self, app):
        calls = []

        def conflicting():
            calls.append(1)
            raise ConcurrencyConflict("moved")

        with pytest.raises(ConcurrencyConflict):
            run_with_retry(conflicting, backoff_base=0)
        assert len(calls) == 1

    def test_rollback_on_error_discards_pending_work(self, users, db_session):
        @rollback_on_error
        def rename_then_fail():
            db_session.get(User, users.branch_user.id).name = "Changed"
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            rename_then_fail()

        db_session.expire_all()
        assert db_session.get(User, users.branch_user.id).name == "Ani"
