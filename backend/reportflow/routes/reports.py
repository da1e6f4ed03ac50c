# Overview: Flask API routes for sales reports; parses input and returns JSON responses.

# backend/reportflow/routes/reports.py
"""
Sales Report API Routes

- GET    /api/reports                 - reports visible to the caller
- GET    /api/reports/pending         - reports awaiting the caller's review
- GET    /api/reports/:id             - one report, with the caller's capabilities
- POST   /api/reports                 - create (draft, or submit with "submit": true)
- PUT    /api/reports/:id             - edit (subdistrict admins: correct and forward)
- POST   /api/reports/:id/submit      - send to subdistrict review
- POST   /api/reports/:id/approve     - approve at the caller's level
- POST   /api/reports/:id/reject      - reject with {"reason": "..."}
- POST   /api/reports/:id/comments    - append a comment
- DELETE /api/reports/:id             - delete an own draft/rejected report

SECURITY:
- All routes require authentication
- The actor comes from the session (g.actor), never from the request body
- Authorization is decided per report by the workflow, so every error is
  returned as {"error", "code"} with the matching HTTP status
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import ValidationError, WorkflowError
from ..services import workflow_service
from ..services.report_repository import DEFAULT_LIST_LIMIT, ReportFilters
from ..time_utils import parse_iso_date
from ..decorators import require_auth


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _error_response(exc: WorkflowError):
    return jsonify(exc.to_dict()), exc.http_status


def _int_arg(name: str) -> int | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", field=name)


def _date_arg(name: str):
    raw = request.args.get(name)
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date", field=name)


def _filters_from_args() -> ReportFilters:
    return ReportFilters(
        status=request.args.get("status") or None,
        branch_id=_int_arg("branch_id"),
        subdistrict_id=_int_arg("subdistrict_id"),
        city_id=_int_arg("city_id"),
        start_date=_date_arg("start_date"),
        end_date=_date_arg("end_date"),
        limit=_int_arg("limit") or DEFAULT_LIST_LIMIT,
    )


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data


@reports_bp.get("")
@require_auth
def list_reports_route():
    """
    List reports visible to the caller, newest first.

    Query params: status, branch_id, subdistrict_id, city_id, start_date,
    end_date, limit.
    """
    try:
        reports = workflow_service.list_visible(g.actor, _filters_from_args())
        return jsonify({
            "reports": [r.to_dict(include_comments=False) for r in reports],
            "count": len(reports),
        }), 200
    except WorkflowError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list reports")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/pending")
@require_auth
def pending_reports_route():
    """Reports waiting for the caller's approval. Empty for branch users."""
    try:
        reports = workflow_service.list_pending_action(g.actor, _filters_from_args())
        return jsonify({
            "reports": [r.to_dict(include_comments=False) for r in reports],
            "count": len(reports),
        }), 200
    except WorkflowError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list pending reports")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/<int:report_id>")
@require_auth
def get_report_route(report_id: int):
    """
    One report, its comments, and what the caller may do with it.

    Reports outside the caller's visibility return 404.
    """
    try:
        report = workflow_service.get_visible(g.actor, report_id)
        return jsonify({
            "report": report.to_dict(),
            "capabilities": workflow_service.capabilities_for(g.actor, report),
        }), 200
    except WorkflowError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.post("")
@require_auth
def create_report_route():
    """
    Create a report for the caller's branch.

    Body: report fields, plus optional "submit": true to send it straight to
    subdistrict review instead of saving a draft.
    """
    try:
        data = dict(_json_body())
        submit = data.pop("submit", False)
        if not isinstance(submit, bool):
            raise ValidationError("submit must be a boolean")
        report = workflow_service.create(g.actor, data, submit=submit)
        return jsonify({"report": report.to_dict()}), 201
    except WorkflowError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.put("/<int:report_id>")
@require_auth
def update_report_route(report_id: int):
    """
    Edit a report.

    NOTE: a subdistrict admin's correction also forwards the report to
    city review.
    """
    try:
        report = workflow_service.edit(g.actor, report_id, _json_body())
        return jsonify({"report": report.to_dict()}), 200
    except WorkflowError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.post("/<int:report_id>/submit")
@require_auth
def submit_report_route(report_id: int):
    try:
        report = workflow_service.submit(g.actor, report_id)
        return jsonify({
            "report": report.to_dict(),
            "message": f"Report {report_id} submitted for review"
        }), 200
    except WorkflowError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to submit report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.post("/<int:report_id>/approve")
@require_auth
def approve_report_route(report_id: int):
    """
    Approve at the caller's level.

    Error responses:
        403: Report not awaiting the caller's review
        404: Report not found
        409: Report not pending (INVALID_TRANSITION) or changed meanwhile
             (CONCURRENCY_CONFLICT)
    """
    try:
        report = workflow_service.approve(g.actor, report_id)
        return jsonify({
            "report": report.to_dict(),
            "message": f"Report {report_id} approved"
        }), 200
    except WorkflowError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to approve report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.post("/<int:report_id>/reject")
@require_auth
def reject_report_route(report_id: int):
    """Body: {"reason": "..."} (required, non-blank)."""
    try:
        data = _json_body()
        report = workflow_service.reject(g.actor, report_id, data.get("reason"))
        return jsonify({
            "report": report.to_dict(),
            "message": f"Report {report_id} rejected"
        }), 200
    except WorkflowError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reject report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.post("/<int:report_id>/comments")
@require_auth
def add_comment_route(report_id: int):
    """Body: {"text": "..."}"""
    try:
        data = _json_body()
        comment = workflow_service.add_comment(g.actor, report_id, data.get("text"))
        return jsonify({"comment": comment.to_dict()}), 201
    except WorkflowError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add comment")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.delete("/<int:report_id>")
@require_auth
def delete_report_route(report_id: int):
    try:
        workflow_service.delete(g.actor, report_id)
        return jsonify({"message": f"Report {report_id} deleted"}), 200
    except WorkflowError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete report")
        return jsonify({"error": "Internal server error"}), 500
