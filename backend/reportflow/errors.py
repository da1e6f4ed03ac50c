# Overview: Typed error hierarchy returned by the report workflow.

"""
Workflow Errors

Every failure path of the workflow raises exactly one of these. Callers
branch on the class (or on ``code`` across the HTTP boundary), never on the
message text.

    WorkflowError
    +-- PermissionDenied      actor lacks the capability (never a silent no-op)
    +-- InvalidTransition     action is not legal from the current status
    +-- ValidationError       missing field or inconsistent location triple
    +-- NotFound              referenced report/location/user does not exist
    +-- ConcurrencyConflict   status changed between read and write

All of them are recoverable: retry, re-fetch, or surface to the end user.
"""

from __future__ import annotations


class WorkflowError(Exception):
    """Base class for all report workflow errors."""

    code = "WORKFLOW_ERROR"
    http_status = 400

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class PermissionDenied(WorkflowError):
    code = "PERMISSION_DENIED"
    http_status = 403


class InvalidTransition(WorkflowError):
    code = "INVALID_TRANSITION"
    http_status = 409


class ValidationError(WorkflowError):
    code = "VALIDATION_ERROR"
    http_status = 400


class NotFound(WorkflowError):
    code = "NOT_FOUND"
    http_status = 404


class ConcurrencyConflict(WorkflowError):
    """Raised when a compare-and-swap write finds the status already moved."""

    code = "CONCURRENCY_CONFLICT"
    http_status = 409
