# Overview: Workflow permission package.
# Re-exports all public APIs.

from .categories import ActionCategory
from .definitions import (
    ACTION_DEFINITIONS,
    AUTHORING_ACTIONS,
    REVIEW_ACTIONS,
    READ_ACTIONS,
    CREATE_REPORT,
    EDIT_REPORT,
    SUBMIT_REPORT,
    DELETE_REPORT,
    EDIT_DURING_REVIEW,
    APPROVE_REPORT,
    REJECT_REPORT,
    VIEW_REPORT,
    COMMENT_REPORT,
)
from .roles import (
    ROLE_BRANCH_USER,
    ROLE_SUBDISTRICT_ADMIN,
    ROLE_CITY_ADMIN,
    ROLE_SUPER_ADMIN,
    VALID_ROLES,
    ROLE_ASSIGNMENT_LEVEL,
)
from .matrix import (
    EDITABLE_STATUSES,
    IN_FLIGHT_STATUSES,
    ROLE_ACTION_STATUSES,
)
from .helpers import (
    get_all_action_codes,
    get_actions_by_category,
    role_allows,
    statuses_for,
)

__all__ = [
    "ActionCategory",
    "ACTION_DEFINITIONS",
    "AUTHORING_ACTIONS",
    "REVIEW_ACTIONS",
    "READ_ACTIONS",
    "CREATE_REPORT",
    "EDIT_REPORT",
    "SUBMIT_REPORT",
    "DELETE_REPORT",
    "EDIT_DURING_REVIEW",
    "APPROVE_REPORT",
    "REJECT_REPORT",
    "VIEW_REPORT",
    "COMMENT_REPORT",
    "ROLE_BRANCH_USER",
    "ROLE_SUBDISTRICT_ADMIN",
    "ROLE_CITY_ADMIN",
    "ROLE_SUPER_ADMIN",
    "VALID_ROLES",
    "ROLE_ASSIGNMENT_LEVEL",
    "EDITABLE_STATUSES",
    "IN_FLIGHT_STATUSES",
    "ROLE_ACTION_STATUSES",
    "get_all_action_codes",
    "get_actions_by_category",
    "role_allows",
    "statuses_for",
]
