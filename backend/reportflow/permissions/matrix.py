# Overview: The role x action x status truth table.

"""
Every workflow capability is one cell of ROLE_ACTION_STATUSES: for a role and
an action, the set of report statuses in which the action is allowed at all.
Ownership and location-scope checks are layered on top by the permission
service; nothing outside this table grants a capability.

None as the status set means the action does not depend on a report
(CREATE_REPORT).
"""

from reportflow.models.reports import (
    REPORT_STATUSES,
    REPORT_STATUS_APPROVED,
    REPORT_STATUS_DRAFT,
    REPORT_STATUS_PENDING_CITY,
    REPORT_STATUS_PENDING_SUBDISTRICT,
    REPORT_STATUS_REJECTED,
)

from .definitions import (
    APPROVE_REPORT,
    COMMENT_REPORT,
    CREATE_REPORT,
    DELETE_REPORT,
    EDIT_DURING_REVIEW,
    EDIT_REPORT,
    REJECT_REPORT,
    SUBMIT_REPORT,
    VIEW_REPORT,
)
from .roles import (
    ROLE_BRANCH_USER,
    ROLE_CITY_ADMIN,
    ROLE_SUBDISTRICT_ADMIN,
    ROLE_SUPER_ADMIN,
)


EDITABLE_STATUSES = frozenset({REPORT_STATUS_DRAFT, REPORT_STATUS_REJECTED})
IN_FLIGHT_STATUSES = frozenset({REPORT_STATUS_PENDING_SUBDISTRICT, REPORT_STATUS_PENDING_CITY})

# Admins never see drafts; city admins only see what reached their level.
_SUBDISTRICT_VISIBLE = REPORT_STATUSES - {REPORT_STATUS_DRAFT}
_CITY_VISIBLE = frozenset({REPORT_STATUS_PENDING_CITY, REPORT_STATUS_APPROVED, REPORT_STATUS_REJECTED})


ROLE_ACTION_STATUSES = {
    ROLE_BRANCH_USER: {
        CREATE_REPORT: None,
        EDIT_REPORT: EDITABLE_STATUSES,
        SUBMIT_REPORT: EDITABLE_STATUSES,
        DELETE_REPORT: EDITABLE_STATUSES,
        VIEW_REPORT: REPORT_STATUSES,
        COMMENT_REPORT: REPORT_STATUSES,
    },
    ROLE_SUBDISTRICT_ADMIN: {
        EDIT_DURING_REVIEW: frozenset({REPORT_STATUS_PENDING_SUBDISTRICT}),
        APPROVE_REPORT: frozenset({REPORT_STATUS_PENDING_SUBDISTRICT}),
        VIEW_REPORT: _SUBDISTRICT_VISIBLE,
        COMMENT_REPORT: _SUBDISTRICT_VISIBLE,
    },
    ROLE_CITY_ADMIN: {
        APPROVE_REPORT: frozenset({REPORT_STATUS_PENDING_CITY}),
        REJECT_REPORT: frozenset({REPORT_STATUS_PENDING_CITY}),
        VIEW_REPORT: _CITY_VISIBLE,
        COMMENT_REPORT: _CITY_VISIBLE,
    },
    # Reference-data administrator: oversight only, never moves a report
    ROLE_SUPER_ADMIN: {
        VIEW_REPORT: REPORT_STATUSES,
        COMMENT_REPORT: REPORT_STATUSES,
    },
}
