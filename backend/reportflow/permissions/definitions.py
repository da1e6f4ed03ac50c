# Overview: All workflow action definitions organized by category.
# Each action is defined as: (code, name, description, category)

from .categories import ActionCategory


CREATE_REPORT = "CREATE_REPORT"
EDIT_REPORT = "EDIT_REPORT"
SUBMIT_REPORT = "SUBMIT_REPORT"
DELETE_REPORT = "DELETE_REPORT"
EDIT_DURING_REVIEW = "EDIT_DURING_REVIEW"
APPROVE_REPORT = "APPROVE_REPORT"
REJECT_REPORT = "REJECT_REPORT"
VIEW_REPORT = "VIEW_REPORT"
COMMENT_REPORT = "COMMENT_REPORT"


# -- AUTHORING --

AUTHORING_ACTIONS = [
    (
        CREATE_REPORT,
        "Create Report",
        "Start a new sales report for the assigned branch",
        ActionCategory.AUTHORING,
    ),
    (
        EDIT_REPORT,
        "Edit Report",
        "Change an own report while it is a draft or was rejected",
        ActionCategory.AUTHORING,
    ),
    (
        SUBMIT_REPORT,
        "Submit Report",
        "Send an own complete report to subdistrict review",
        ActionCategory.AUTHORING,
    ),
    (
        DELETE_REPORT,
        "Delete Report",
        "Delete an own draft or rejected report",
        ActionCategory.AUTHORING,
    ),
]


# -- REVIEW --

REVIEW_ACTIONS = [
    (
        EDIT_DURING_REVIEW,
        "Correct During Review",
        "Correct a report awaiting subdistrict review (implicitly advances it)",
        ActionCategory.REVIEW,
    ),
    (
        APPROVE_REPORT,
        "Approve Report",
        "Approve the report at the reviewer's level",
        ActionCategory.REVIEW,
    ),
    (
        REJECT_REPORT,
        "Reject Report",
        "Reject a report awaiting city review, with a reason",
        ActionCategory.REVIEW,
    ),
]


# -- READ --

READ_ACTIONS = [
    (
        VIEW_REPORT,
        "View Report",
        "See a report in the actor's scope",
        ActionCategory.READ,
    ),
    (
        COMMENT_REPORT,
        "Comment on Report",
        "Append a comment to a visible report",
        ActionCategory.READ,
    ),
]


# -- ALL --

ACTION_DEFINITIONS = (
    AUTHORING_ACTIONS
    + REVIEW_ACTIONS
    + READ_ACTIONS
)
