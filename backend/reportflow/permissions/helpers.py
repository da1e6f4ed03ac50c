# Overview: Utility functions for action lookups and truth-table queries.

from .definitions import ACTION_DEFINITIONS
from .matrix import ROLE_ACTION_STATUSES


def get_all_action_codes():
    """Get list of all action codes."""
    return [action[0] for action in ACTION_DEFINITIONS]


def get_actions_by_category(category):
    """Get all actions in a category."""
    return [action for action in ACTION_DEFINITIONS if action[3] == category]


def role_allows(role: str, action: str, status: str | None = None) -> bool:
    """
    Look up one cell of the truth table.

    status=None asks about report-independent actions only.
    """
    actions = ROLE_ACTION_STATUSES.get(role)
    if not actions or action not in actions:
        return False
    statuses = actions[action]
    if statuses is None:
        return True
    return status in statuses


def statuses_for(role: str, action: str) -> frozenset:
    """Statuses in which a role may perform an action (empty when never)."""
    statuses = ROLE_ACTION_STATUSES.get(role, {}).get(action)
    return statuses or frozenset()
