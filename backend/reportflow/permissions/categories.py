# Overview: Action categories used to group workflow actions.


class ActionCategory:
    """Action categories for organization."""
    AUTHORING = "AUTHORING"
    REVIEW = "REVIEW"
    READ = "READ"
