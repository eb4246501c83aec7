"""Exceptions raised at the input boundary, before any collection is touched."""


class ScholarHubError(Exception):
    pass


class InputValidationError(ScholarHubError):
    """Rejected user input (e.g. an empty title)."""


class NotFoundError(ScholarHubError):
    """An id that does not exist in its collection."""
