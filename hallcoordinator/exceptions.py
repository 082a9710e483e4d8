"""Exception hierarchy for the hall coordination engine.

Routes translate these into HTTP status codes; domain code raises them instead
of bare ``Exception`` so callers can tell access, storage and input problems
apart.
"""


class HallCoordinatorError(Exception):
    """Base exception for all hall coordinator errors."""


class AccessDeniedError(HallCoordinatorError):
    """Coordinator token is missing, invalid or unknown.

    This is a terminal state: no partial dashboard data may be returned.
    Should result in HTTP 403.
    """


class SessionStoreError(HallCoordinatorError):
    """Base class for failures talking to the session store."""


class SessionFetchError(SessionStoreError):
    """Reading sessions, roster or coordinator records failed.

    The caller keeps the previous snapshot and reports itself offline.
    """


class SessionWriteError(SessionStoreError):
    """A status, checklist, notes or audience write failed.

    Writes are not retried; the next successful poll reconciles local state.
    Should result in HTTP 502.
    """


class InputValidationError(HallCoordinatorError):
    """Request payload is malformed. Should result in HTTP 400."""


class InvalidStatusError(InputValidationError):
    """Value is not one of the coordinator status enumeration."""


class InvalidChecklistKeyError(InputValidationError):
    """Key is not one of the five checklist flags."""


class SessionNotFoundError(HallCoordinatorError):
    """Session id is not part of this hall's agenda. Should result in HTTP 404."""


class IssueNotFoundError(HallCoordinatorError):
    """Issue id is unknown to the issue store. Should result in HTTP 404."""


class InvalidIssueTransitionError(InputValidationError):
    """Issue status may only move forward (reported → ... → resolved)."""
