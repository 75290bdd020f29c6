"""
Engine errors
=============

Typed failures raised by the engine. Each error carries the same
``status_code`` / ``detail`` pair a transport layer needs to build a response,
plus a stable machine-readable ``code``.

Kinds
-----
- NotFound             (404) card, board or reaction absent
- ValidationError      (400) bad link type, missing or invalid column, cross-board link
- Conflict             (409) action attempted against a closed board
- LimitReached         (403) card or reaction quota exhausted
- CircularRelationship (400) link would break the one-level hierarchy or create a cycle
- Forbidden            (403) caller is not the creator/admin the operation requires

Errors are raised synchronously at the point of violation. Nothing in the
engine retries or swallows them.
"""


class ErrorCodes:
    """Stable error codes shared with API clients."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    BOARD_NOT_FOUND = "BOARD_NOT_FOUND"
    CARD_NOT_FOUND = "CARD_NOT_FOUND"
    REACTION_NOT_FOUND = "REACTION_NOT_FOUND"
    COLUMN_NOT_FOUND = "COLUMN_NOT_FOUND"
    BOARD_CLOSED = "BOARD_CLOSED"
    CARD_LIMIT_REACHED = "CARD_LIMIT_REACHED"
    REACTION_LIMIT_REACHED = "REACTION_LIMIT_REACHED"
    CIRCULAR_RELATIONSHIP = "CIRCULAR_RELATIONSHIP"
    CHILD_CANNOT_BE_PARENT = "CHILD_CANNOT_BE_PARENT"
    PARENT_CANNOT_BE_CHILD = "PARENT_CANNOT_BE_CHILD"


class RetroboardError(Exception):
    """
    Base class for every failure the engine raises.

    Attributes
    ----------
    code : str
        Machine-readable error code (see `ErrorCodes`).
    detail : str
        Human-readable message.
    status_code : int
        HTTP status a transport layer should map this error to.
    """

    status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, detail: str, code: str | None = None):
        super().__init__(detail)
        self.detail = detail
        self.code = code or self.default_code

    def __str__(self) -> str:
        return f"{self.code}: {self.detail}"


class NotFound(RetroboardError):
    status_code = 404
    default_code = ErrorCodes.NOT_FOUND


class ValidationError(RetroboardError):
    status_code = 400
    default_code = ErrorCodes.VALIDATION_ERROR


class Conflict(RetroboardError):
    status_code = 409
    default_code = ErrorCodes.BOARD_CLOSED


class LimitReached(RetroboardError):
    status_code = 403
    default_code = ErrorCodes.CARD_LIMIT_REACHED


class CircularRelationship(RetroboardError):
    status_code = 400
    default_code = ErrorCodes.CIRCULAR_RELATIONSHIP


class Forbidden(RetroboardError):
    status_code = 403
    default_code = ErrorCodes.FORBIDDEN
