"""
Errors raised by bracket and event operations.

Every error carries a user-facing message; request handlers turn them into
JSON responses.
"""


class BracketError(Exception):
    """Base class for recoverable bracket and event errors."""


class InvalidInputError(BracketError):
    """Missing event fields or too few participants."""


class NotFoundError(BracketError):
    """Unknown event or match id."""


class IllegalTransitionError(BracketError):
    """A result that the current match state does not allow."""


class CollaboratorError(BracketError):
    """The data store or a lock could not be used."""
