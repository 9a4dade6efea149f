"""Domain-specific exceptions raised by the trip tracker."""


class TripBudgetError(Exception):
    """Base class for every error the tracker raises on purpose."""


class NotAuthenticated(TripBudgetError):
    """Raised when an operation is attempted without a signed-in user."""


class AccessDenied(TripBudgetError):
    """Raised when a record does not exist or the user may not touch it."""


class RecordNotFound(TripBudgetError, LookupError):
    """Raised when a user or friendship cannot be located."""


class ValidationError(TripBudgetError, ValueError):
    """Raised when provided data does not meet validation requirements."""


class FriendshipError(TripBudgetError):
    """Raised when a friendship transition is not allowed."""


class PersistenceError(TripBudgetError, IOError):
    """Raised when the persistence layer encounters unrecoverable issues."""
