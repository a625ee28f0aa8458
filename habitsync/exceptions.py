"""
Custom exceptions for the habit sync service.
Provides specific exception types for the store, its collaborator and the API.
"""


class HabitSyncException(Exception):
    """Base exception for the habit sync service"""
    pass


class CollaboratorError(HabitSyncException):
    """Raised by a collection client when a remote call fails"""
    def __init__(self, operation: str, details: str):
        self.operation = operation
        self.details = details
        super().__init__(f"Collection {operation} failed: {details}")


class SubscriptionError(HabitSyncException):
    """Raised when a subscription stream fails to deliver"""
    def __init__(self, collection: str, details: str):
        self.collection = collection
        self.details = details
        super().__init__(f"Subscription to '{collection}' failed: {details}")


class MutationError(HabitSyncException):
    """A create/update/delete that could not be carried out; reported, not raised"""
    def __init__(self, operation: str, details: str):
        self.operation = operation
        self.details = details
        super().__init__(f"Could not {operation}: {details}")


class HabitNotFoundException(HabitSyncException):
    """Raised when a habit is not in the current projection"""
    def __init__(self, habit_id: str):
        self.habit_id = habit_id
        super().__init__(f"Habit with ID {habit_id} not found")


class HabitCapReachedException(HabitSyncException):
    """Raised when a scope already holds the maximum number of habits"""
    def __init__(self, cap: int):
        self.cap = cap
        super().__init__(f"You can track up to {cap} habits per month")


class InvalidScopeException(HabitSyncException):
    """Raised when a month name is not recognised"""
    def __init__(self, month: str):
        self.month = month
        super().__init__(f"Invalid month: {month}. Expected a full month name")
