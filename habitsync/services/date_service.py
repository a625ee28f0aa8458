"""
Calendar and clock helpers.
Handles month names, scope navigation and creation timestamps.
"""
from datetime import date, datetime
from typing import Optional
import threading

from habitsync.exceptions import InvalidScopeException
from habitsync.schemas import Scope

MONTHS = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

_clock_lock = threading.Lock()
_last_millis = 0


class DateService:
    """Service for scope and timestamp operations"""

    @staticmethod
    def validate_month(month: str) -> str:
        """
        Check that a month is one of the full English month names.

        Raises:
            InvalidScopeException: If the name is not recognised
        """
        if month not in MONTHS:
            raise InvalidScopeException(month)
        return month

    @staticmethod
    def short_month(month: str) -> str:
        """'January' -> 'Jan'"""
        return month[:3]

    @staticmethod
    def current_scope(today: Optional[date] = None) -> Scope:
        """Scope holding the given date (defaults to today)"""
        today = today or date.today()
        return Scope(month=MONTHS[today.month - 1], year=today.year)

    @staticmethod
    def previous_scope(scope: Scope) -> Scope:
        """
        Scope one month earlier.

        January rolls back to December of the previous year.
        """
        index = MONTHS.index(DateService.validate_month(scope.month))
        if index == 0:
            return Scope(month=MONTHS[11], year=scope.year - 1)
        return Scope(month=MONTHS[index - 1], year=scope.year)

    @staticmethod
    def next_scope(scope: Scope) -> Scope:
        """
        Scope one month later.

        December rolls over to January of the next year.
        """
        index = MONTHS.index(DateService.validate_month(scope.month))
        if index == 11:
            return Scope(month=MONTHS[0], year=scope.year + 1)
        return Scope(month=MONTHS[index + 1], year=scope.year)

    @staticmethod
    def now_millis() -> int:
        """
        Epoch milliseconds for createdAt.

        Strictly increasing within the process, so records created in the
        same millisecond (or across a clock step back) keep insertion order.
        """
        global _last_millis
        now = int(datetime.now().timestamp() * 1000)
        with _clock_lock:
            if now <= _last_millis:
                now = _last_millis + 1
            _last_millis = now
        return now
