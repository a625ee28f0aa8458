"""
Habit record store.

Live projection of the habits of one (month, year) scope, plus the
create/update/delete operations the UI performs on it.

Writes are never applied locally; the projection only changes when the
collection pushes the next snapshot. Two known lost-update hazards are kept
as-is (last writer wins):

- update() merges blindly, with no version token.
- toggle_check() rewrites the whole checks array from the local cache, so a
  stale cache can revert days changed by another writer.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple, Union
from pydantic import ValidationError

from habitsync.constants import (
    CREATED_AT_FIELD,
    DAYS_IN_SCOPE,
    HABITS_COLLECTION,
    MAX_HABITS_PER_SCOPE,
)
from habitsync.exceptions import InvalidScopeException
from habitsync.schemas import Habit, HabitCreate, MutationResult, Scope
from habitsync.services import cap_policy
from habitsync.services.date_service import DateService
from habitsync.services.projection_store import ProjectionStore


class HabitRecordStore(ProjectionStore):
    """Scope-bound projection of the habits collection"""

    collection = HABITS_COLLECTION
    logger = logging.getLogger("habitsync.store")

    def __init__(self, client, **kwargs):
        super().__init__(client, **kwargs)
        self._scope: Optional[Scope] = None

    @property
    def scope(self) -> Optional[Scope]:
        return self._scope

    @property
    def habits(self) -> Tuple[Habit, ...]:
        """Current projection, createdAt ascending"""
        return self._records

    def _parse(self, documents: List[Dict[str, Any]]) -> Tuple[Habit, ...]:
        habits = []
        for document in documents:
            try:
                habits.append(Habit.model_validate(document))
            except ValidationError as e:
                self.logger.warning(f"Skipping malformed habit {document.get('id')}: {e}")
        return tuple(habits)

    def get(self, habit_id: str) -> Optional[Habit]:
        """Cached habit by ID"""
        for habit in self._records:
            if habit.id == habit_id:
                return habit
        return None

    def visible_habits(self, cap: int = MAX_HABITS_PER_SCOPE) -> List[Habit]:
        """The first `cap` habits, the set every view works on"""
        return cap_policy.limit(self._records, cap)

    def get_visible(self, habit_id: str, cap: int = MAX_HABITS_PER_SCOPE) -> Optional[Habit]:
        """Cached habit by ID, only if it is among the visible habits"""
        for habit in self.visible_habits(cap):
            if habit.id == habit_id:
                return habit
        return None

    async def set_scope(self, month: str, year: int) -> None:
        """
        Switch the projection to another (month, year) scope.

        The previous subscription is cancelled and fenced before the new
        one opens. The old projection stays readable, with loading set,
        until the first snapshot of the new scope arrives.

        Raises:
            InvalidScopeException: If the month name is not recognised
        """
        DateService.validate_month(month)
        scope = Scope(month=month, year=int(year))
        self._scope = scope

        self.logger.info(f"Switching habit scope to {scope.month} {scope.year}")
        await self._open(
            {"month": scope.month, "year": scope.year},
            CREATED_AT_FIELD,
            descending=False
        )

    async def add(self, payload: Union[HabitCreate, Dict[str, Any]]) -> MutationResult:
        """
        Create a habit in the current (or given) scope.

        Missing checks default to 30 unchecked days, missing order to the
        current projection length. The cap is not checked here.
        """
        try:
            data = payload if isinstance(payload, HabitCreate) else HabitCreate.model_validate(payload)
            month = data.month or (self._scope.month if self._scope else None)
            year = data.year if data.year is not None else (self._scope.year if self._scope else None)
            if month is None or year is None:
                raise InvalidScopeException(str(month))
            DateService.validate_month(month)
        except (ValidationError, InvalidScopeException) as e:
            self.logger.warning(f"Rejected habit payload: {e}")
            return MutationResult(ok=False, error=str(e))

        checks = list(data.checks or [])
        checks += [False] * (DAYS_IN_SCOPE - len(checks))

        record = {
            "title": data.title,
            "color": data.color,
            "month": month,
            "year": year,
            "order": data.order if data.order is not None else len(self._records),
            "streak": data.streak,
            "checks": checks,
            CREATED_AT_FIELD: DateService.now_millis(),
        }
        result = await self._mutate(
            "add habit",
            lambda: self.client.insert(self.collection, record)
        )
        if result.ok:
            self.logger.info(f"Added habit '{data.title}' ({month} {year}) as {result.id}")
        return result

    async def update(self, habit_id: str, fields: Dict[str, Any]) -> MutationResult:
        """Shallow-merge fields into a habit; the last write to arrive wins"""
        result = await self._mutate(
            f"update habit {habit_id}",
            lambda: self.client.update(self.collection, habit_id, dict(fields)),
            retries=self.mutation_retries
        )
        return result.model_copy(update={"id": habit_id}) if result.ok else result

    async def edit_title(self, habit_id: str, title: str) -> MutationResult:
        """Rename a habit; blank names are ignored"""
        trimmed = (title or "").strip()
        if not trimmed:
            self.logger.warning(f"Ignored blank title for habit {habit_id}")
            return MutationResult(ok=False, id=habit_id, error="title must not be blank")
        return await self.update(habit_id, {"title": trimmed})

    async def remove(self, habit_id: str) -> MutationResult:
        """Delete a habit permanently"""
        result = await self._mutate(
            f"remove habit {habit_id}",
            lambda: self.client.delete(self.collection, habit_id),
            retries=self.mutation_retries
        )
        if result.ok:
            self.logger.info(f"Removed habit {habit_id}")
            return result.model_copy(update={"id": habit_id})
        return result

    async def toggle_check(self, habit_id: str, day_index: int) -> MutationResult:
        """
        Flip one day of a habit and write the full 30-day array back.

        Reads the locally cached checks, not the remote state. Only habits
        within the visible cap can be toggled.

        Args:
            habit_id: Habit to change
            day_index: 0-based day (0 is day 1)

        Returns:
            MutationResult of the underlying update
        """
        if not 0 <= day_index < DAYS_IN_SCOPE:
            self.logger.warning(f"Ignored toggle of day index {day_index} on habit {habit_id}")
            return MutationResult(ok=False, id=habit_id, error=f"day index must be 0..{DAYS_IN_SCOPE - 1}")

        habit = self.get_visible(habit_id)
        if habit is None:
            self.logger.warning(f"Ignored toggle on unknown or hidden habit {habit_id}")
            return MutationResult(ok=False, id=habit_id, error=f"Habit with ID {habit_id} not found")

        checks = habit.padded_checks()
        checks[day_index] = not checks[day_index]
        return await self.update(habit_id, {"checks": checks})

    async def clear_all(self, cap: int = MAX_HABITS_PER_SCOPE) -> List[MutationResult]:
        """Delete every visible habit of the current scope"""
        targets = self.visible_habits(cap)
        if not targets:
            return []
        self.logger.info(f"Clearing {len(targets)} habits from {self._scope.month} {self._scope.year}")
        return list(await asyncio.gather(*(self.remove(h.id) for h in targets)))
