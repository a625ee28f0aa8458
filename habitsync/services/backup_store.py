"""
Backup store.
Append-only projection of monthly snapshots used by the yearly views.
"""
import logging
from typing import Any, Dict, Iterable, List, Tuple, Union
from pydantic import ValidationError

from habitsync.constants import BACKUPS_COLLECTION, CREATED_AT_FIELD
from habitsync.exceptions import InvalidScopeException
from habitsync.schemas import Backup, Habit, HabitSnapshot, MutationResult
from habitsync.services.date_service import DateService
from habitsync.services.projection_store import ProjectionStore


class BackupStore(ProjectionStore):
    """Global projection of the backups collection, newest first"""

    collection = BACKUPS_COLLECTION
    logger = logging.getLogger("habitsync.backups")

    @property
    def backups(self) -> Tuple[Backup, ...]:
        return self._records

    def _parse(self, documents: List[Dict[str, Any]]) -> Tuple[Backup, ...]:
        backups = []
        for document in documents:
            try:
                backups.append(Backup.model_validate(document))
            except ValidationError as e:
                self.logger.warning(f"Skipping malformed backup {document.get('id')}: {e}")
        return tuple(backups)

    async def subscribe(self) -> None:
        """Open the single standing subscription (no scope filter)"""
        await self._open({}, CREATED_AT_FIELD, descending=True)

    @staticmethod
    def snapshot(habit: Union[Habit, HabitSnapshot, Dict[str, Any]]) -> HabitSnapshot:
        """Reduce a habit to title, color and checks"""
        if isinstance(habit, (Habit, HabitSnapshot)):
            return HabitSnapshot(title=habit.title, color=habit.color, checks=list(habit.checks))
        return HabitSnapshot.model_validate(habit)

    async def create_backup(
        self,
        month: str,
        year: int,
        habits: Iterable[Union[Habit, HabitSnapshot, Dict[str, Any]]]
    ) -> MutationResult:
        """
        Store an immutable snapshot of a scope's habits.

        Each call adds a new backup; existing backups are never changed.
        """
        try:
            DateService.validate_month(month)
            snapshots = [self.snapshot(h) for h in habits]
        except (InvalidScopeException, ValidationError) as e:
            self.logger.warning(f"Rejected backup for {month} {year}: {e}")
            return MutationResult(ok=False, error=str(e))

        record = {
            "month": month,
            "year": int(year),
            "habits": [s.model_dump(by_alias=True) for s in snapshots],
            CREATED_AT_FIELD: DateService.now_millis(),
        }
        result = await self._mutate(
            f"create backup {month} {year}",
            lambda: self.client.insert(self.collection, record)
        )
        if result.ok:
            self.logger.info(f"✓ Backup created: {month} {year} ({len(snapshots)} habits)")
        return result

    def years_available(self) -> List[int]:
        """Distinct years that have at least one backup, ascending"""
        return sorted({b.year for b in self._records})
