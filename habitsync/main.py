from fastapi import FastAPI, Depends, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from typing import Dict, List
import logging
from pathlib import Path

from habitsync.database import engine, Base
from habitsync import models  # Register the documents table with Base
from habitsync.constants import (
    CORS_ALLOWED_ORIGINS,
    DAYS_IN_SCOPE,
    DEFAULT_LOG_DIRECTORY_DEV,
    LOG_DIRECTORY,
    LOG_FILE,
    MAX_HABITS_PER_SCOPE,
)
from habitsync.exceptions import (
    HabitCapReachedException,
    HabitNotFoundException,
    InvalidScopeException,
)
from habitsync.schemas import (
    Backup,
    DailyStat,
    Habit,
    HabitCreate,
    HabitProgressRow,
    HabitUpdate,
    MonthSummary,
    MoodPoint,
    MutationResult,
    ScopeResponse,
    ScopeUpdate,
    StatusTotals,
    YearlyResponse,
)
from habitsync.services import analytics_service as analytics
from habitsync.services import cap_policy
from habitsync.services.backup_store import BackupStore
from habitsync.services.date_service import DateService
from habitsync.services.habit_store import HabitRecordStore
from habitsync.services.sql_collection_client import SqlCollectionClient

# Configure logging
try:
    Path(LOG_DIRECTORY).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIRECTORY) / LOG_FILE
except PermissionError:
    # Fallback to local directory if no permissions for /var/log
    Path(DEFAULT_LOG_DIRECTORY_DEV).mkdir(parents=True, exist_ok=True)
    log_path = Path(DEFAULT_LOG_DIRECTORY_DEV) / LOG_FILE

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(log_path),
        logging.StreamHandler()  # Also log to console
    ]
)

logger = logging.getLogger("habitsync.api")

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Habit Sync API",
    description="Monthly habit checklists with live sync and analytics",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    client = SqlCollectionClient()
    app.state.habit_store = HabitRecordStore(client)
    app.state.backup_store = BackupStore(client)

    scope = DateService.current_scope()
    await app.state.habit_store.set_scope(scope.month, scope.year)
    await app.state.backup_store.subscribe()
    logger.info(f"Habit Sync API started. Logging to: {log_path}")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down Habit Sync API")
    await app.state.habit_store.close()
    await app.state.backup_store.close()


def get_habit_store(request: Request) -> HabitRecordStore:
    return request.app.state.habit_store


def get_backup_store(request: Request) -> BackupStore:
    return request.app.state.backup_store


def _raise_on_failure(result: MutationResult) -> MutationResult:
    """Surface a failed collaborator call as 502 so the client can retry"""
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.error)
    return result


def _require_habit(store: HabitRecordStore, habit_id: str) -> Habit:
    habit = store.get_visible(habit_id)
    if habit is None:
        raise HTTPException(status_code=404, detail=str(HabitNotFoundException(habit_id)))
    return habit


def _scope_response(store: HabitRecordStore) -> dict:
    scope = store.scope
    return {
        "month": scope.month if scope else None,
        "year": scope.year if scope else None,
        "state": store.state.value,
        "loading": store.loading,
        "habit_count": len(store.habits),
        "cap": MAX_HABITS_PER_SCOPE,
    }


# Health check
@app.get("/")
async def root():
    return {"message": "Habit Sync API", "status": "active"}


# Scope
@app.get("/api/scope", response_model=ScopeResponse)
async def get_scope(store: HabitRecordStore = Depends(get_habit_store)):
    """Get the scope the habit projection is bound to"""
    return _scope_response(store)


@app.put("/api/scope", response_model=ScopeResponse)
async def set_scope(scope: ScopeUpdate, store: HabitRecordStore = Depends(get_habit_store)):
    """Switch to another month/year"""
    try:
        await store.set_scope(scope.month, scope.year)
    except InvalidScopeException as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _scope_response(store)


@app.post("/api/scope/previous", response_model=ScopeResponse)
async def previous_scope(store: HabitRecordStore = Depends(get_habit_store)):
    """Go back one month"""
    target = DateService.previous_scope(store.scope)
    await store.set_scope(target.month, target.year)
    return _scope_response(store)


@app.post("/api/scope/next", response_model=ScopeResponse)
async def next_scope(store: HabitRecordStore = Depends(get_habit_store)):
    """Go forward one month"""
    target = DateService.next_scope(store.scope)
    await store.set_scope(target.month, target.year)
    return _scope_response(store)


# Habits
@app.get("/api/habits", response_model=List[Habit])
async def get_habits(store: HabitRecordStore = Depends(get_habit_store)):
    """Get the visible habits of the current scope"""
    return store.visible_habits()


@app.post("/api/habits", response_model=MutationResult, status_code=status.HTTP_201_CREATED)
async def create_habit(habit: HabitCreate, store: HabitRecordStore = Depends(get_habit_store)):
    """Create a habit in the current scope (up to the per-month cap)"""
    try:
        cap_policy.ensure_can_add(len(store.visible_habits()))
    except HabitCapReachedException as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    # New habits always land in the scope being viewed
    payload = habit.model_copy(update={"month": store.scope.month, "year": store.scope.year})
    return _raise_on_failure(await store.add(payload))


@app.patch("/api/habits/{habit_id}", response_model=MutationResult)
async def update_habit(
    habit_id: str,
    habit_update: HabitUpdate,
    store: HabitRecordStore = Depends(get_habit_store)
):
    """Edit title, color, order, streak or checks"""
    _require_habit(store, habit_id)
    fields = habit_update.model_dump(exclude_unset=True, by_alias=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    return _raise_on_failure(await store.update(habit_id, fields))


@app.delete("/api/habits/{habit_id}", response_model=MutationResult)
async def delete_habit(habit_id: str, store: HabitRecordStore = Depends(get_habit_store)):
    """Delete a habit permanently"""
    _require_habit(store, habit_id)
    return _raise_on_failure(await store.remove(habit_id))


@app.delete("/api/habits", response_model=List[MutationResult])
async def clear_habits(store: HabitRecordStore = Depends(get_habit_store)):
    """Delete every visible habit of the current scope"""
    return await store.clear_all()


@app.post("/api/habits/{habit_id}/checks/{day_index}", response_model=MutationResult)
async def toggle_check(habit_id: str, day_index: int, store: HabitRecordStore = Depends(get_habit_store)):
    """Flip one day (0-based) of a habit"""
    _require_habit(store, habit_id)
    if not 0 <= day_index < DAYS_IN_SCOPE:
        raise HTTPException(status_code=400, detail=f"day_index must be between 0 and {DAYS_IN_SCOPE - 1}")
    return _raise_on_failure(await store.toggle_check(habit_id, day_index))


# Monthly analytics
@app.get("/api/analytics/daily", response_model=List[DailyStat])
async def get_daily_stats(store: HabitRecordStore = Depends(get_habit_store)):
    return analytics.daily_stats(store.visible_habits())


@app.get("/api/analytics/progress", response_model=List[HabitProgressRow])
async def get_habit_progress(store: HabitRecordStore = Depends(get_habit_store)):
    return analytics.habit_progress_rows(store.visible_habits())


@app.get("/api/analytics/summary", response_model=MonthSummary)
async def get_month_summary(store: HabitRecordStore = Depends(get_habit_store)):
    return analytics.month_summary(store.visible_habits())


@app.get("/api/analytics/mood", response_model=List[MoodPoint])
async def get_mood_series(store: HabitRecordStore = Depends(get_habit_store)):
    return analytics.mood_series(analytics.daily_stats(store.visible_habits()))


# Dashboard analytics (whole projection)
@app.get("/api/analytics/categories", response_model=Dict[str, int])
async def get_category_breakdown(store: HabitRecordStore = Depends(get_habit_store)):
    return analytics.category_breakdown(store.habits)


@app.get("/api/analytics/priorities", response_model=Dict[str, int])
async def get_priority_buckets(
    include_empty: bool = False,
    store: HabitRecordStore = Depends(get_habit_store)
):
    buckets = analytics.priority_buckets(store.habits)
    return buckets if include_empty else analytics.non_empty(buckets)


@app.get("/api/analytics/status", response_model=StatusTotals)
async def get_status_totals(store: HabitRecordStore = Depends(get_habit_store)):
    return analytics.status_totals(store.habits)


# Backups
@app.get("/api/backups", response_model=List[Backup])
async def get_backups(store: BackupStore = Depends(get_backup_store)):
    """Get all backups (newest first)"""
    return list(store.backups)


@app.post("/api/backups", response_model=MutationResult, status_code=status.HTTP_201_CREATED)
async def create_backup(
    habit_store: HabitRecordStore = Depends(get_habit_store),
    backup_store: BackupStore = Depends(get_backup_store)
):
    """Snapshot the visible habits of the current scope"""
    scope = habit_store.scope
    result = await backup_store.create_backup(scope.month, scope.year, habit_store.visible_habits())
    return _raise_on_failure(result)


@app.get("/api/backups/years", response_model=List[int])
async def get_backup_years(store: BackupStore = Depends(get_backup_store)):
    return store.years_available()


@app.get("/api/analytics/yearly/{year}", response_model=YearlyResponse)
async def get_yearly_analytics(year: int, store: BackupStore = Depends(get_backup_store)):
    """Per-month and whole-year totals built from backups"""
    backups = store.backups
    return {
        "year": year,
        "months": analytics.yearly_aggregate(backups, year),
        "totals": analytics.overall_year_totals(backups, year),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("habitsync.main:app", host="0.0.0.0", port=8000, reload=False)
