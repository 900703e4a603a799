"""Personal records and lifetime stats."""

from datetime import date, timedelta

from fastapi import APIRouter, Depends

from app.api.deps import get_engine
from app.core.enums import StatsPeriod
from app.schemas.pr import BestLift, LifetimeStats, PersonalRecord
from app.services.clock import now_datetime
from app.services.pr_detection import best_lift, count_prs_in_period, current_records
from app.services.session_store import SessionStore
from app.services.workout_comparison import PERIOD_DAYS, lifetime_stats

router = APIRouter()


def _today(engine: SessionStore) -> date:
    return now_datetime(engine.clock).date()


@router.get("", response_model=list[PersonalRecord])
async def list_records(engine: SessionStore = Depends(get_engine)):
    """Current best per exercise."""
    return sorted(current_records(engine.records).values(), key=lambda r: r.exercise_name)


@router.get("/all", response_model=list[PersonalRecord])
async def list_all_records(engine: SessionStore = Depends(get_engine)):
    """Every record ever set, superseded ones included, newest last."""
    return engine.records


@router.get("/trophy-room")
async def pr_trophy_room(
    period: StatsPeriod = StatsPeriod.MONTH,
    engine: SessionStore = Depends(get_engine),
):
    """
    Number of exercises whose best estimated 1RM went up in the period.
    period=week: last 7 days; period=month: last 30 days; period=all: every exercise ever logged.
    """
    today = _today(engine)
    if period == StatsPeriod.ALL:
        start, end = None, None
    else:
        start, end = today - timedelta(days=PERIOD_DAYS[period]), today + timedelta(days=1)
    return {
        "period": period.value,
        "from": start.isoformat() if start else None,
        "to": today.isoformat(),
        "count": count_prs_in_period(engine.history, start, end),
    }


@router.get("/best-lift", response_model=BestLift | None)
async def get_best_lift(engine: SessionStore = Depends(get_engine)):
    return best_lift(engine.history)


@router.get("/stats", response_model=LifetimeStats)
async def get_lifetime_stats(
    period: StatsPeriod = StatsPeriod.ALL,
    engine: SessionStore = Depends(get_engine),
):
    return lifetime_stats(engine.history, period, _today(engine))
