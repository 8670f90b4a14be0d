from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query

from judgeboard.api.deps import get_services, http_errors
from judgeboard.schemas import PositionHistory, ScoreHistory, ScoreTrend
from judgeboard.services.factory import Services
from judgeboard.utils.time import as_naive_utc

router = APIRouter()


@router.get("/{team_id}/score-history", response_model=ScoreHistory)
async def score_history(
    team_id: str,
    group_id: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None, description="Exclusive lower bound on creation time"),
    end_date: Optional[datetime] = Query(None, description="Exclusive upper bound on creation time"),
    limit: Optional[int] = Query(None, ge=1, le=1000, description="Most recent N submissions"),
    services: Services = Depends(get_services),
):
    with http_errors(team_id=team_id):
        return await services.trends.get_team_score_history(
            team_id,
            group_id=group_id,
            start_date=as_naive_utc(start_date),
            end_date=as_naive_utc(end_date),
            limit=limit,
        )


@router.get("/{team_id}/score-trend", response_model=ScoreTrend)
async def score_trend(
    team_id: str,
    group_id: Optional[str] = Query(None),
    period_days: Optional[int] = Query(None, ge=1, le=3650),
    data_points: Optional[int] = Query(None, ge=1, le=1000),
    services: Services = Depends(get_services),
):
    period = timedelta(days=period_days) if period_days else None
    with http_errors(team_id=team_id):
        return await services.trends.get_team_score_trend(
            team_id, group_id=group_id, period=period, data_points=data_points
        )


@router.get("/{team_id}/position-history", response_model=PositionHistory)
async def position_history(
    team_id: str,
    event_id: Optional[str] = Query(None),
    period_days: Optional[int] = Query(None, ge=1, le=3650),
    services: Services = Depends(get_services),
):
    period = timedelta(days=period_days) if period_days else None
    with http_errors(team_id=team_id, event_id=event_id):
        return await services.trends.get_team_position_history(team_id, event_id=event_id, period=period)
