import logging
from typing import AsyncIterator, Callable, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from judgeboard.api.deps import get_notification_source, get_services, http_errors
from judgeboard.core.metrics import LEADERBOARD_QUERIES_TOTAL
from judgeboard.schemas import (
    Leaderboard,
    LeaderboardFilter,
    LeaderboardKind,
    LeaderboardSort,
    LeaderboardSortField,
)
from judgeboard.services.factory import Services
from judgeboard.services.realtime import LeaderboardWatcher

logger = logging.getLogger(__name__)

router = APIRouter()


class LeaderboardQuery:
    """Shared filter/sort/pagination query parameters."""

    def __init__(
        self,
        min_score: Optional[float] = Query(None, description="Minimum average score, inclusive"),
        max_score: Optional[float] = Query(None, description="Maximum average score, inclusive"),
        min_submissions: Optional[int] = Query(None, ge=0),
        team_ids: Optional[list[str]] = Query(None, description="Only these team (or member) ids"),
        top_n: Optional[int] = Query(None, ge=0, description="Keep the first N after filtering"),
        sort: Optional[LeaderboardSortField] = Query(None),
        ascending: bool = Query(False),
        limit: Optional[int] = Query(None, ge=0, le=1000),
        offset: Optional[int] = Query(None, ge=0),
    ):
        self.filter = None
        if any(v is not None for v in (min_score, max_score, min_submissions, team_ids, top_n)):
            self.filter = LeaderboardFilter(
                min_score=min_score,
                max_score=max_score,
                min_submissions=min_submissions,
                team_ids=frozenset(team_ids) if team_ids is not None else None,
                top_n=top_n,
            )
        self.sort = LeaderboardSort(field=sort, ascending=ascending) if sort is not None else None
        self.limit = limit
        self.offset = offset

    @property
    def sort_label(self) -> str:
        if self.sort is None:
            return "default"
        return f"{self.sort.field.value}_{'asc' if self.sort.ascending else 'desc'}"


async def _leaderboard(event_id: str, kind: LeaderboardKind, query: LeaderboardQuery, services: Services):
    LEADERBOARD_QUERIES_TOTAL.labels(kind=kind.value, sort=query.sort_label).inc()
    with http_errors(event_id=event_id):
        return await services.calculator.get_filtered_leaderboard(
            event_id,
            filter=query.filter,
            sort=query.sort,
            limit=query.limit,
            offset=query.offset,
            kind=kind,
        )


@router.get("/{event_id}", response_model=Leaderboard)
async def team_leaderboard(
    event_id: str,
    query: LeaderboardQuery = Depends(),
    services: Services = Depends(get_services),
):
    """Team rankings for an event, recomputed from the current scores."""
    return await _leaderboard(event_id, LeaderboardKind.TEAM, query, services)


@router.get("/{event_id}/individual", response_model=Leaderboard)
async def individual_leaderboard(
    event_id: str,
    query: LeaderboardQuery = Depends(),
    services: Services = Depends(get_services),
):
    return await _leaderboard(event_id, LeaderboardKind.INDIVIDUAL, query, services)


@router.get("/{event_id}/stream")
async def stream_leaderboard(
    event_id: str,
    kind: LeaderboardKind = Query(LeaderboardKind.TEAM),
    services: Services = Depends(get_services),
    notification_source: Callable[[str], AsyncIterator] = Depends(get_notification_source),
):
    """Server-sent events: the current leaderboard, then one update per burst of score changes."""
    watcher = LeaderboardWatcher(
        compute=lambda: services.calculator.calculate(event_id, kind),
        notifications=notification_source(event_id),
    )

    async def events():
        logger.info("leaderboard_stream_opened", extra={"event_id": event_id})
        try:
            async for leaderboard in watcher:
                yield f"event: leaderboard\ndata: {leaderboard.model_dump_json()}\n\n"
        finally:
            logger.info("leaderboard_stream_closed", extra={"event_id": event_id})

    return StreamingResponse(events(), media_type="text/event-stream")


@router.post("/{event_id}/snapshot", status_code=202)
def request_snapshot(event_id: str):
    """Queue a persisted snapshot of the team leaderboard (feeds position history)."""
    from judgeboard.core.celery import snapshot_leaderboard_task

    task = snapshot_leaderboard_task.delay(event_id)
    logger.info("leaderboard_snapshot_queued", extra={"event_id": event_id, "task_id": task.id})
    return {"event_id": event_id, "task_id": task.id, "status": "queued"}
