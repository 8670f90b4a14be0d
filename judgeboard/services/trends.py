"""Team score history, trend classification and leaderboard position history."""

import logging
from datetime import datetime, timedelta
from typing import Optional, Sequence

from judgeboard.core.config import settings
from judgeboard.core.metrics import TREND_QUERIES_TOTAL
from judgeboard.schemas import (
    PositionHistory,
    ScoreHistory,
    ScoreHistoryEntry,
    ScoreTrend,
    ScoreTrendPoint,
    Submission,
    TrendDirection,
)
from judgeboard.services.aggregation import aggregate_scores
from judgeboard.services.stores import EventLookup, ScoreStore, SnapshotStore, SubmissionStore
from judgeboard.utils.time import utcnow

logger = logging.getLogger(__name__)


def within(submission: Submission, start_date: Optional[datetime], end_date: Optional[datetime]) -> bool:
    # Both boundaries are exclusive
    if start_date is not None and not submission.created_at > start_date:
        return False
    if end_date is not None and not submission.created_at < end_date:
        return False
    return True


def trend_direction(scores: Sequence[float]) -> TrendDirection:
    """Majority vote over consecutive pairs; equal counts are stable."""
    ups = downs = 0
    for previous, current in zip(scores, scores[1:]):
        if current > previous:
            ups += 1
        elif current < previous:
            downs += 1
    if ups > downs:
        return TrendDirection.UPWARD
    if downs > ups:
        return TrendDirection.DOWNWARD
    return TrendDirection.STABLE


def percent_change(scores: Sequence[float]) -> float:
    if len(scores) < 2 or scores[0] == 0:
        return 0.0
    return (scores[-1] - scores[0]) / scores[0] * 100


class TrendService:
    def __init__(
        self,
        score_store: ScoreStore,
        submission_store: SubmissionStore,
        event_lookup: EventLookup,
        snapshot_store: Optional[SnapshotStore] = None,
    ):
        self.score_store = score_store
        self.submission_store = submission_store
        self.event_lookup = event_lookup
        self.snapshot_store = snapshot_store

    async def get_team_score_history(
        self,
        team_id: str,
        group_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> ScoreHistory:
        """Per-submission scores for a team, oldest first.

        ``limit`` keeps the most recent submissions; the cut happens before
        any score is read.
        """
        TREND_QUERIES_TOTAL.labels(kind="history").inc()
        submissions = await self.submission_store.get_by_team_id(team_id)

        selected = sorted(
            (s for s in submissions if within(s, start_date, end_date)),
            key=lambda s: s.effective_time,
        )
        if limit is not None:
            selected = selected[-limit:] if limit > 0 else []

        scores_by_submission = await self.score_store.get_by_submission_ids([s.id for s in selected])

        event_names: dict[str, str] = {}
        entries = []
        for submission in selected:
            if submission.event_id not in event_names:
                event = await self.event_lookup.get_event_by_id(submission.event_id)
                event_names[submission.event_id] = event.title if event else settings.UNKNOWN_EVENT_NAME

            aggregation = aggregate_scores(submission.id, scores_by_submission.get(submission.id, []))
            entries.append(
                ScoreHistoryEntry(
                    submission_id=submission.id,
                    event_id=submission.event_id,
                    event_name=event_names[submission.event_id],
                    score=aggregation.average_score,
                    total_score=aggregation.total_score,
                    judge_count=aggregation.judge_count,
                    criteria_scores=aggregation.criteria_averages,
                    submitted_at=submission.effective_time,
                )
            )

        logger.debug(
            "team_history_loaded",
            extra={"team_id": team_id, "submissions": len(submissions), "entries": len(entries)},
        )
        return ScoreHistory(
            team_id=team_id,
            entries=entries,
            calculated_at=utcnow(),
            metadata={
                "group_id": group_id,
                "total_submissions": len(submissions),
                "filtered_submissions": len(selected),
                "date_range": {
                    "start": start_date.isoformat() if start_date else None,
                    "end": end_date.isoformat() if end_date else None,
                },
            },
        )

    async def get_team_score_trend(
        self,
        team_id: str,
        group_id: Optional[str] = None,
        period: Optional[timedelta] = None,
        data_points: Optional[int] = None,
    ) -> ScoreTrend:
        TREND_QUERIES_TOTAL.labels(kind="trend").inc()
        history = await self.get_team_score_history(
            team_id,
            group_id=group_id,
            start_date=utcnow() - period if period is not None else None,
            limit=data_points,
        )
        period_days = period.days if period is not None else None

        if not history.entries:
            return ScoreTrend(
                team_id=team_id,
                calculated_at=utcnow(),
                metadata={"period_days": period_days, "total_data_points": 0},
            )

        scores = [entry.score for entry in history.entries]
        points = [
            ScoreTrendPoint(
                timestamp=entry.submitted_at,
                score=entry.score,
                event_name=entry.event_name,
                submission_id=entry.submission_id,
            )
            for entry in history.entries
        ]
        return ScoreTrend(
            team_id=team_id,
            direction=trend_direction(scores),
            percent_change=percent_change(scores),
            average_score=sum(scores) / len(scores),
            data_points=points,
            calculated_at=utcnow(),
            metadata={
                "period_days": period_days,
                "total_data_points": len(points),
                "highest_score": max(scores),
                "lowest_score": min(scores),
            },
        )

    async def get_team_position_history(
        self,
        team_id: str,
        event_id: Optional[str] = None,
        period: Optional[timedelta] = None,
    ) -> PositionHistory:
        """Positions recorded in persisted leaderboard snapshots, oldest first."""
        TREND_QUERIES_TOTAL.labels(kind="positions").inc()
        if self.snapshot_store is None:
            return PositionHistory(team_id=team_id, calculated_at=utcnow())

        since = utcnow() - period if period is not None else None
        points = await self.snapshot_store.get_team_positions(team_id, event_id=event_id, since=since)
        return PositionHistory(
            team_id=team_id,
            entries=sorted(points, key=lambda p: p.calculated_at),
            calculated_at=utcnow(),
        )
