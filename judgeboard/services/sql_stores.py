"""SQLAlchemy-backed implementations of the store protocols.

Each call opens its own session and runs the blocking query in FastAPI's
threadpool, so the stores are safe to share between requests, the realtime
watcher and Celery tasks. ORM rows never leave this module; callers get the
frozen pydantic schemas.
"""

import logging
import uuid
from datetime import datetime
from typing import AsyncIterator, Callable, Optional, Sequence, TypeVar

import redis.asyncio as aioredis
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from judgeboard import models
from judgeboard.core.config import settings
from judgeboard.core.errors import DataAccessError, NotFoundError
from judgeboard.db.session import SessionLocal
from judgeboard.schemas import (
    EventInfo,
    Leaderboard,
    MemberInfo,
    PositionPoint,
    Score,
    ScoringRubric,
    Submission,
    TeamInfo,
    dump_values,
)
from judgeboard.services.realtime import SUBMISSION_CHANNEL, redis_notifications
from judgeboard.utils.time import utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SqlStore:
    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory

    def _execute(self, work: Callable[[Session], T]) -> T:
        db = self.session_factory()
        try:
            return work(db)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(
                "database_query_failed",
                extra={"store": type(self).__name__, "error": str(e)},
            )
            raise DataAccessError(str(e)) from e
        finally:
            db.close()

    async def _run(self, work: Callable[[Session], T]) -> T:
        return await run_in_threadpool(self._execute, work)


def score_from_row(row: models.Score) -> Score:
    return Score(
        id=row.id,
        submission_id=row.submission_id,
        judge_id=row.judge_id,
        event_id=row.event_id,
        values=row.criterion_values or {},
        comments=row.comments,
        total_score=row.total_score,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlScoreStore(SqlStore):
    def __init__(self, session_factory: sessionmaker = SessionLocal, redis_client: Optional[aioredis.Redis] = None):
        super().__init__(session_factory)
        self.redis_client = redis_client

    async def create(self, score: Score) -> Score:
        def work(db: Session) -> Score:
            row = models.Score(
                id=score.id,
                submission_id=score.submission_id,
                judge_id=score.judge_id,
                event_id=score.event_id,
                criterion_values=dump_values(score.values),
                comments=score.comments,
                total_score=score.total_score,
                created_at=score.created_at,
                updated_at=score.updated_at,
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return score_from_row(row)

        return await self._run(work)

    async def update(self, score: Score) -> Score:
        def work(db: Session) -> Score:
            row = db.get(models.Score, score.id)
            if row is None:
                raise NotFoundError("Score", score.id)
            row.criterion_values = dump_values(score.values)
            row.comments = score.comments
            row.total_score = score.total_score
            row.updated_at = score.updated_at
            db.commit()
            db.refresh(row)
            return score_from_row(row)

        return await self._run(work)

    async def get_by_submission_id(self, submission_id: str) -> list[Score]:
        def work(db: Session) -> list[Score]:
            rows = (
                db.query(models.Score)
                .filter(models.Score.submission_id == submission_id)
                .order_by(models.Score.created_at.asc())
                .all()
            )
            return [score_from_row(r) for r in rows]

        return await self._run(work)

    async def get_by_submission_and_judge(self, submission_id: str, judge_id: str) -> Optional[Score]:
        def work(db: Session) -> Optional[Score]:
            row = (
                db.query(models.Score)
                .filter(models.Score.submission_id == submission_id)
                .filter(models.Score.judge_id == judge_id)
                .first()
            )
            return score_from_row(row) if row else None

        return await self._run(work)

    async def get_by_submission_ids(self, submission_ids: Sequence[str]) -> dict[str, list[Score]]:
        ids = list(submission_ids)
        if not ids:
            return {}

        def work(db: Session) -> dict[str, list[Score]]:
            rows = (
                db.query(models.Score)
                .filter(models.Score.submission_id.in_(ids))
                .order_by(models.Score.created_at.asc())
                .all()
            )
            grouped: dict[str, list[Score]] = {}
            for row in rows:
                grouped.setdefault(row.submission_id, []).append(score_from_row(row))
            return grouped

        return await self._run(work)

    async def get_by_event_id(self, event_id: str) -> list[Score]:
        def work(db: Session) -> list[Score]:
            rows = db.query(models.Score).filter(models.Score.event_id == event_id).all()
            return [score_from_row(r) for r in rows]

        return await self._run(work)

    def stream_by_submission_id(self, submission_id: str) -> AsyncIterator[dict]:
        if self.redis_client is None:
            self.redis_client = aioredis.from_url(settings.REDIS_URL)
        return redis_notifications(self.redis_client, SUBMISSION_CHANNEL.format(submission_id=submission_id))


class SqlSubmissionStore(SqlStore):
    async def get_by_id(self, submission_id: str) -> Optional[Submission]:
        def work(db: Session) -> Optional[Submission]:
            row = db.get(models.Submission, submission_id)
            return Submission.model_validate(row) if row else None

        return await self._run(work)

    async def get_by_event_id(self, event_id: str) -> list[Submission]:
        def work(db: Session) -> list[Submission]:
            rows = db.query(models.Submission).filter(models.Submission.event_id == event_id).all()
            return [Submission.model_validate(r) for r in rows]

        return await self._run(work)

    async def get_by_team_id(self, team_id: str) -> list[Submission]:
        def work(db: Session) -> list[Submission]:
            rows = db.query(models.Submission).filter(models.Submission.team_id == team_id).all()
            return [Submission.model_validate(r) for r in rows]

        return await self._run(work)


def _rubric_row(rubric: ScoringRubric) -> models.ScoringRubric:
    return models.ScoringRubric(
        id=rubric.id,
        name=rubric.name,
        description=rubric.description,
        criteria=[c.model_dump(mode="json") for c in rubric.criteria],
        event_id=rubric.event_id,
        group_id=rubric.group_id,
        is_template=rubric.is_template,
        created_by=rubric.created_by,
        created_at=rubric.created_at,
        updated_at=rubric.updated_at,
    )


class SqlRubricStore(SqlStore):
    async def create(self, rubric: ScoringRubric) -> ScoringRubric:
        def work(db: Session) -> ScoringRubric:
            row = _rubric_row(rubric)
            db.add(row)
            db.commit()
            db.refresh(row)
            return ScoringRubric.model_validate(row)

        return await self._run(work)

    async def get_by_id(self, rubric_id: str) -> Optional[ScoringRubric]:
        def work(db: Session) -> Optional[ScoringRubric]:
            row = db.get(models.ScoringRubric, rubric_id)
            return ScoringRubric.model_validate(row) if row else None

        return await self._run(work)

    async def get_rubrics_paginated(
        self,
        event_id: Optional[str] = None,
        group_id: Optional[str] = None,
        is_template: Optional[bool] = None,
        limit: int = 20,
    ) -> list[ScoringRubric]:
        def work(db: Session) -> list[ScoringRubric]:
            q = db.query(models.ScoringRubric)
            if event_id is not None:
                q = q.filter(models.ScoringRubric.event_id == event_id)
            if group_id is not None:
                q = q.filter(models.ScoringRubric.group_id == group_id)
            if is_template is not None:
                q = q.filter(models.ScoringRubric.is_template == is_template)
            rows = q.order_by(models.ScoringRubric.created_at.desc()).limit(limit).all()
            return [ScoringRubric.model_validate(r) for r in rows]

        return await self._run(work)

    async def clone(self, rubric_id: str, **overrides) -> ScoringRubric:
        def work(db: Session) -> ScoringRubric:
            row = db.get(models.ScoringRubric, rubric_id)
            if row is None:
                raise NotFoundError("Rubric", rubric_id)
            now = utcnow()
            source = ScoringRubric.model_validate(row)
            copy = source.model_copy(
                update={**overrides, "id": str(uuid.uuid4()), "created_at": now, "updated_at": now}
            )
            new_row = _rubric_row(copy)
            db.add(new_row)
            db.commit()
            db.refresh(new_row)
            return ScoringRubric.model_validate(new_row)

        return await self._run(work)


class SqlDirectory(SqlStore):
    """Team, event and member name lookups."""

    async def get_team_by_id(self, team_id: str) -> Optional[TeamInfo]:
        def work(db: Session) -> Optional[TeamInfo]:
            row = db.get(models.Team, team_id)
            return TeamInfo.model_validate(row) if row else None

        return await self._run(work)

    async def get_event_by_id(self, event_id: str) -> Optional[EventInfo]:
        def work(db: Session) -> Optional[EventInfo]:
            row = db.get(models.Event, event_id)
            return EventInfo.model_validate(row) if row else None

        return await self._run(work)

    async def get_member_by_id(self, member_id: str) -> Optional[MemberInfo]:
        def work(db: Session) -> Optional[MemberInfo]:
            row = db.get(models.Member, member_id)
            return MemberInfo.model_validate(row) if row else None

        return await self._run(work)


def snapshot_rows(leaderboard: Leaderboard) -> list[models.LeaderboardSnapshot]:
    count = len(leaderboard.entries)
    return [
        models.LeaderboardSnapshot(
            id=str(uuid.uuid4()),
            leaderboard_id=leaderboard.id,
            event_id=leaderboard.event_id,
            kind=leaderboard.kind.value,
            entity_id=entry.entity_id,
            entity_name=entry.display_name,
            position=entry.position,
            average_score=entry.average_score,
            total_score=entry.total_score,
            submission_count=entry.submission_count,
            entry_count=count,
            calculated_at=leaderboard.calculated_at,
        )
        for entry in leaderboard.entries
    ]


class SqlSnapshotStore(SqlStore):
    async def save(self, leaderboard: Leaderboard) -> int:
        def work(db: Session) -> int:
            rows = snapshot_rows(leaderboard)
            db.add_all(rows)
            db.commit()
            return len(rows)

        return await self._run(work)

    async def get_team_positions(
        self,
        team_id: str,
        event_id: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> list[PositionPoint]:
        def work(db: Session) -> list[PositionPoint]:
            q = (
                db.query(models.LeaderboardSnapshot)
                .filter(models.LeaderboardSnapshot.entity_id == team_id)
                .filter(models.LeaderboardSnapshot.kind == "team")
            )
            if event_id is not None:
                q = q.filter(models.LeaderboardSnapshot.event_id == event_id)
            if since is not None:
                q = q.filter(models.LeaderboardSnapshot.calculated_at >= since)
            rows = q.order_by(models.LeaderboardSnapshot.calculated_at.asc()).all()
            return [
                PositionPoint(
                    calculated_at=r.calculated_at,
                    event_id=r.event_id,
                    position=r.position,
                    average_score=r.average_score,
                    entry_count=r.entry_count,
                )
                for r in rows
            ]

        return await self._run(work)

    async def prune(self, before: datetime) -> int:
        """Delete snapshot rows calculated before ``before``; returns the row count."""

        def work(db: Session) -> int:
            deleted = (
                db.query(models.LeaderboardSnapshot)
                .filter(models.LeaderboardSnapshot.calculated_at < before)
                .delete(synchronize_session=False)
            )
            db.commit()
            return deleted

        return await self._run(work)
