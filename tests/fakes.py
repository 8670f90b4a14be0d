"""In-memory stores implementing the store protocols, plus record builders."""

import asyncio
import uuid
from datetime import datetime, timedelta
from typing import Optional, Sequence

from judgeboard.core.errors import DataAccessError, NotFoundError
from judgeboard.schemas import (
    EventInfo,
    Leaderboard,
    MemberInfo,
    PositionPoint,
    Score,
    ScoringCriterion,
    ScoringRubric,
    Submission,
    SubmissionStatus,
    TeamInfo,
)

T0 = datetime(2024, 1, 1, 12, 0, 0)


def make_submission(
    submission_id: str,
    team_id: str = "team-a",
    status: SubmissionStatus = SubmissionStatus.SUBMITTED,
    event_id: str = "event-1",
    submitted_by: str = "member-1",
    created_at: Optional[datetime] = None,
    submitted_at: Optional[datetime] = None,
) -> Submission:
    return Submission(
        id=submission_id,
        event_id=event_id,
        team_id=team_id,
        submitted_by=submitted_by,
        status=status,
        created_at=created_at or T0,
        submitted_at=submitted_at,
    )


def make_score(
    submission_id: str,
    judge_id: str,
    total: Optional[float] = None,
    values: Optional[dict] = None,
    comments: Optional[str] = None,
    event_id: str = "event-1",
    updated_at: Optional[datetime] = None,
) -> Score:
    return Score(
        id=str(uuid.uuid4()),
        submission_id=submission_id,
        judge_id=judge_id,
        event_id=event_id,
        values=values or {},
        comments=comments,
        total_score=total,
        created_at=T0,
        updated_at=updated_at or T0,
    )


def make_rubric(rubric_id: str = "rubric-1", **overrides) -> ScoringRubric:
    fields = dict(
        id=rubric_id,
        name="Hackathon",
        description="Default judging rubric",
        criteria=[
            ScoringCriterion(key="innovation", name="Innovation", max_score=100, weight=2),
            ScoringCriterion(key="execution", name="Execution", max_score=100, weight=1),
            ScoringCriterion(key="demo", name="Live demo", type="boolean", required=False),
        ],
        created_by="organizer",
        created_at=T0,
        updated_at=T0,
    )
    fields.update(overrides)
    return ScoringRubric(**fields)


class Failing:
    """Mixin: set ``error`` to make every call raise it."""

    error: Optional[Exception] = None

    def _check(self):
        if self.error is not None:
            raise self.error


class FakeScoreStore(Failing):
    def __init__(self, scores: Sequence[Score] = ()):
        self.scores: dict[str, Score] = {s.id: s for s in scores}
        self.calls: list[str] = []

    def add(self, *scores: Score) -> None:
        for score in scores:
            self.scores[score.id] = score

    async def create(self, score: Score) -> Score:
        self._check()
        for existing in self.scores.values():
            if (existing.submission_id, existing.judge_id) == (score.submission_id, score.judge_id):
                raise DataAccessError("duplicate score for submission and judge")
        self.scores[score.id] = score
        return score

    async def update(self, score: Score) -> Score:
        self._check()
        if score.id not in self.scores:
            raise NotFoundError("Score", score.id)
        self.scores[score.id] = score
        return score

    async def get_by_submission_id(self, submission_id: str) -> list[Score]:
        self._check()
        self.calls.append("get_by_submission_id")
        return [s for s in self.scores.values() if s.submission_id == submission_id]

    async def get_by_submission_and_judge(self, submission_id: str, judge_id: str) -> Optional[Score]:
        self._check()
        for s in self.scores.values():
            if s.submission_id == submission_id and s.judge_id == judge_id:
                return s
        return None

    async def get_by_submission_ids(self, submission_ids: Sequence[str]) -> dict[str, list[Score]]:
        self._check()
        self.calls.append("get_by_submission_ids")
        grouped: dict[str, list[Score]] = {}
        for s in self.scores.values():
            if s.submission_id in submission_ids:
                grouped.setdefault(s.submission_id, []).append(s)
        return grouped

    async def get_by_event_id(self, event_id: str) -> list[Score]:
        self._check()
        return [s for s in self.scores.values() if s.event_id == event_id]

    async def stream_by_submission_id(self, submission_id: str):
        return
        yield


class FakeSubmissionStore(Failing):
    def __init__(self, submissions: Sequence[Submission] = ()):
        self.submissions = {s.id: s for s in submissions}

    def add(self, *submissions: Submission) -> None:
        for submission in submissions:
            self.submissions[submission.id] = submission

    async def get_by_id(self, submission_id: str) -> Optional[Submission]:
        self._check()
        return self.submissions.get(submission_id)

    async def get_by_event_id(self, event_id: str) -> list[Submission]:
        self._check()
        return [s for s in self.submissions.values() if s.event_id == event_id]

    async def get_by_team_id(self, team_id: str) -> list[Submission]:
        self._check()
        return [s for s in self.submissions.values() if s.team_id == team_id]


class FakeRubricStore(Failing):
    def __init__(self, rubrics: Sequence[ScoringRubric] = ()):
        self.rubrics = {r.id: r for r in rubrics}

    async def create(self, rubric: ScoringRubric) -> ScoringRubric:
        self._check()
        self.rubrics[rubric.id] = rubric
        return rubric

    async def get_by_id(self, rubric_id: str) -> Optional[ScoringRubric]:
        self._check()
        return self.rubrics.get(rubric_id)

    async def get_rubrics_paginated(self, event_id=None, group_id=None, is_template=None, limit=20):
        self._check()
        found = [
            r
            for r in self.rubrics.values()
            if (event_id is None or r.event_id == event_id)
            and (group_id is None or r.group_id == group_id)
            and (is_template is None or r.is_template == is_template)
        ]
        return found[:limit]

    async def clone(self, rubric_id: str, **overrides) -> ScoringRubric:
        self._check()
        source = self.rubrics.get(rubric_id)
        if source is None:
            raise NotFoundError("Rubric", rubric_id)
        copy = source.model_copy(update={**overrides, "id": str(uuid.uuid4())})
        self.rubrics[copy.id] = copy
        return copy


class FakeDirectory(Failing):
    """Team, event and member names."""

    def __init__(self, teams=None, events=None, members=None):
        self.teams = teams or {}
        self.events = events or {}
        self.members = members or {}

    async def get_team_by_id(self, team_id: str) -> Optional[TeamInfo]:
        self._check()
        name = self.teams.get(team_id)
        return TeamInfo(id=team_id, name=name) if name else None

    async def get_event_by_id(self, event_id: str) -> Optional[EventInfo]:
        self._check()
        title = self.events.get(event_id)
        return EventInfo(id=event_id, title=title) if title else None

    async def get_member_by_id(self, member_id: str) -> Optional[MemberInfo]:
        self._check()
        name = self.members.get(member_id)
        return MemberInfo(id=member_id, display_name=name) if name else None


class FakeSnapshotStore:
    def __init__(self):
        self.saved: list[Leaderboard] = []

    async def save(self, leaderboard: Leaderboard) -> int:
        self.saved.append(leaderboard)
        return len(leaderboard.entries)

    async def get_team_positions(self, team_id, event_id=None, since=None) -> list[PositionPoint]:
        points = []
        for board in self.saved:
            if event_id is not None and board.event_id != event_id:
                continue
            if since is not None and board.calculated_at < since:
                continue
            for entry in board.entries:
                if entry.entity_id == team_id:
                    points.append(
                        PositionPoint(
                            calculated_at=board.calculated_at,
                            event_id=board.event_id,
                            position=entry.position,
                            average_score=entry.average_score,
                            entry_count=len(board.entries),
                        )
                    )
        return points


class RecordingNotifier:
    def __init__(self):
        self.published: list[tuple[str, str]] = []

    async def publish(self, event_id: str, submission_id: str) -> None:
        self.published.append((event_id, submission_id))


class ManualNotifications:
    """Async iterator of notifications pushed by the test."""

    def __init__(self):
        self.queue: asyncio.Queue = asyncio.Queue()
        self._done = object()

    def push(self, item="changed"):
        self.queue.put_nowait(item)

    def close(self):
        self.queue.put_nowait(self._done)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.queue.get()
        if item is self._done:
            raise StopAsyncIteration
        return item


def days(n: int) -> timedelta:
    return timedelta(days=n)
