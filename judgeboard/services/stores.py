"""Collaborator contracts consumed by the judging core.

Every method is a coroutine: each store access is a point where the calling
task may suspend while I/O completes. Implementations raise
``DataAccessError`` on storage faults; the core lets it propagate.
"""

from datetime import datetime
from typing import AsyncIterator, Optional, Protocol, Sequence

from judgeboard.schemas import (
    EventInfo,
    Leaderboard,
    MemberInfo,
    PositionPoint,
    Score,
    ScoringRubric,
    Submission,
    TeamInfo,
)


class ScoreStore(Protocol):
    async def create(self, score: Score) -> Score: ...

    async def update(self, score: Score) -> Score: ...

    async def get_by_submission_id(self, submission_id: str) -> list[Score]: ...

    async def get_by_submission_and_judge(
        self, submission_id: str, judge_id: str
    ) -> Optional[Score]: ...

    async def get_by_submission_ids(
        self, submission_ids: Sequence[str]
    ) -> dict[str, list[Score]]: ...

    async def get_by_event_id(self, event_id: str) -> list[Score]: ...

    def stream_by_submission_id(self, submission_id: str) -> AsyncIterator[object]:
        """Change notifications; payload is irrelevant, only a recompute trigger."""
        ...


class SubmissionStore(Protocol):
    async def get_by_id(self, submission_id: str) -> Optional[Submission]: ...

    async def get_by_event_id(self, event_id: str) -> list[Submission]: ...

    async def get_by_team_id(self, team_id: str) -> list[Submission]: ...


class RubricStore(Protocol):
    async def create(self, rubric: ScoringRubric) -> ScoringRubric: ...

    async def get_by_id(self, rubric_id: str) -> Optional[ScoringRubric]: ...

    async def get_rubrics_paginated(
        self,
        event_id: Optional[str] = None,
        group_id: Optional[str] = None,
        is_template: Optional[bool] = None,
        limit: int = 20,
    ) -> list[ScoringRubric]: ...

    async def clone(self, rubric_id: str, **overrides) -> ScoringRubric: ...


class TeamLookup(Protocol):
    async def get_team_by_id(self, team_id: str) -> Optional[TeamInfo]: ...


class EventLookup(Protocol):
    async def get_event_by_id(self, event_id: str) -> Optional[EventInfo]: ...


class MemberLookup(Protocol):
    async def get_member_by_id(self, member_id: str) -> Optional[MemberInfo]: ...


class SnapshotStore(Protocol):
    async def save(self, leaderboard: Leaderboard) -> int: ...

    async def get_team_positions(
        self,
        team_id: str,
        event_id: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> list[PositionPoint]: ...


class ScoreNotifier(Protocol):
    async def publish(self, event_id: str, submission_id: str) -> None: ...
