from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import Field

from .submission import Base


class LeaderboardKind(str, Enum):
    TEAM = "team"
    INDIVIDUAL = "individual"


class LeaderboardEntry(Base):
    entity_id: str  # team id or member id
    display_name: str
    total_score: float  # sum of per-submission averages
    average_score: float
    submission_count: int
    position: int
    criteria_scores: dict[str, float] = Field(default_factory=dict)
    submitted_by: Optional[list[str]] = None  # team leaderboards only


class Leaderboard(Base):
    id: str
    event_id: str
    kind: LeaderboardKind = LeaderboardKind.TEAM
    entries: list[LeaderboardEntry] = Field(default_factory=list)
    calculated_at: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def has_entries(self) -> bool:
        return bool(self.entries)

    @property
    def first_place(self) -> Optional[LeaderboardEntry]:
        return self.entries[0] if self.entries else None


class LeaderboardFilter(Base):
    min_score: Optional[float] = None
    max_score: Optional[float] = None
    min_submissions: Optional[int] = None
    team_ids: Optional[frozenset[str]] = None
    top_n: Optional[int] = Field(default=None, ge=0)


class LeaderboardSortField(str, Enum):
    AVERAGE_SCORE = "average_score"
    TOTAL_SCORE = "total_score"
    SUBMISSION_COUNT = "submission_count"
    DISPLAY_NAME = "display_name"


class LeaderboardSort(Base):
    field: LeaderboardSortField = LeaderboardSortField.AVERAGE_SCORE
    ascending: bool = False
