from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field

from .submission import Base


class TrendDirection(str, Enum):
    UPWARD = "upward"
    DOWNWARD = "downward"
    STABLE = "stable"


class ScoreHistoryEntry(Base):
    submission_id: str
    event_id: str
    event_name: str
    score: float  # mean across judges
    total_score: float
    judge_count: int
    criteria_scores: dict[str, float] = Field(default_factory=dict)
    submitted_at: datetime


class ScoreHistory(Base):
    team_id: str
    entries: list[ScoreHistoryEntry] = Field(default_factory=list)
    calculated_at: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def average_score(self) -> float:
        if not self.entries:
            return 0.0
        return sum(e.score for e in self.entries) / len(self.entries)

    @property
    def highest_score(self) -> float:
        return max((e.score for e in self.entries), default=0.0)

    @property
    def lowest_score(self) -> float:
        return min((e.score for e in self.entries), default=0.0)

    def recent(self, count: int) -> list[ScoreHistoryEntry]:
        """Newest first."""
        return sorted(self.entries, key=lambda e: e.submitted_at, reverse=True)[:count]


class ScoreTrendPoint(Base):
    timestamp: datetime
    score: float
    event_name: str
    submission_id: str


class ScoreTrend(Base):
    team_id: str
    direction: TrendDirection = TrendDirection.STABLE
    percent_change: float = 0.0
    average_score: float = 0.0
    data_points: list[ScoreTrendPoint] = Field(default_factory=list)
    calculated_at: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)


class PositionPoint(Base):
    calculated_at: datetime
    event_id: str
    position: int
    average_score: float
    entry_count: int


class PositionHistory(Base):
    team_id: str
    entries: list[PositionPoint] = Field(default_factory=list)
    calculated_at: datetime

    @property
    def best_position(self) -> int | None:
        return min((e.position for e in self.entries), default=None)
