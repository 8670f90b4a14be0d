"""Team and individual leaderboards computed from raw judge scores.

Calculation is two-phase: a fold over eligible submissions produces one
immutable accumulator per team (or member), then a pure finalization pass
turns each accumulator into an entry and ranks them. Nothing is cached; every
call recomputes from the stores.
"""

import logging
import uuid
from dataclasses import dataclass, field
from functools import reduce
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from judgeboard.core.config import settings
from judgeboard.core.metrics import (
    LEADERBOARD_CALCULATIONS_TOTAL,
    LEADERBOARD_CALCULATION_DURATION_SECONDS,
    DurationTimer,
)
from judgeboard.schemas import (
    AggregatedScore,
    Leaderboard,
    LeaderboardEntry,
    LeaderboardFilter,
    LeaderboardKind,
    LeaderboardSort,
    Submission,
)
from judgeboard.services.aggregation import aggregate_scores
from judgeboard.services.leaderboard_filter import refine, rerank
from judgeboard.services.stores import MemberLookup, ScoreStore, SubmissionStore, TeamLookup
from judgeboard.utils.time import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Bucket:
    """Running totals for one team or member."""

    entity_id: str
    total_score: float = 0.0
    submission_count: int = 0
    criteria_scores: Mapping[str, tuple] = field(default_factory=dict)
    submitted_by: frozenset = frozenset()

    def add(self, aggregation: AggregatedScore, submitted_by: str) -> "Bucket":
        # Each submission contributes its mean across judges exactly once
        criteria = dict(self.criteria_scores)
        for key, mean in aggregation.criteria_averages.items():
            criteria[key] = criteria.get(key, ()) + (mean,)
        return Bucket(
            entity_id=self.entity_id,
            total_score=self.total_score + aggregation.average_score,
            submission_count=self.submission_count + 1,
            criteria_scores=MappingProxyType(criteria),
            submitted_by=self.submitted_by | {submitted_by},
        )

    @property
    def average_score(self) -> float:
        return self.total_score / self.submission_count if self.submission_count else 0.0

    @property
    def criteria_means(self) -> dict[str, float]:
        return {key: sum(vals) / len(vals) for key, vals in self.criteria_scores.items()}


def accumulate(contributions: Iterable[tuple[str, str, AggregatedScore]]) -> Mapping[str, Bucket]:
    """Fold (entity id, submitter id, aggregation) triples into per-entity buckets."""

    def step(buckets: Mapping[str, Bucket], item) -> Mapping[str, Bucket]:
        entity_id, submitted_by, aggregation = item
        bucket = buckets.get(entity_id) or Bucket(entity_id=entity_id)
        return MappingProxyType({**buckets, entity_id: bucket.add(aggregation, submitted_by)})

    return reduce(step, contributions, MappingProxyType({}))


def finalize(bucket: Bucket, display_name: str, include_submitted_by: bool) -> LeaderboardEntry:
    return LeaderboardEntry(
        entity_id=bucket.entity_id,
        display_name=display_name,
        total_score=bucket.total_score,
        average_score=bucket.average_score,
        submission_count=bucket.submission_count,
        position=0,  # set by rank()
        criteria_scores=bucket.criteria_means,
        submitted_by=sorted(bucket.submitted_by) if include_submitted_by else None,
    )


def ranking_key(entry: LeaderboardEntry):
    # Ties on average fall back to total, then submission count, then id
    return (-entry.average_score, -entry.total_score, -entry.submission_count, entry.entity_id)


def rank(entries: Iterable[LeaderboardEntry]) -> list[LeaderboardEntry]:
    """Order by ranking_key and assign dense 1-based positions."""
    return rerank(sorted(entries, key=ranking_key))


def new_leaderboard_id() -> str:
    return str(uuid.uuid4())


class LeaderboardCalculator:
    def __init__(
        self,
        score_store: ScoreStore,
        submission_store: SubmissionStore,
        team_lookup: TeamLookup,
        member_lookup: Optional[MemberLookup] = None,
    ):
        self.score_store = score_store
        self.submission_store = submission_store
        self.team_lookup = team_lookup
        self.member_lookup = member_lookup

    async def calculate_leaderboard(self, event_id: str) -> Leaderboard:
        """Rank teams by the mean of their submissions' judge averages."""
        return await self._calculate(event_id, LeaderboardKind.TEAM)

    async def calculate_individual_leaderboard(self, event_id: str) -> Leaderboard:
        """Same ranking keyed by the submitting member instead of the team."""
        return await self._calculate(event_id, LeaderboardKind.INDIVIDUAL)

    async def calculate(self, event_id: str, kind: LeaderboardKind) -> Leaderboard:
        return await self._calculate(event_id, kind)

    async def get_filtered_leaderboard(
        self,
        event_id: str,
        filter: Optional[LeaderboardFilter] = None,
        sort: Optional[LeaderboardSort] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        kind: LeaderboardKind = LeaderboardKind.TEAM,
    ) -> Leaderboard:
        """Fresh leaderboard, then filter, sort, paginate and re-rank 1..N."""
        base = await self._calculate(event_id, kind)
        return refine(base, filter=filter, sort=sort, limit=limit, offset=offset)

    async def _calculate(self, event_id: str, kind: LeaderboardKind) -> Leaderboard:
        with DurationTimer() as timer:
            leaderboard = await self._build(event_id, kind)
        LEADERBOARD_CALCULATIONS_TOTAL.labels(kind=kind.value).inc()
        LEADERBOARD_CALCULATION_DURATION_SECONDS.labels(kind=kind.value).observe(timer.seconds)
        logger.info(
            "leaderboard_calculated",
            extra={
                "event_id": event_id,
                "kind": kind.value,
                "entries": len(leaderboard.entries),
                "leader": leaderboard.first_place.entity_id if leaderboard.first_place else None,
                "duration_ms": int(timer.seconds * 1000),
            },
        )
        return leaderboard

    async def _build(self, event_id: str, kind: LeaderboardKind) -> Leaderboard:
        entity_label = "teams_with_scores" if kind == LeaderboardKind.TEAM else "members_with_scores"

        submissions = await self.submission_store.get_by_event_id(event_id)
        eligible = [s for s in submissions if s.is_ranked]
        if not eligible:
            return Leaderboard(
                id=new_leaderboard_id(),
                event_id=event_id,
                kind=kind,
                entries=[],
                calculated_at=utcnow(),
                metadata={"total_submissions": 0, "total_scores": 0, entity_label: 0},
            )

        scores_by_submission = await self.score_store.get_by_submission_ids([s.id for s in eligible])

        contributions = [
            (self._entity_id(submission, kind), submission.submitted_by, aggregate_scores(submission.id, scores))
            for submission in eligible
            if (scores := scores_by_submission.get(submission.id))
        ]
        buckets = accumulate(contributions)

        entries = []
        for bucket in buckets.values():
            name = await self._display_name(bucket.entity_id, kind)
            entries.append(finalize(bucket, name, include_submitted_by=kind == LeaderboardKind.TEAM))

        return Leaderboard(
            id=new_leaderboard_id(),
            event_id=event_id,
            kind=kind,
            entries=rank(entries),
            calculated_at=utcnow(),
            metadata={
                "total_submissions": len(eligible),
                "total_scores": sum(len(scores) for scores in scores_by_submission.values()),
                entity_label: len(buckets),
            },
        )

    @staticmethod
    def _entity_id(submission: Submission, kind: LeaderboardKind) -> str:
        return submission.team_id if kind == LeaderboardKind.TEAM else submission.submitted_by

    async def _display_name(self, entity_id: str, kind: LeaderboardKind) -> str:
        if kind == LeaderboardKind.TEAM:
            team = await self.team_lookup.get_team_by_id(entity_id)
            return team.name if team else settings.UNKNOWN_TEAM_NAME

        member = await self.member_lookup.get_member_by_id(entity_id) if self.member_lookup else None
        return member.display_name if member else f"Member {entity_id[:8]}"
