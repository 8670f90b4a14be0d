import logging
from typing import Iterable, Optional

from judgeboard.core.errors import NotFoundError
from judgeboard.schemas import AggregatedScore, NumericValue, Score, ScoreRange
from judgeboard.services.stores import ScoreStore, SubmissionStore

logger = logging.getLogger(__name__)


def latest_per_judge(scores: Iterable[Score]) -> list[Score]:
    """Collapse duplicate (submission, judge) rows, keeping the latest update.

    The store enforces one row per pair, but a racing writer or a legacy
    import can still hand us two; a judge is never counted twice.
    """
    latest: dict[str, Score] = {}
    for score in scores:
        current = latest.get(score.judge_id)
        if current is None or score.updated_at >= current.updated_at:
            latest[score.judge_id] = score
    return list(latest.values())


def aggregate_scores(submission_id: str, scores: Iterable[Score]) -> AggregatedScore:
    """Summarize every judge's score for one submission.

    Only scores carrying a total take part in the sum, mean and range.
    ``judge_count`` counts every judge, comment-only ones included.
    Criterion means flatten numeric values across all scores, whether or not
    a total was computed for them.
    """
    scores = latest_per_judge(scores)
    if not scores:
        return AggregatedScore(submission_id=submission_id)

    totals = [s.total_score for s in scores if s.total_score is not None]
    total_sum = sum(totals)
    average = total_sum / len(totals) if totals else 0.0

    by_criterion: dict[str, list[float]] = {}
    for score in scores:
        for key, value in score.values.items():
            if isinstance(value, NumericValue):
                by_criterion.setdefault(key, []).append(value.value)
    criteria_averages = {key: sum(vals) / len(vals) for key, vals in by_criterion.items()}

    score_range = ScoreRange(min=min(totals), max=max(totals)) if totals else ScoreRange()

    return AggregatedScore(
        submission_id=submission_id,
        total_score=total_sum,
        average_score=average,
        judge_count=len(scores),
        criteria_averages=criteria_averages,
        score_range=score_range,
        individual_scores=scores,
    )


class ScoreAggregator:
    """Reads a submission's scores and aggregates them; never writes."""

    def __init__(self, score_store: ScoreStore, submission_store: Optional[SubmissionStore] = None):
        self.score_store = score_store
        self.submission_store = submission_store

    async def aggregate(self, submission_id: str) -> AggregatedScore:
        if self.submission_store is not None:
            submission = await self.submission_store.get_by_id(submission_id)
            if submission is None:
                raise NotFoundError("Submission", submission_id)

        scores = await self.score_store.get_by_submission_id(submission_id)
        aggregation = aggregate_scores(submission_id, scores)
        logger.debug(
            "submission_aggregated",
            extra={"submission_id": submission_id, "judge_count": aggregation.judge_count},
        )
        return aggregation
