"""Judge scoring, comments and rubric management.

Writes go through the score and rubric stores; aggregation and ranking live in
``aggregation`` and ``leaderboard`` and never write.
"""

import logging
import uuid
from typing import Any, Mapping, Optional, Sequence

from judgeboard.core.errors import NotFoundError, RubricValidationError, ScoreValidationError
from judgeboard.core.metrics import SCORE_VALIDATION_FAILURES_TOTAL, SCORES_SUBMITTED_TOTAL
from judgeboard.schemas import Score, ScoringCriterion, ScoringRubric, parse_values
from judgeboard.services.stores import (
    RubricStore,
    ScoreNotifier,
    ScoreStore,
    SubmissionStore,
)
from judgeboard.utils.time import utcnow

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 2000


def new_id() -> str:
    return str(uuid.uuid4())


def validate_score_against_rubric(values: Mapping[str, Any], rubric: ScoringRubric) -> bool:
    try:
        parsed = parse_values(values)
    except ScoreValidationError:
        return False
    return not rubric.validate_values(parsed)


class JudgingService:
    def __init__(
        self,
        score_store: ScoreStore,
        submission_store: SubmissionStore,
        rubric_store: RubricStore,
        notifier: Optional[ScoreNotifier] = None,
    ):
        self.score_store = score_store
        self.submission_store = submission_store
        self.rubric_store = rubric_store
        self.notifier = notifier

    # ---------- scores ----------

    async def score_submission(
        self,
        submission_id: str,
        judge_id: str,
        values: Mapping[str, Any],
        comments: Optional[str] = None,
        rubric_id: Optional[str] = None,
    ) -> Score:
        """Create or replace ``judge_id``'s score for a submission.

        With a rubric the values are validated against it and the weighted
        total is stored; without one the total stays empty and the score does
        not count towards averages.
        """
        submission = await self.submission_store.get_by_id(submission_id)
        if submission is None:
            raise NotFoundError("Submission", submission_id)

        _check_comment(comments)
        try:
            parsed = parse_values(values)
        except ScoreValidationError:
            SCORE_VALIDATION_FAILURES_TOTAL.labels(reason="score").inc()
            raise

        rubric = None
        if rubric_id is not None:
            rubric = await self.get_rubric(rubric_id)
            errors = rubric.validate_values(parsed)
            if errors:
                SCORE_VALIDATION_FAILURES_TOTAL.labels(reason="score").inc()
                logger.info(
                    "score_rejected",
                    extra={"submission_id": submission_id, "judge_id": judge_id, "rubric_id": rubric_id},
                )
                raise ScoreValidationError(errors)

        now = utcnow()
        existing = await self.score_store.get_by_submission_and_judge(submission_id, judge_id)
        if existing is not None:
            score = existing.model_copy(
                update={"values": parsed, "comments": comments, "total_score": None, "updated_at": now}
            )
        else:
            score = Score(
                id=new_id(),
                submission_id=submission_id,
                judge_id=judge_id,
                event_id=submission.event_id,
                values=parsed,
                comments=comments,
                created_at=now,
                updated_at=now,
            )
        if rubric is not None:
            score = score.with_total(rubric)

        if existing is not None:
            saved = await self.score_store.update(score)
            mode = "updated"
        else:
            saved = await self.score_store.create(score)
            mode = "created"

        SCORES_SUBMITTED_TOTAL.labels(mode=mode).inc()
        logger.info(
            "score_saved",
            extra={
                "submission_id": submission_id,
                "judge_id": judge_id,
                "event_id": saved.event_id,
                "mode": mode,
                "total_score": saved.total_score,
            },
        )
        await self._notify(saved)
        return saved

    async def add_judge_comment(self, submission_id: str, judge_id: str, comment: str) -> Score:
        """Attach a comment, creating a value-less score if the judge has none yet."""
        submission = await self.submission_store.get_by_id(submission_id)
        if submission is None:
            raise NotFoundError("Submission", submission_id)
        _check_comment(comment)

        now = utcnow()
        existing = await self.score_store.get_by_submission_and_judge(submission_id, judge_id)
        if existing is not None:
            saved = await self.score_store.update(
                existing.model_copy(update={"comments": comment, "updated_at": now})
            )
        else:
            saved = await self.score_store.create(
                Score(
                    id=new_id(),
                    submission_id=submission_id,
                    judge_id=judge_id,
                    event_id=submission.event_id,
                    comments=comment,
                    created_at=now,
                    updated_at=now,
                )
            )

        SCORES_SUBMITTED_TOTAL.labels(mode="comment").inc()
        logger.info("judge_comment_saved", extra={"submission_id": submission_id, "judge_id": judge_id})
        await self._notify(saved)
        return saved

    async def get_submission_scores(self, submission_id: str) -> list[Score]:
        return await self.score_store.get_by_submission_id(submission_id)

    async def get_judge_score(self, submission_id: str, judge_id: str) -> Optional[Score]:
        return await self.score_store.get_by_submission_and_judge(submission_id, judge_id)

    async def has_judge_scored(self, submission_id: str, judge_id: str) -> bool:
        return await self.get_judge_score(submission_id, judge_id) is not None

    async def get_event_scoring_stats(self, event_id: str) -> dict:
        """Score counts and judge participation for an event.

        ``average_score`` treats scores without a total as 0. Pending
        submissions are ranked submissions no judge has scored yet.
        """
        scores = await self.score_store.get_by_event_id(event_id)
        submissions = await self.submission_store.get_by_event_id(event_id)

        scored_ids = {s.submission_id for s in scores}
        pending = sum(1 for s in submissions if s.is_ranked and s.id not in scored_ids)

        participation: dict[str, int] = {}
        for score in scores:
            participation[score.judge_id] = participation.get(score.judge_id, 0) + 1

        total = sum(s.total_score or 0.0 for s in scores)
        return {
            "total_scores": len(scores),
            "average_score": total / len(scores) if scores else 0.0,
            "completed_submissions": len(scored_ids),
            "pending_submissions": pending,
            "judge_participation": participation,
        }

    async def _notify(self, score: Score) -> None:
        if self.notifier is not None:
            await self.notifier.publish(score.event_id, score.submission_id)

    # ---------- rubrics ----------

    async def create_rubric(
        self,
        name: str,
        criteria: Sequence[ScoringCriterion],
        created_by: str,
        description: str = "",
        event_id: Optional[str] = None,
        group_id: Optional[str] = None,
        is_template: bool = False,
    ) -> ScoringRubric:
        now = utcnow()
        rubric = ScoringRubric(
            id=new_id(),
            name=name,
            description=description,
            criteria=list(criteria),
            event_id=event_id,
            group_id=group_id,
            is_template=is_template,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        errors = rubric.validate_definition()
        if errors:
            SCORE_VALIDATION_FAILURES_TOTAL.labels(reason="rubric").inc()
            raise RubricValidationError(errors)

        saved = await self.rubric_store.create(rubric)
        logger.info("rubric_created", extra={"rubric_id": saved.id, "event_id": event_id})
        return saved

    async def get_rubric(self, rubric_id: str) -> ScoringRubric:
        rubric = await self.rubric_store.get_by_id(rubric_id)
        if rubric is None:
            raise NotFoundError("Rubric", rubric_id)
        return rubric

    async def get_available_rubrics(
        self,
        event_id: Optional[str] = None,
        group_id: Optional[str] = None,
        is_template: Optional[bool] = None,
        limit: int = 50,
    ) -> list[ScoringRubric]:
        return await self.rubric_store.get_rubrics_paginated(
            event_id=event_id, group_id=group_id, is_template=is_template, limit=limit
        )

    async def clone_rubric(
        self,
        rubric_id: str,
        created_by: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        event_id: Optional[str] = None,
        group_id: Optional[str] = None,
        is_template: Optional[bool] = None,
    ) -> ScoringRubric:
        """Copy a rubric; the copy is named "<name> (Copy)" unless a name is given."""
        source = await self.get_rubric(rubric_id)
        overrides = {
            "name": name or f"{source.name} (Copy)",
            "created_by": created_by,
        }
        if description is not None:
            overrides["description"] = description
        if event_id is not None:
            overrides["event_id"] = event_id
        if group_id is not None:
            overrides["group_id"] = group_id
        if is_template is not None:
            overrides["is_template"] = is_template

        clone = await self.rubric_store.clone(rubric_id, **overrides)
        logger.info("rubric_cloned", extra={"rubric_id": clone.id, "source_rubric_id": rubric_id})
        return clone

    async def create_from_template(
        self,
        template_id: str,
        created_by: str,
        event_id: Optional[str] = None,
        group_id: Optional[str] = None,
        name: Optional[str] = None,
    ) -> ScoringRubric:
        return await self.clone_rubric(
            template_id,
            created_by=created_by,
            name=name,
            event_id=event_id,
            group_id=group_id,
            is_template=False,
        )


def _check_comment(comment: Optional[str]) -> None:
    if comment is not None and len(comment) > MAX_COMMENT_LENGTH:
        SCORE_VALIDATION_FAILURES_TOTAL.labels(reason="score").inc()
        raise ScoreValidationError([f"Comments must not exceed {MAX_COMMENT_LENGTH} characters"])
