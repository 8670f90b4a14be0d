import logging

from fastapi import APIRouter, Depends

from judgeboard.api.deps import get_services, http_errors
from judgeboard.schemas import AggregatedScore, CommentRequest, Score, ScoreRequest
from judgeboard.services.factory import Services

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/submissions/{submission_id}/scores", response_model=Score)
async def score_submission(submission_id: str, body: ScoreRequest, services: Services = Depends(get_services)):
    """Create or replace the judge's score; validated when a rubric is given."""
    with http_errors(submission_id=submission_id, judge_id=body.judge_id):
        return await services.judging.score_submission(
            submission_id,
            body.judge_id,
            body.values,
            comments=body.comments,
            rubric_id=body.rubric_id,
        )


@router.post("/submissions/{submission_id}/comments", response_model=Score)
async def add_comment(submission_id: str, body: CommentRequest, services: Services = Depends(get_services)):
    with http_errors(submission_id=submission_id, judge_id=body.judge_id):
        return await services.judging.add_judge_comment(submission_id, body.judge_id, body.comment)


@router.get("/submissions/{submission_id}/scores", response_model=list[Score])
async def list_scores(submission_id: str, services: Services = Depends(get_services)):
    with http_errors(submission_id=submission_id):
        return await services.judging.get_submission_scores(submission_id)


@router.get("/submissions/{submission_id}/aggregate", response_model=AggregatedScore)
async def aggregate_submission(submission_id: str, services: Services = Depends(get_services)):
    with http_errors(submission_id=submission_id):
        return await services.aggregator.aggregate(submission_id)


@router.get("/events/{event_id}/scoring-stats")
async def event_scoring_stats(event_id: str, services: Services = Depends(get_services)):
    with http_errors(event_id=event_id):
        return await services.judging.get_event_scoring_stats(event_id)
