from typing import Optional

from fastapi import APIRouter, Depends, Query

from judgeboard.api.deps import get_services, http_errors
from judgeboard.schemas import (
    RubricCloneRequest,
    RubricCreateRequest,
    RubricInstantiateRequest,
    ScoringRubric,
)
from judgeboard.services.factory import Services

router = APIRouter()


@router.post("", response_model=ScoringRubric, status_code=201)
async def create_rubric(body: RubricCreateRequest, services: Services = Depends(get_services)):
    with http_errors(event_id=body.event_id):
        return await services.judging.create_rubric(
            name=body.name,
            description=body.description,
            criteria=body.criteria,
            created_by=body.created_by,
            event_id=body.event_id,
            group_id=body.group_id,
            is_template=body.is_template,
        )


@router.get("", response_model=list[ScoringRubric])
async def list_rubrics(
    event_id: Optional[str] = Query(None),
    group_id: Optional[str] = Query(None),
    is_template: Optional[bool] = Query(None, description="Only templates (true) or only event rubrics (false)"),
    limit: int = Query(50, ge=1, le=200),
    services: Services = Depends(get_services),
):
    with http_errors(event_id=event_id):
        return await services.judging.get_available_rubrics(
            event_id=event_id, group_id=group_id, is_template=is_template, limit=limit
        )


@router.get("/{rubric_id}", response_model=ScoringRubric)
async def get_rubric(rubric_id: str, services: Services = Depends(get_services)):
    with http_errors(rubric_id=rubric_id):
        return await services.judging.get_rubric(rubric_id)


@router.post("/{rubric_id}/clone", response_model=ScoringRubric, status_code=201)
async def clone_rubric(rubric_id: str, body: RubricCloneRequest, services: Services = Depends(get_services)):
    with http_errors(rubric_id=rubric_id):
        return await services.judging.clone_rubric(
            rubric_id,
            created_by=body.created_by,
            name=body.name,
            description=body.description,
            event_id=body.event_id,
            group_id=body.group_id,
            is_template=body.is_template,
        )


@router.post("/{rubric_id}/instantiate", response_model=ScoringRubric, status_code=201)
async def instantiate_template(
    rubric_id: str, body: RubricInstantiateRequest, services: Services = Depends(get_services)
):
    """Create an event rubric from a template."""
    with http_errors(rubric_id=rubric_id):
        return await services.judging.create_from_template(
            rubric_id,
            created_by=body.created_by,
            event_id=body.event_id,
            group_id=body.group_id,
            name=body.name,
        )
