"""Request bodies accepted by the HTTP API."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from .scoring import ScoringCriterion


class ScoreRequest(BaseModel):
    judge_id: str
    values: dict[str, Any] = Field(default_factory=dict)
    comments: Optional[str] = None
    rubric_id: Optional[str] = None


class CommentRequest(BaseModel):
    judge_id: str
    comment: str


class RubricCreateRequest(BaseModel):
    name: str
    description: str = ""
    criteria: list[ScoringCriterion] = Field(default_factory=list)
    created_by: str
    event_id: Optional[str] = None
    group_id: Optional[str] = None
    is_template: bool = False


class RubricCloneRequest(BaseModel):
    created_by: str
    name: Optional[str] = None
    description: Optional[str] = None
    event_id: Optional[str] = None
    group_id: Optional[str] = None
    is_template: Optional[bool] = None


class RubricInstantiateRequest(BaseModel):
    created_by: str
    name: Optional[str] = None
    event_id: Optional[str] = None
    group_id: Optional[str] = None
