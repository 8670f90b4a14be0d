from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class Base(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,  # Enables ORM model parsing
        frozen=True,
    )


class SubmissionStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


# Only these statuses contribute to leaderboards
RANKED_STATUSES = frozenset({SubmissionStatus.SUBMITTED, SubmissionStatus.APPROVED})


class Submission(Base):
    id: str
    event_id: str
    team_id: str
    submitted_by: str
    status: SubmissionStatus = SubmissionStatus.DRAFT
    created_at: datetime
    submitted_at: Optional[datetime] = None

    @property
    def effective_time(self) -> datetime:
        return self.submitted_at or self.created_at

    @property
    def is_ranked(self) -> bool:
        return self.status in RANKED_STATUSES


class TeamInfo(Base):
    id: str
    name: str


class EventInfo(Base):
    id: str
    title: str


class MemberInfo(Base):
    id: str
    display_name: str
