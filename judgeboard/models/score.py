from sqlalchemy import Column, String, Float, DateTime, Boolean, JSON, UniqueConstraint
from judgeboard.db.base import Base
from judgeboard.utils.time import utcnow


class Score(Base):
    __tablename__ = "scores"

    id = Column(String, primary_key=True, index=True)  # UUID
    submission_id = Column(String, index=True, nullable=False)
    judge_id = Column(String, index=True, nullable=False)
    event_id = Column(String, index=True, nullable=False)
    criterion_values = Column(JSON, nullable=False, default=dict)  # criterion key -> raw JSON value
    comments = Column(String, nullable=True)
    total_score = Column(Float, nullable=True)  # null until a rubric is applied
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("submission_id", "judge_id", name="uq_scores_submission_judge"),
    )


class ScoringRubric(Base):
    __tablename__ = "scoring_rubrics"

    id = Column(String, primary_key=True, index=True)  # UUID
    name = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")
    criteria = Column(JSON, nullable=False, default=list)  # ordered list of criterion dicts
    event_id = Column(String, index=True, nullable=True)
    group_id = Column(String, index=True, nullable=True)
    is_template = Column(Boolean, default=False, index=True)
    created_by = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
