from sqlalchemy import Column, String, DateTime, Index
from judgeboard.db.base import Base
from judgeboard.utils.time import utcnow


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(String, primary_key=True, index=True)
    event_id = Column(String, index=True, nullable=False)
    team_id = Column(String, index=True, nullable=False)
    submitted_by = Column(String, index=True, nullable=False)  # member id
    status = Column(String, default="draft")  # draft, submitted, under_review, approved, rejected
    created_at = Column(DateTime, default=utcnow)
    submitted_at = Column(DateTime, nullable=True)

    __table_args__ = (Index("ix_submissions_event_status", "event_id", "status"),)


class Team(Base):
    __tablename__ = "teams"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    group_id = Column(String, index=True, nullable=True)


class Event(Base):
    __tablename__ = "events"

    id = Column(String, primary_key=True, index=True)
    title = Column(String, nullable=False)
    group_id = Column(String, index=True, nullable=True)


class Member(Base):
    __tablename__ = "members"

    id = Column(String, primary_key=True, index=True)
    display_name = Column(String, nullable=False)
