from sqlalchemy import Column, String, Float, Integer, DateTime, Index
from judgeboard.db.base import Base
from judgeboard.utils.time import utcnow


class LeaderboardSnapshot(Base):
    """One ranked entry of a persisted leaderboard computation.

    Rows sharing a leaderboard_id form one snapshot. Snapshots are derived
    data kept for position history; scores remain the source of truth.
    """

    __tablename__ = "leaderboard_snapshots"

    id = Column(String, primary_key=True, index=True)  # UUID
    leaderboard_id = Column(String, index=True, nullable=False)
    event_id = Column(String, index=True, nullable=False)
    kind = Column(String, default="team")  # team | individual
    entity_id = Column(String, index=True, nullable=False)
    entity_name = Column(String, nullable=False)
    position = Column(Integer, nullable=False)
    average_score = Column(Float, nullable=False)
    total_score = Column(Float, nullable=False)
    submission_count = Column(Integer, nullable=False)
    entry_count = Column(Integer, nullable=False)
    calculated_at = Column(DateTime, default=utcnow, index=True)

    __table_args__ = (Index("ix_snapshots_entity_time", "entity_id", "calculated_at"),)
