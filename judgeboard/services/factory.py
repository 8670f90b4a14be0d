"""Wires the SQL stores into the services for the API and the worker."""

from typing import Optional

from sqlalchemy.orm import sessionmaker

from judgeboard.db.session import SessionLocal
from judgeboard.services.aggregation import ScoreAggregator
from judgeboard.services.judging import JudgingService
from judgeboard.services.leaderboard import LeaderboardCalculator
from judgeboard.services.sql_stores import (
    SqlDirectory,
    SqlRubricStore,
    SqlScoreStore,
    SqlSnapshotStore,
    SqlSubmissionStore,
)
from judgeboard.services.stores import ScoreNotifier
from judgeboard.services.trends import TrendService


class Services:
    def __init__(self, session_factory: sessionmaker = SessionLocal, notifier: Optional[ScoreNotifier] = None):
        self.scores = SqlScoreStore(session_factory)
        self.submissions = SqlSubmissionStore(session_factory)
        self.rubrics = SqlRubricStore(session_factory)
        self.directory = SqlDirectory(session_factory)
        self.snapshots = SqlSnapshotStore(session_factory)

        self.aggregator = ScoreAggregator(self.scores, self.submissions)
        self.calculator = LeaderboardCalculator(
            self.scores, self.submissions, team_lookup=self.directory, member_lookup=self.directory
        )
        self.trends = TrendService(self.scores, self.submissions, self.directory, self.snapshots)
        self.judging = JudgingService(self.scores, self.submissions, self.rubrics, notifier=notifier)
