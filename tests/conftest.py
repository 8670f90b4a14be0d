import pytest

from fakes import (
    FakeDirectory,
    FakeRubricStore,
    FakeScoreStore,
    FakeSnapshotStore,
    FakeSubmissionStore,
    RecordingNotifier,
)
from judgeboard.services.aggregation import ScoreAggregator
from judgeboard.services.judging import JudgingService
from judgeboard.services.leaderboard import LeaderboardCalculator
from judgeboard.services.trends import TrendService


class FakeServices:
    """Same attribute layout as ``judgeboard.services.factory.Services``."""

    def __init__(self):
        self.scores = FakeScoreStore()
        self.submissions = FakeSubmissionStore()
        self.rubrics = FakeRubricStore()
        self.directory = FakeDirectory(
            teams={"team-a": "Alpha", "team-b": "Bravo", "team-c": "Charlie"},
            events={"event-1": "Spring Hackathon", "event-2": "Summer Sprint"},
            members={"member-1": "Ada", "member-2": "Grace"},
        )
        self.snapshots = FakeSnapshotStore()
        self.notifier = RecordingNotifier()

        self.aggregator = ScoreAggregator(self.scores, self.submissions)
        self.calculator = LeaderboardCalculator(
            self.scores, self.submissions, team_lookup=self.directory, member_lookup=self.directory
        )
        self.trends = TrendService(self.scores, self.submissions, self.directory, self.snapshots)
        self.judging = JudgingService(self.scores, self.submissions, self.rubrics, notifier=self.notifier)


@pytest.fixture
def services():
    return FakeServices()
