from .submission import Submission, Team, Event, Member
from .score import Score, ScoringRubric
from .leaderboard import LeaderboardSnapshot

__all__ = [
    "Submission",
    "Team",
    "Event",
    "Member",
    "Score",
    "ScoringRubric",
    "LeaderboardSnapshot",
]
