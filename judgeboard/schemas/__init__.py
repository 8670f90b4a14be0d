from .submission import (
    RANKED_STATUSES,
    EventInfo,
    MemberInfo,
    Submission,
    SubmissionStatus,
    TeamInfo,
)
from .scoring import (
    AggregatedScore,
    BooleanValue,
    CriterionValue,
    NumericValue,
    Score,
    ScoreRange,
    ScoringCriterion,
    ScoringRubric,
    ScoringType,
    TextValue,
    criterion_value,
    dump_values,
    parse_values,
)
from .leaderboard import (
    Leaderboard,
    LeaderboardEntry,
    LeaderboardFilter,
    LeaderboardKind,
    LeaderboardSort,
    LeaderboardSortField,
)
from .history import (
    PositionHistory,
    PositionPoint,
    ScoreHistory,
    ScoreHistoryEntry,
    ScoreTrend,
    ScoreTrendPoint,
    TrendDirection,
)
from .requests import (
    CommentRequest,
    RubricCloneRequest,
    RubricCreateRequest,
    RubricInstantiateRequest,
    ScoreRequest,
)
