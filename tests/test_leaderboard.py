import pytest

from fakes import make_score, make_submission
from judgeboard.core.errors import DataAccessError
from judgeboard.schemas import AggregatedScore, LeaderboardKind, SubmissionStatus
from judgeboard.services.leaderboard import Bucket, accumulate, finalize, rank


def seed_three_teams(services):
    for sub_id, team, total in (("s-a", "team-a", 30), ("s-b", "team-b", 50), ("s-c", "team-c", 40)):
        services.submissions.add(make_submission(sub_id, team_id=team))
        services.scores.add(make_score(sub_id, "judge-1", total=total))


async def test_dense_ranking_by_average(services):
    seed_three_teams(services)

    board = await services.calculator.calculate_leaderboard("event-1")

    assert [(e.entity_id, e.average_score, e.position) for e in board.entries] == [
        ("team-b", 50, 1),
        ("team-c", 40, 2),
        ("team-a", 30, 3),
    ]
    assert board.kind == LeaderboardKind.TEAM
    assert board.first_place.display_name == "Bravo"
    assert board.metadata == {"total_submissions": 3, "total_scores": 3, "teams_with_scores": 3}


async def test_only_submitted_and_approved_count(services):
    statuses = [
        SubmissionStatus.DRAFT,
        SubmissionStatus.SUBMITTED,
        SubmissionStatus.APPROVED,
        SubmissionStatus.REJECTED,
        SubmissionStatus.UNDER_REVIEW,
    ]
    for i, status in enumerate(statuses):
        services.submissions.add(make_submission(f"s-{i}", team_id="team-a", status=status))
        services.scores.add(make_score(f"s-{i}", "judge-1", total=60))

    board = await services.calculator.calculate_leaderboard("event-1")

    (entry,) = board.entries
    assert entry.submission_count == 2
    assert entry.total_score == 120
    assert board.metadata["total_submissions"] == 2


async def test_no_eligible_submissions_gives_empty_board(services):
    services.submissions.add(make_submission("s-1", status=SubmissionStatus.DRAFT))

    board = await services.calculator.calculate_leaderboard("event-1")

    assert board.entries == []
    assert not board.has_entries
    assert board.calculated_at is not None


async def test_submissions_without_scores_are_skipped(services):
    services.submissions.add(make_submission("s-1", team_id="team-a"), make_submission("s-2", team_id="team-b"))
    services.scores.add(make_score("s-1", "judge-1", total=70))

    board = await services.calculator.calculate_leaderboard("event-1")

    assert [e.entity_id for e in board.entries] == ["team-a"]
    assert board.metadata["total_submissions"] == 2


async def test_team_accumulates_submission_averages(services):
    services.submissions.add(
        make_submission("s-1", team_id="team-a", submitted_by="member-1"),
        make_submission("s-2", team_id="team-a", submitted_by="member-2"),
        make_submission("s-3", team_id="team-a", submitted_by="member-1"),
    )
    services.scores.add(
        make_score("s-1", "judge-1", total=60, values={"design": 60}),
        make_score("s-1", "judge-2", total=80, values={"design": 80}),
        make_score("s-2", "judge-1", total=40, values={"design": 40}),
        make_score("s-3", "judge-1", total=90, values={"design": 90}),
    )

    (entry,) = (await services.calculator.calculate_leaderboard("event-1")).entries

    # per-submission means: 70, 40, 90
    assert entry.total_score == 200
    assert entry.submission_count == 3
    assert entry.average_score == pytest.approx(200 / 3)
    assert entry.criteria_scores["design"] == pytest.approx(200 / 3)
    assert entry.submitted_by == ["member-1", "member-2"]


async def test_unknown_team_name_fallback(services):
    services.submissions.add(make_submission("s-1", team_id="ghost"))
    services.scores.add(make_score("s-1", "judge-1", total=10))

    board = await services.calculator.calculate_leaderboard("event-1")

    assert board.entries[0].display_name == "Unknown Team"


async def test_ties_broken_deterministically(services):
    services.submissions.add(
        make_submission("s-1", team_id="team-b"),
        make_submission("s-2", team_id="team-a"),
        make_submission("s-3", team_id="team-c"),
        make_submission("s-4", team_id="team-c"),
    )
    for sub_id in ("s-1", "s-2", "s-3", "s-4"):
        services.scores.add(make_score(sub_id, "judge-1", total=50))

    board = await services.calculator.calculate_leaderboard("event-1")

    # team-c has the same average but a larger total
    assert [e.entity_id for e in board.entries] == ["team-c", "team-a", "team-b"]
    assert [e.position for e in board.entries] == [1, 2, 3]


async def test_recalculation_is_deterministic(services):
    seed_three_teams(services)

    first = await services.calculator.calculate_leaderboard("event-1")
    second = await services.calculator.calculate_leaderboard("event-1")

    assert first.entries == second.entries
    assert first.id != second.id


async def test_scores_fetched_in_one_batch(services):
    seed_three_teams(services)

    await services.calculator.calculate_leaderboard("event-1")

    assert services.scores.calls == ["get_by_submission_ids"]


async def test_individual_leaderboard_keys_by_member(services):
    services.submissions.add(
        make_submission("s-1", team_id="team-a", submitted_by="member-1"),
        make_submission("s-2", team_id="team-b", submitted_by="member-1"),
        make_submission("s-3", team_id="team-b", submitted_by="member-2"),
        make_submission("s-4", team_id="team-b", submitted_by="unlisted-member-id"),
    )
    services.scores.add(
        make_score("s-1", "judge-1", total=80),
        make_score("s-2", "judge-1", total=60),
        make_score("s-3", "judge-1", total=90),
        make_score("s-4", "judge-1", total=10),
    )

    board = await services.calculator.calculate_individual_leaderboard("event-1")

    assert [(e.entity_id, e.average_score) for e in board.entries] == [
        ("member-2", 90),
        ("member-1", 70),
        ("unlisted-member-id", 10),
    ]
    assert board.kind == LeaderboardKind.INDIVIDUAL
    assert board.entries[0].display_name == "Grace"
    assert board.entries[2].display_name == "Member unlisted"
    assert all(e.submitted_by is None for e in board.entries)
    assert board.metadata["members_with_scores"] == 3


async def test_store_failure_aborts_calculation(services):
    seed_three_teams(services)
    services.directory.error = DataAccessError("lookup timed out")

    with pytest.raises(DataAccessError):
        await services.calculator.calculate_leaderboard("event-1")


def test_accumulate_leaves_earlier_buckets_untouched():
    first = AggregatedScore(submission_id="s-1", average_score=40, criteria_averages={"ux": 40})
    second = AggregatedScore(submission_id="s-2", average_score=60, criteria_averages={"ux": 60})

    after_one = accumulate([("team-a", "member-1", first)])
    after_two = accumulate([("team-a", "member-1", first), ("team-a", "member-2", second)])

    assert after_one["team-a"].submission_count == 1
    assert after_two["team-a"] == Bucket(
        entity_id="team-a",
        total_score=100,
        submission_count=2,
        criteria_scores={"ux": (40, 60)},
        submitted_by=frozenset({"member-1", "member-2"}),
    )
    with pytest.raises(TypeError):
        after_two["team-b"] = Bucket(entity_id="team-b")


def test_finalize_and_rank():
    buckets = accumulate(
        [
            ("team-a", "m", AggregatedScore(submission_id="1", average_score=30)),
            ("team-b", "m", AggregatedScore(submission_id="2", average_score=50)),
        ]
    )
    entries = rank(finalize(b, b.entity_id.upper(), include_submitted_by=False) for b in buckets.values())

    assert [(e.display_name, e.position) for e in entries] == [("TEAM-B", 1), ("TEAM-A", 2)]
