import pytest

from fakes import T0, make_score, make_submission
from judgeboard.schemas import (
    Leaderboard,
    LeaderboardEntry,
    LeaderboardFilter,
    LeaderboardSort,
    LeaderboardSortField,
)
from judgeboard.services.leaderboard_filter import apply_filter, apply_sort, paginate, refine


def entry(entity_id, average, count=1, name=None, position=0):
    return LeaderboardEntry(
        entity_id=entity_id,
        display_name=name or entity_id,
        total_score=average * count,
        average_score=average,
        submission_count=count,
        position=position,
    )


@pytest.fixture
def base():
    entries = [
        entry("team-b", 50, count=1, name="bravo", position=1),
        entry("team-c", 40, count=3, name="Charlie", position=2),
        entry("team-a", 30, count=2, name="alpha", position=3),
    ]
    return Leaderboard(id="lb-1", event_id="event-1", entries=entries, calculated_at=T0, metadata={"total_scores": 6})


def test_min_score_filter_reranks_without_gaps(base):
    result = refine(base, filter=LeaderboardFilter(min_score=35))

    assert [(e.average_score, e.position) for e in result.entries] == [(50, 1), (40, 2)]
    assert result.metadata == {
        "total_scores": 6,
        "filtered": True,
        "sorted": False,
        "total_entries": 3,
        "filtered_entries": 2,
    }


def test_filters_are_combined(base):
    kept = apply_filter(base.entries, LeaderboardFilter(max_score=45, min_submissions=2))

    assert [e.entity_id for e in kept] == ["team-c", "team-a"]


def test_team_ids_allow_list(base):
    kept = apply_filter(base.entries, LeaderboardFilter(team_ids=frozenset({"team-a", "team-x"})))

    assert [e.entity_id for e in kept] == ["team-a"]


def test_top_n_applies_after_other_filters(base):
    kept = apply_filter(base.entries, LeaderboardFilter(max_score=45, top_n=1))

    assert [e.entity_id for e in kept] == ["team-c"]


def test_top_n_zero_keeps_nothing(base):
    assert apply_filter(base.entries, LeaderboardFilter(top_n=0)) == []


def test_sort_by_submission_count_ascending(base):
    ordered = apply_sort(base.entries, LeaderboardSort(field=LeaderboardSortField.SUBMISSION_COUNT, ascending=True))

    assert [e.entity_id for e in ordered] == ["team-b", "team-a", "team-c"]


def test_sort_by_display_name_is_case_sensitive(base):
    ordered = apply_sort(base.entries, LeaderboardSort(field=LeaderboardSortField.DISPLAY_NAME, ascending=True))

    assert [e.display_name for e in ordered] == ["Charlie", "alpha", "bravo"]


def test_sort_keeps_base_order_for_equal_keys():
    entries = [entry("x", 10, count=1), entry("y", 20, count=1), entry("z", 30, count=2)]

    ordered = apply_sort(entries, LeaderboardSort(field=LeaderboardSortField.SUBMISSION_COUNT))

    assert [e.entity_id for e in ordered] == ["z", "x", "y"]


def test_offset_then_limit(base):
    assert [e.entity_id for e in paginate(base.entries, limit=1, offset=1)] == ["team-c"]
    assert [e.entity_id for e in paginate(base.entries, offset=2)] == ["team-a"]
    assert paginate(base.entries, limit=0) == []


def test_negative_pagination_rejected(base):
    with pytest.raises(ValueError):
        paginate(base.entries, offset=-1)


def test_sort_and_paginate_reassign_positions(base):
    result = refine(
        base,
        sort=LeaderboardSort(field=LeaderboardSortField.AVERAGE_SCORE, ascending=True),
        limit=2,
    )

    assert [(e.entity_id, e.position) for e in result.entries] == [("team-a", 1), ("team-c", 2)]
    assert result.metadata["sorted"] is True
    assert result.metadata["filtered"] is False


def test_refine_does_not_modify_base(base):
    refine(base, filter=LeaderboardFilter(min_score=45))

    assert len(base.entries) == 3
    assert [e.position for e in base.entries] == [1, 2, 3]


async def test_filtered_leaderboard_from_fresh_calculation(services):
    for sub_id, team, total in (("s-a", "team-a", 30), ("s-b", "team-b", 50), ("s-c", "team-c", 40)):
        services.submissions.add(make_submission(sub_id, team_id=team))
        services.scores.add(make_score(sub_id, "judge-1", total=total))

    result = await services.calculator.get_filtered_leaderboard("event-1", filter=LeaderboardFilter(min_score=35))

    assert [(e.average_score, e.position) for e in result.entries] == [(50, 1), (40, 2)]
    assert result.metadata["total_entries"] == 3
    assert result.metadata["teams_with_scores"] == 3
