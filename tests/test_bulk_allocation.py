from __future__ import annotations

import math
from dataclasses import replace
from datetime import date, timedelta

import pytest

from spotplanner.domain.constraints import build_allocation_input
from spotplanner.domain.models import (
    BulkAllocationInput,
    ConflictKind,
    FallbackStrategy,
    PlacementType,
    SpotKey,
)
from spotplanner.repository.data_repository import (
    DataRepository,
    InventorySnapshot,
    RepositoryError,
)
from spotplanner.services.allocation_service import (
    BulkAllocationService,
    ShowNotFoundError,
    allocate_bulk_spots,
    build_candidates,
    compute_quota_targets,
    eligible_dates,
    order_candidates,
    week_key,
    weekday_number,
)
from spotplanner.services.availability_service import InventoryAvailabilityService
from spotplanner.utils.config import get_settings


PRE = PlacementType.PRE_ROLL
MID = PlacementType.MID_ROLL
POST = PlacementType.POST_ROLL
MONDAY = date(2025, 3, 3)


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    return replace(get_settings(), database_path=tmp_path / filename)


def _build_repository(tmp_path, filename: str) -> tuple[DataRepository, object]:
    settings = _build_test_settings(tmp_path, filename)
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.create_show("show-a", "Show A")
    repository.create_show("show-b", "Show B")
    return repository, settings


def _seed_episodes(repository: DataRepository, show_ids, dates, slots=None) -> None:
    for show_id in show_ids:
        for air_date in dates:
            repository.create_episode(show_id, air_date, slots or {PRE: 1})


def _request(**overrides):
    defaults = {
        "advertiser_id": "adv-1",
        "show_ids": ["show-a", "show-b"],
        "start_date": MONDAY,
        "end_date": date(2025, 3, 26),
        "weekdays": [1, 3],
        "placement_types": ["pre-roll"],
        "spots_requested": 10,
    }
    defaults.update(overrides)
    return build_allocation_input(**defaults)


def _service(repository, settings) -> BulkAllocationService:
    return BulkAllocationService(repository=repository, settings=settings)


def _assert_conserved(result) -> None:
    summary = result.summary
    assert summary.placeable + summary.unplaceable == summary.requested
    assert len(result.would_place) == summary.placeable
    assert sum(bucket.placed for bucket in summary.by_show.values()) == summary.placeable
    assert sum(bucket.placed for bucket in summary.by_week.values()) == summary.placeable


def _assert_one_spot_per_show_day(result) -> None:
    keys = [(item.show_id, item.air_date) for item in result.would_place]
    assert len(keys) == len(set(keys))


# --- calendar helpers ---

def test_weekday_number_counts_from_sunday() -> None:
    assert weekday_number(date(2025, 3, 2)) == 0
    assert weekday_number(MONDAY) == 1
    assert weekday_number(date(2025, 3, 8)) == 6


def test_week_key_is_the_monday_of_the_week() -> None:
    assert week_key(date(2025, 3, 5)) == "2025-03-03"
    assert week_key(date(2025, 3, 9)) == "2025-03-03"
    assert week_key(date(2025, 3, 10)) == "2025-03-10"


def test_candidates_are_ordered_by_date_show_then_placement() -> None:
    request = _request(
        show_ids=["show-b", "show-a"],
        end_date=date(2025, 3, 5),
        placement_types=["mid-roll", "pre-roll"],
    )

    ordered = order_candidates(list(reversed(build_candidates(request))), request)

    assert ordered[:4] == [
        SpotKey("show-b", MONDAY, MID),
        SpotKey("show-b", MONDAY, PRE),
        SpotKey("show-a", MONDAY, MID),
        SpotKey("show-a", MONDAY, PRE),
    ]
    assert len(ordered) == 8


def test_quota_targets_round_up() -> None:
    request = _request(placement_types=["pre-roll", "mid-roll", "post-roll"])

    targets = compute_quota_targets(request, eligible_dates(request))

    assert targets.spots_per_placement_type == 4
    assert targets.spots_per_show == 5
    assert targets.spots_per_week == {
        "2025-03-03": 3,
        "2025-03-10": 3,
        "2025-03-17": 3,
        "2025-03-24": 3,
    }


def test_explicit_weekly_quota_overrides_even_split() -> None:
    request = _request(spots_per_week=2)

    targets = compute_quota_targets(request, eligible_dates(request))

    assert set(targets.spots_per_week.values()) == {2}


# --- allocation runs ---

def test_sufficient_inventory_places_everything_evenly(tmp_path):
    repository, settings = _build_repository(tmp_path, "sufficient.db")
    request = _request()
    _seed_episodes(repository, ["show-a", "show-b"], eligible_dates(request))

    result = _service(repository, settings).allocate(request)

    assert result.summary.placeable == 10
    assert result.summary.unplaceable == 0
    assert result.conflicts == []
    assert result.summary.by_show["show-a"].placed == 5
    assert result.summary.by_show["show-b"].placed == 5
    assert all(bucket.placed <= 3 for bucket in result.summary.by_week.values())
    assert result.incomplete is False
    _assert_conserved(result)
    _assert_one_spot_per_show_day(result)


def test_strict_respects_type_and_show_quotas_across_placements(tmp_path):
    repository, settings = _build_repository(tmp_path, "type_quotas.db")
    request = _request(placement_types=["pre-roll", "mid-roll", "post-roll"])
    _seed_episodes(
        repository,
        ["show-a", "show-b"],
        eligible_dates(request),
        slots={PRE: 1, MID: 1, POST: 1},
    )

    result = _service(repository, settings).allocate(request)

    type_cap = math.ceil(10 / 3)
    show_cap = math.ceil(10 / 2)
    assert result.summary.placeable == 10
    assert result.conflicts == []
    assert set(result.summary.by_placement_type) == {"pre-roll", "mid-roll", "post-roll"}
    assert all(
        bucket.placed <= type_cap for bucket in result.summary.by_placement_type.values()
    )
    assert all(bucket.placed <= show_cap for bucket in result.summary.by_show.values())
    _assert_one_spot_per_show_day(result)
    _assert_conserved(result)


def test_placements_carry_show_name_rate_and_episode(tmp_path):
    repository, settings = _build_repository(tmp_path, "names_rates.db")
    repository.create_rate_card("show-a", date(2025, 1, 1), pre_roll_rate=300.0)
    request = _request(show_ids=["show-a"], end_date=MONDAY, spots_requested=1)
    _seed_episodes(repository, ["show-a"], [MONDAY])

    result = _service(repository, settings).allocate(request)

    placement = result.would_place[0]
    assert placement.show_name == "Show A"
    assert placement.rate == 300.0
    assert placement.episode_id == "show-a-ep-2025-03-03"


def test_strict_reports_each_rejected_candidate(tmp_path):
    repository, settings = _build_repository(tmp_path, "strict_conflicts.db")
    _seed_episodes(
        repository,
        ["show-a", "show-b"],
        [MONDAY, date(2025, 3, 5), date(2025, 3, 10)],
    )
    request = _request(end_date=date(2025, 3, 17))

    result = _service(repository, settings).allocate(request)

    per_candidate = [item for item in result.conflicts if item.air_date is not None]
    summary_conflicts = [item for item in result.conflicts if item.air_date is None]
    assert result.summary.placeable == 6
    assert len(per_candidate) == 4
    assert all(item.conflict_kind is ConflictKind.NO_INVENTORY for item in per_candidate)
    assert len(summary_conflicts) == 1
    assert "Could not place 4" in summary_conflicts[0].reason
    _assert_conserved(result)


def test_relaxed_reports_only_the_shortfall(tmp_path):
    repository, settings = _build_repository(tmp_path, "relaxed_conflicts.db")
    _seed_episodes(
        repository,
        ["show-a", "show-b"],
        [MONDAY, date(2025, 3, 5), date(2025, 3, 10)],
    )
    request = _request(end_date=date(2025, 3, 17), fallback_strategy="relaxed")

    result = _service(repository, settings).allocate(request)

    assert result.summary.placeable == 6
    assert len(result.conflicts) == 1
    assert result.conflicts[0].show_id == ""
    assert "Could not place 4" in result.conflicts[0].reason
    _assert_conserved(result)


def _seed_week_quota_layout(repository: DataRepository) -> BulkAllocationInput:
    _seed_episodes(repository, ["show-a", "show-b"], [MONDAY, date(2025, 3, 5), date(2025, 3, 10)])
    return _request(end_date=date(2025, 3, 12), spots_requested=6)


def test_strict_never_exceeds_quotas(tmp_path):
    repository, settings = _build_repository(tmp_path, "strict_quota.db")
    request = _seed_week_quota_layout(repository)

    result = _service(repository, settings).allocate(request)

    assert result.summary.placeable == 5
    assert all(
        bucket.placed <= bucket.requested for bucket in result.summary.by_week.values()
    )
    assert all(
        bucket.placed <= bucket.requested for bucket in result.summary.by_show.values()
    )
    rejected = [item for item in result.conflicts if item.air_date is not None]
    assert [(item.show_id, item.air_date) for item in rejected] == [
        ("show-b", date(2025, 3, 12))
    ]
    _assert_conserved(result)


def test_relaxed_fallback_fills_past_weekly_quota(tmp_path):
    repository, settings = _build_repository(tmp_path, "relaxed_quota.db")
    request = replace(_seed_week_quota_layout(repository), fallback_strategy=FallbackStrategy.RELAXED)

    result = _service(repository, settings).allocate(request)

    assert result.summary.placeable == 6
    assert result.conflicts == []
    assert result.summary.by_week["2025-03-03"].placed == 4
    assert result.summary.by_week["2025-03-03"].requested == 3
    _assert_one_spot_per_show_day(result)
    _assert_conserved(result)


def test_fill_anywhere_matches_relaxed(tmp_path):
    repository, settings = _build_repository(tmp_path, "fill_anywhere.db")
    request = _seed_week_quota_layout(repository)
    service = _service(repository, settings)

    relaxed = service.allocate(replace(request, fallback_strategy=FallbackStrategy.RELAXED))
    anywhere = service.allocate(replace(request, fallback_strategy=FallbackStrategy.FILL_ANYWHERE))

    assert anywhere.would_place == relaxed.would_place
    assert anywhere.summary == relaxed.summary


def test_allocation_is_deterministic(tmp_path):
    settings = _build_test_settings(tmp_path, "deterministic.db")
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.seed_synthetic_data(start_date=MONDAY)
    show_ids = repository.list_show_ids()[:3]
    request = _request(
        show_ids=show_ids,
        end_date=MONDAY + timedelta(days=27),
        weekdays=[1, 2, 3, 4, 5],
        placement_types=["pre-roll", "mid-roll"],
        spots_requested=20,
        fallback_strategy="relaxed",
    )
    service = _service(repository, settings)

    first = service.allocate(request)
    second = service.allocate(request)

    assert first == second
    _assert_conserved(first)
    _assert_one_spot_per_show_day(first)


def test_existing_spot_blocks_show_day_under_strict(tmp_path):
    repository, settings = _build_repository(tmp_path, "existing_spot.db")
    _seed_episodes(repository, ["show-a", "show-b"], [MONDAY])
    repository.create_scheduled_spot("show-a", MONDAY, MID)
    request = _request(end_date=MONDAY, weekdays=[1], spots_requested=2)

    result = _service(repository, settings).allocate(request)

    assert [item.show_id for item in result.would_place] == ["show-b"]
    blocked = [
        item for item in result.conflicts if item.conflict_kind is ConflictKind.MAX_SPOTS_REACHED
    ]
    assert len(blocked) == 1
    assert blocked[0].show_id == "show-a"
    _assert_conserved(result)


def test_failed_daily_lookup_is_reported_as_no_inventory(monkeypatch, tmp_path):
    repository, settings = _build_repository(tmp_path, "daily_lookup_failure.db")
    _seed_episodes(repository, ["show-a"], [MONDAY])

    def _fail(self, show_id, air_date, placement_type=None):
        raise RepositoryError("disk unavailable")

    monkeypatch.setattr(InventorySnapshot, "count_scheduled_spots", _fail)
    request = _request(show_ids=["show-a"], end_date=MONDAY, weekdays=[1], spots_requested=1)

    result = _service(repository, settings).allocate(request)

    rejected = [item for item in result.conflicts if item.air_date is not None]
    assert result.would_place == []
    assert [item.conflict_kind for item in rejected] == [ConflictKind.NO_INVENTORY]
    _assert_conserved(result)


def test_single_spot_policy_keeps_one_spot_per_show_day(tmp_path):
    repository, settings = _build_repository(tmp_path, "single_policy.db")
    _seed_episodes(repository, ["show-a"], [MONDAY], slots={PRE: 1, MID: 1})
    request = _request(
        show_ids=["show-a"],
        end_date=MONDAY,
        weekdays=[1],
        placement_types=["pre-roll", "mid-roll"],
        spots_requested=2,
        fallback_strategy="relaxed",
    )

    result = _service(repository, settings).allocate(request)

    assert result.summary.placeable == 1
    assert result.would_place[0].placement_type is PRE
    assert not any(
        item.conflict_kind is ConflictKind.MAX_SPOTS_REACHED for item in result.conflicts
    )


def test_multiple_spots_respect_daily_maximum(tmp_path):
    repository, settings = _build_repository(tmp_path, "multiple_max.db")
    _seed_episodes(repository, ["show-a"], [MONDAY], slots={PRE: 1, MID: 1, POST: 1})
    request = _request(
        show_ids=["show-a"],
        end_date=MONDAY,
        weekdays=[1],
        placement_types=["pre-roll", "mid-roll", "post-roll"],
        spots_requested=3,
        allow_multiple_per_show_per_day=True,
        max_spots_per_show_per_day=2,
    )

    result = _service(repository, settings).allocate(request)

    assert [item.placement_type for item in result.would_place] == [PRE, MID]
    assert len(result.conflicts) == 1
    assert result.conflicts[0].air_date is None


def test_multiple_spots_without_maximum_are_uncapped(tmp_path):
    repository, settings = _build_repository(tmp_path, "multiple_uncapped.db")
    _seed_episodes(repository, ["show-a"], [MONDAY], slots={PRE: 1, MID: 1, POST: 1})
    request = _request(
        show_ids=["show-a"],
        end_date=MONDAY,
        weekdays=[1],
        placement_types=["pre-roll", "mid-roll", "post-roll"],
        spots_requested=3,
        allow_multiple_per_show_per_day=True,
    )

    result = _service(repository, settings).allocate(request)

    assert result.summary.placeable == 3
    assert result.conflicts == []


def test_resolver_failure_becomes_a_conflict(monkeypatch, tmp_path):
    repository, settings = _build_repository(tmp_path, "resolver_failure.db")
    _seed_episodes(repository, ["show-a", "show-b"], [MONDAY, date(2025, 3, 5)])
    resolver = InventoryAvailabilityService(repository=repository, settings=settings)
    original = resolver.check_availability

    def _flaky(show_id, air_date, placement_type, **kwargs):
        if show_id == "show-b" and air_date == MONDAY:
            raise RuntimeError("resolver exploded")
        return original(show_id, air_date, placement_type, **kwargs)

    monkeypatch.setattr(resolver, "check_availability", _flaky)
    request = _request(end_date=date(2025, 3, 5), spots_requested=4)

    with repository.read_snapshot() as snapshot:
        result = allocate_bulk_spots(request, resolver, snapshot)

    assert result.summary.placeable == 3
    failed = [item for item in result.conflicts if item.air_date is not None]
    assert [(item.show_id, item.air_date) for item in failed] == [("show-b", MONDAY)]
    assert failed[0].conflict_kind is ConflictKind.NO_INVENTORY
    _assert_conserved(result)


def test_passed_deadline_returns_incomplete_plan(tmp_path):
    repository, settings = _build_repository(tmp_path, "deadline.db")
    request = _request(fallback_strategy="relaxed")
    _seed_episodes(repository, ["show-a", "show-b"], eligible_dates(request))

    result = _service(repository, settings).allocate(request, deadline_seconds=0)

    assert result.incomplete is True
    assert result.summary.placeable < result.summary.requested
    _assert_conserved(result)


def test_no_eligible_dates_yields_only_shortfall(tmp_path):
    repository, settings = _build_repository(tmp_path, "no_dates.db")
    request = _request(end_date=date(2025, 3, 7), weekdays=[0, 6], spots_requested=3)

    result = _service(repository, settings).allocate(request)

    assert result.would_place == []
    assert result.summary.by_week == {}
    assert len(result.conflicts) == 1
    assert result.summary.unplaceable == 3


def test_zero_spots_requested_places_nothing(tmp_path):
    repository, settings = _build_repository(tmp_path, "zero_spots.db")
    _seed_episodes(repository, ["show-a", "show-b"], [MONDAY])

    result = _service(repository, settings).allocate(_request(spots_requested=0))

    assert result.would_place == []
    assert result.conflicts == []


def test_unknown_shows_raise_when_required(tmp_path):
    repository, settings = _build_repository(tmp_path, "unknown_shows.db")
    request = _request(show_ids=["show-a", "show-z"])

    with pytest.raises(ShowNotFoundError) as exc_info:
        _service(repository, settings).allocate(request, require_known_shows=True)

    assert exc_info.value.missing_show_ids == ["show-z"]
