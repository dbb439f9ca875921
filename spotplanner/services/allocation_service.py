"""Inventory-aware bulk spot allocation.

The engine expands a request into candidate slots, places spots round-robin
under per-placement, per-show and per-week quotas, then optionally runs a
quota-free fallback pass. It never writes; callers commit the returned plan.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from spotplanner.domain.constraints import validate_allocation_input
from spotplanner.domain.models import (
    AllocationResult,
    AllocationSummary,
    AvailabilityStatus,
    BulkAllocationInput,
    ConflictKind,
    DailyKey,
    FallbackStrategy,
    MultiSpotAllowance,
    PlacementConflict,
    PlacementResult,
    PlacementType,
    QuotaTargets,
    ShowMetadata,
    SpotKey,
    SummaryBucket,
)
from spotplanner.repository.data_repository import DataRepository, InventorySnapshot
from spotplanner.services.availability_service import InventoryAvailabilityService
from spotplanner.utils.config import Settings, get_settings
from spotplanner.utils.logger import get_logger


logger = get_logger(__name__)


class ShowNotFoundError(Exception):
    """Raised when an allocation references shows that do not exist."""

    def __init__(self, missing_show_ids: Sequence[str]) -> None:
        self.missing_show_ids = list(missing_show_ids)
        super().__init__(f"Shows not found: {', '.join(self.missing_show_ids)}")


@dataclass
class AllocationState:
    """Counters for one allocation run; discarded when the run returns."""

    placements: list[PlacementResult] = field(default_factory=list)
    conflicts: list[PlacementConflict] = field(default_factory=list)
    placed: set[SpotKey] = field(default_factory=set)
    rejected: set[SpotKey] = field(default_factory=set)
    daily_counts: dict[DailyKey, int] = field(default_factory=dict)
    placed_by_type: dict[PlacementType, int] = field(default_factory=dict)
    placed_by_show: dict[str, int] = field(default_factory=dict)
    placed_by_week: dict[str, int] = field(default_factory=dict)
    incomplete: bool = False

    @property
    def spots_placed(self) -> int:
        return len(self.placements)


@dataclass(frozen=True)
class _RunContext:
    request: BulkAllocationInput
    resolver: InventoryAvailabilityService
    reader: Optional[InventorySnapshot]
    show_names: dict[str, str]
    deadline: Optional[float]
    now: Optional[datetime]

    def deadline_passed(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline


def weekday_number(day: date) -> int:
    """Return 0 for Sunday through 6 for Saturday."""
    return (day.weekday() + 1) % 7


def week_key(day: date) -> str:
    """Return the ISO date of the Monday that starts `day`'s week."""
    return (day - timedelta(days=day.weekday())).isoformat()


def eligible_dates(request: BulkAllocationInput) -> list[date]:
    dates: list[date] = []
    current = request.start_date
    while current <= request.end_date:
        if weekday_number(current) in request.weekdays:
            dates.append(current)
        current += timedelta(days=1)
    return dates


def build_candidates(request: BulkAllocationInput) -> list[SpotKey]:
    """Cross every eligible date with every requested show and placement."""
    return [
        SpotKey(show_id, air_date, placement)
        for air_date in eligible_dates(request)
        for show_id in request.show_ids
        for placement in request.placement_types
    ]


def order_candidates(
    candidates: Sequence[SpotKey],
    request: BulkAllocationInput,
) -> list[SpotKey]:
    """Sort by date, then caller show order, then caller placement order."""
    show_rank = {show_id: index for index, show_id in enumerate(request.show_ids)}
    placement_rank = {
        placement: index for index, placement in enumerate(request.placement_types)
    }
    return sorted(
        candidates,
        key=lambda item: (
            item.air_date,
            show_rank[item.show_id],
            placement_rank[item.placement_type],
        ),
    )


def compute_quota_targets(
    request: BulkAllocationInput,
    dates: Sequence[date],
) -> QuotaTargets:
    requested = request.spots_requested
    weeks = sorted({week_key(day) for day in dates})
    if request.spots_per_week is not None:
        per_week = request.spots_per_week
    else:
        per_week = math.ceil(requested / len(weeks)) if weeks else 0
    return QuotaTargets(
        spots_per_placement_type=(
            math.ceil(requested / len(request.placement_types))
            if request.placement_types
            else 0
        ),
        spots_per_show=(
            math.ceil(requested / len(request.show_ids)) if request.show_ids else 0
        ),
        spots_per_week={week: per_week for week in weeks},
    )


def _daily_allowance(
    candidate: SpotKey,
    context: _RunContext,
    state: AllocationState,
) -> Optional[MultiSpotAllowance]:
    """Apply the per-show-per-day policy; None means no daily cap applies."""
    request = context.request
    if request.allow_multiple_per_show_per_day and request.max_spots_per_show_per_day is None:
        return None
    in_run = state.daily_counts.get(DailyKey(candidate.show_id, candidate.air_date), 0)
    try:
        return context.resolver.check_multi_spot_allowance(
            candidate.show_id,
            candidate.air_date,
            in_run + 1,
            request.allow_multiple_per_show_per_day,
            request.max_spots_per_show_per_day or 1,
            reader=context.reader,
        )
    except Exception:
        logger.exception(
            "Multi-spot check failed | show_id=%s | date=%s",
            candidate.show_id,
            candidate.air_date.isoformat(),
        )
        return MultiSpotAllowance(
            allowed=False,
            max_allowed=0,
            reason="Multi-spot check failed",
            conflict_kind=ConflictKind.NO_INVENTORY,
        )


def _check_candidate(candidate: SpotKey, context: _RunContext) -> AvailabilityStatus:
    try:
        return context.resolver.check_availability(
            candidate.show_id,
            candidate.air_date,
            candidate.placement_type,
            campaign_id=context.request.campaign_id,
            advertiser_id=context.request.advertiser_id,
            reader=context.reader,
            now=context.now,
        )
    except Exception:
        logger.exception(
            "Availability check failed | show_id=%s | date=%s | placement=%s",
            candidate.show_id,
            candidate.air_date.isoformat(),
            candidate.placement_type.value,
        )
        return AvailabilityStatus(
            available=False,
            reason="Availability check failed",
            conflict_kind=ConflictKind.NO_INVENTORY,
        )


def _record_placement(
    candidate: SpotKey,
    status: AvailabilityStatus,
    context: _RunContext,
    state: AllocationState,
) -> None:
    state.placements.append(
        PlacementResult(
            show_id=candidate.show_id,
            show_name=context.show_names.get(candidate.show_id),
            air_date=candidate.air_date,
            placement_type=candidate.placement_type,
            rate=status.rate or 0.0,
            episode_id=status.episode_id,
        )
    )
    daily_key = DailyKey(candidate.show_id, candidate.air_date)
    week = week_key(candidate.air_date)
    state.placed.add(candidate)
    state.daily_counts[daily_key] = state.daily_counts.get(daily_key, 0) + 1
    state.placed_by_type[candidate.placement_type] = (
        state.placed_by_type.get(candidate.placement_type, 0) + 1
    )
    state.placed_by_show[candidate.show_id] = state.placed_by_show.get(candidate.show_id, 0) + 1
    state.placed_by_week[week] = state.placed_by_week.get(week, 0) + 1


def _record_conflict(
    candidate: SpotKey,
    reason: Optional[str],
    kind: Optional[ConflictKind],
    context: _RunContext,
    state: AllocationState,
) -> None:
    state.conflicts.append(
        PlacementConflict(
            show_id=candidate.show_id,
            show_name=context.show_names.get(candidate.show_id),
            air_date=candidate.air_date,
            placement_type=candidate.placement_type,
            reason=reason or "Inventory not available",
            conflict_kind=kind,
        )
    )


def _daily_policy_open(
    candidate: SpotKey,
    context: _RunContext,
    state: AllocationState,
    *,
    record_conflicts: bool,
) -> bool:
    allowance = _daily_allowance(candidate, context, state)
    if allowance is None or allowance.allowed:
        return True
    in_run = state.daily_counts.get(DailyKey(candidate.show_id, candidate.air_date), 0)
    if in_run == 0:
        # Blocked by spots scheduled before this run, or the lookup failed.
        state.rejected.add(candidate)
        if record_conflicts:
            _record_conflict(
                candidate,
                allowance.reason,
                allowance.conflict_kind or ConflictKind.MAX_SPOTS_REACHED,
                context,
                state,
            )
    return False


def _attempt(
    candidate: SpotKey,
    context: _RunContext,
    state: AllocationState,
    *,
    record_conflicts: bool,
) -> bool:
    status = _check_candidate(candidate, context)
    if status.available:
        _record_placement(candidate, status, context, state)
        return True

    state.rejected.add(candidate)
    if record_conflicts:
        _record_conflict(candidate, status.reason, status.conflict_kind, context, state)
    return False


def run_primary_pass(
    candidates: Sequence[SpotKey],
    targets: QuotaTargets,
    context: _RunContext,
    state: AllocationState,
) -> None:
    """Cycle through ordered candidates under the distribution quotas.

    The cycle is capped at twice the candidate count because skip conditions can
    make a whole lap place nothing.
    """
    request = context.request
    if not candidates:
        return
    record_conflicts = request.fallback_strategy is FallbackStrategy.STRICT
    max_iterations = len(candidates) * 2
    for iteration in range(max_iterations):
        if state.spots_placed >= request.spots_requested:
            break
        if context.deadline_passed():
            state.incomplete = True
            break
        candidate = candidates[iteration % len(candidates)]
        if candidate in state.placed or candidate in state.rejected:
            continue
        if not _daily_policy_open(
            candidate, context, state, record_conflicts=record_conflicts
        ):
            continue
        if state.placed_by_type.get(candidate.placement_type, 0) >= targets.spots_per_placement_type:
            continue
        if state.placed_by_show.get(candidate.show_id, 0) >= targets.spots_per_show:
            continue
        week = week_key(candidate.air_date)
        if state.placed_by_week.get(week, 0) >= targets.spots_per_week.get(week, 0):
            continue
        _attempt(candidate, context, state, record_conflicts=record_conflicts)


def run_fallback_pass(context: _RunContext, state: AllocationState) -> None:
    """Fill the remainder ignoring distribution quotas, earliest dates first."""
    request = context.request
    if request.fallback_strategy is FallbackStrategy.STRICT:
        return
    # fill_anywhere expands exactly like relaxed for now; it stays within the
    # requested shows and weekdays.
    fallback_candidates = [
        candidate for candidate in build_candidates(request) if candidate not in state.placed
    ]
    fallback_candidates.sort(key=lambda item: item.air_date)
    logger.debug(
        "Fallback pass | strategy=%s | candidates=%s | remaining=%s",
        request.fallback_strategy.value,
        len(fallback_candidates),
        request.spots_requested - state.spots_placed,
    )
    for candidate in fallback_candidates:
        if state.spots_placed >= request.spots_requested:
            break
        if context.deadline_passed():
            state.incomplete = True
            break
        if candidate in state.placed or candidate in state.rejected:
            continue
        if not _daily_policy_open(candidate, context, state, record_conflicts=False):
            continue
        _attempt(candidate, context, state, record_conflicts=False)


def build_summary(
    request: BulkAllocationInput,
    targets: QuotaTargets,
    state: AllocationState,
) -> AllocationSummary:
    """Summarize from the run counters rather than the placement list."""
    by_placement_type = {
        placement.value: SummaryBucket(
            requested=targets.spots_per_placement_type,
            placed=state.placed_by_type.get(placement, 0),
        )
        for placement in request.placement_types
    }
    by_show = {
        show_id: SummaryBucket(
            requested=targets.spots_per_show,
            placed=state.placed_by_show.get(show_id, 0),
        )
        for show_id in request.show_ids
    }
    by_week = {
        week: SummaryBucket(requested=requested, placed=state.placed_by_week.get(week, 0))
        for week, requested in targets.spots_per_week.items()
    }
    for week, placed in state.placed_by_week.items():
        if week not in by_week:
            by_week[week] = SummaryBucket(requested=0, placed=placed)
    placeable = sum(state.placed_by_show.values())
    return AllocationSummary(
        requested=request.spots_requested,
        placeable=placeable,
        unplaceable=request.spots_requested - placeable,
        by_placement_type=by_placement_type,
        by_show=by_show,
        by_week=dict(sorted(by_week.items())),
    )


def allocate_bulk_spots(
    request: BulkAllocationInput,
    resolver: InventoryAvailabilityService,
    reader: Optional[InventorySnapshot] = None,
    *,
    show_metadata: Optional[Sequence[ShowMetadata]] = None,
    deadline: Optional[float] = None,
    now: Optional[datetime] = None,
) -> AllocationResult:
    """Turn a bulk request into a conflict-free placement plan.

    `deadline` is a `time.monotonic()` value; when it passes, the loops stop
    and the partial plan comes back with `incomplete=True`.
    """
    validate_allocation_input(request)
    context = _RunContext(
        request=request,
        resolver=resolver,
        reader=reader,
        show_names={show.show_id: show.name for show in show_metadata or ()},
        deadline=deadline,
        now=now,
    )
    state = AllocationState()

    dates = eligible_dates(request)
    candidates = order_candidates(build_candidates(request), request)
    targets = compute_quota_targets(request, dates)
    logger.debug(
        "Primary pass | candidates=%s | per_type=%s | per_show=%s | weeks=%s",
        len(candidates),
        targets.spots_per_placement_type,
        targets.spots_per_show,
        len(targets.spots_per_week),
    )

    run_primary_pass(candidates, targets, context, state)
    if state.spots_placed < request.spots_requested and not state.incomplete:
        run_fallback_pass(context, state)

    remaining = request.spots_requested - state.spots_placed
    if remaining > 0:
        state.conflicts.append(
            PlacementConflict(
                show_id="",
                show_name=None,
                air_date=None,
                placement_type=None,
                reason=f"Could not place {remaining} spot(s) due to inventory constraints",
                conflict_kind=ConflictKind.NO_INVENTORY,
            )
        )

    summary = build_summary(request, targets, state)
    logger.info(
        (
            "Bulk allocation completed | strategy=%s | requested=%s | placed=%s | "
            "conflicts=%s | incomplete=%s"
        ),
        request.fallback_strategy.value,
        request.spots_requested,
        summary.placeable,
        len(state.conflicts),
        state.incomplete,
    )
    return AllocationResult(
        would_place=list(state.placements),
        conflicts=list(state.conflicts),
        summary=summary,
        incomplete=state.incomplete,
    )


class BulkAllocationService:
    """Runs allocations against one consistent inventory snapshot."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        availability_service: Optional[InventoryAvailabilityService] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._availability_service = availability_service or InventoryAvailabilityService(
            repository=self._repository,
            settings=self._settings,
        )

    def allocate(
        self,
        request: BulkAllocationInput,
        *,
        show_metadata: Optional[Sequence[ShowMetadata]] = None,
        deadline_seconds: Optional[float] = None,
        require_known_shows: bool = False,
        now: Optional[datetime] = None,
    ) -> AllocationResult:
        validate_allocation_input(request)
        timeout = (
            deadline_seconds
            if deadline_seconds is not None
            else self._settings.allocation_deadline_seconds
        )
        deadline = time.monotonic() + timeout if timeout is not None else None

        with self._repository.read_snapshot() as snapshot:
            if show_metadata is None or require_known_shows:
                known = snapshot.list_shows(request.show_ids)
                if require_known_shows:
                    known_ids = {show.show_id for show in known}
                    missing = [show_id for show_id in request.show_ids if show_id not in known_ids]
                    if missing:
                        raise ShowNotFoundError(missing)
                if show_metadata is None:
                    show_metadata = known
            return allocate_bulk_spots(
                request,
                self._availability_service,
                snapshot,
                show_metadata=show_metadata,
                deadline=deadline,
                now=now,
            )
