"""Domain-level validation rules for bulk allocation requests."""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from spotplanner.domain.models import (
    BulkAllocationInput,
    FallbackStrategy,
    PlacementType,
    PlacementTypeError,
    parse_placement_type,
)


class AllocationValidationError(ValueError):
    """Raised when an allocation request is rejected before candidate generation."""


def parse_fallback_strategy(value: str | FallbackStrategy) -> FallbackStrategy:
    if isinstance(value, FallbackStrategy):
        return value
    try:
        return FallbackStrategy(str(value).strip().lower())
    except ValueError as exc:
        raise AllocationValidationError(f"Unknown fallback strategy: {value!r}") from exc


def build_allocation_input(
    *,
    advertiser_id: str,
    show_ids: Iterable[str],
    start_date: date,
    end_date: date,
    weekdays: Iterable[int],
    placement_types: Iterable[str | PlacementType],
    spots_requested: int,
    campaign_id: Optional[str] = None,
    agency_id: Optional[str] = None,
    spots_per_week: Optional[int] = None,
    allow_multiple_per_show_per_day: bool = False,
    max_spots_per_show_per_day: Optional[int] = None,
    fallback_strategy: str | FallbackStrategy = FallbackStrategy.STRICT,
) -> BulkAllocationInput:
    """Parse loosely typed caller values into an immutable request."""
    try:
        parsed_placements = tuple(parse_placement_type(item) for item in placement_types)
    except PlacementTypeError as exc:
        raise AllocationValidationError(str(exc)) from exc

    request = BulkAllocationInput(
        advertiser_id=advertiser_id,
        show_ids=tuple(show_ids),
        start_date=start_date,
        end_date=end_date,
        weekdays=frozenset(int(day) for day in weekdays),
        placement_types=parsed_placements,
        spots_requested=spots_requested,
        campaign_id=campaign_id,
        agency_id=agency_id,
        spots_per_week=spots_per_week,
        allow_multiple_per_show_per_day=allow_multiple_per_show_per_day,
        max_spots_per_show_per_day=max_spots_per_show_per_day,
        fallback_strategy=parse_fallback_strategy(fallback_strategy),
    )
    validate_allocation_input(request)
    return request


def validate_allocation_input(request: BulkAllocationInput) -> None:
    """Reject requests the allocator cannot run; out-of-range weekdays and
    inverted date ranges are allowed and simply yield no candidates."""
    for placement in request.placement_types:
        if not isinstance(placement, PlacementType):
            raise AllocationValidationError(f"Unknown placement type: {placement!r}")
    if len(set(request.placement_types)) != len(request.placement_types):
        raise AllocationValidationError("placement_types must not contain duplicates")
    if len(set(request.show_ids)) != len(request.show_ids):
        raise AllocationValidationError("show_ids must not contain duplicates")
    if request.spots_requested < 0:
        raise AllocationValidationError("spots_requested must be >= 0")
    if request.spots_per_week is not None and request.spots_per_week <= 0:
        raise AllocationValidationError("spots_per_week must be > 0")
    if (
        request.max_spots_per_show_per_day is not None
        and request.max_spots_per_show_per_day <= 0
    ):
        raise AllocationValidationError("max_spots_per_show_per_day must be > 0")
    if not isinstance(request.fallback_strategy, FallbackStrategy):
        raise AllocationValidationError(
            f"Unknown fallback strategy: {request.fallback_strategy!r}"
        )
