"""Tests for placement parsing and allocation request validation."""

from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from spotplanner.domain.constraints import (
    AllocationValidationError,
    build_allocation_input,
    parse_fallback_strategy,
    validate_allocation_input,
)
from spotplanner.domain.models import (
    FallbackStrategy,
    PlacementType,
    PlacementTypeError,
    parse_placement_type,
)


def valid_request(**overrides):
    """Return a valid baseline request, optionally overriding fields."""
    defaults = {
        "advertiser_id": "adv-1",
        "show_ids": ["show-a", "show-b"],
        "start_date": date(2025, 3, 3),
        "end_date": date(2025, 3, 30),
        "weekdays": [1, 3],
        "placement_types": ["pre-roll"],
        "spots_requested": 10,
    }
    defaults.update(overrides)
    return build_allocation_input(**defaults)


# --- placement parsing ---

@pytest.mark.parametrize(
    "raw, expected",
    [
        ("pre-roll", PlacementType.PRE_ROLL),
        ("Pre-Roll", PlacementType.PRE_ROLL),
        ("preroll", PlacementType.PRE_ROLL),
        ("pre_roll", PlacementType.PRE_ROLL),
        (" MID-ROLL ", PlacementType.MID_ROLL),
        ("midroll", PlacementType.MID_ROLL),
        ("post_roll", PlacementType.POST_ROLL),
        (PlacementType.POST_ROLL, PlacementType.POST_ROLL),
    ],
)
def test_parse_placement_type_accepts_synonyms(raw, expected) -> None:
    assert parse_placement_type(raw) is expected


@pytest.mark.parametrize("raw", ["", "banner", "pre-rolls", None, 3])
def test_parse_placement_type_rejects_unknown_values(raw) -> None:
    with pytest.raises(PlacementTypeError):
        parse_placement_type(raw)


def test_placement_type_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        parse_placement_type("sponsorship")


# --- fallback strategy ---

def test_parse_fallback_strategy_normalizes_case() -> None:
    assert parse_fallback_strategy(" Relaxed ") is FallbackStrategy.RELAXED
    assert parse_fallback_strategy(FallbackStrategy.STRICT) is FallbackStrategy.STRICT


def test_parse_fallback_strategy_rejects_unknown() -> None:
    with pytest.raises(AllocationValidationError):
        parse_fallback_strategy("greedy")


# --- request building ---

def test_valid_request_is_built_with_parsed_values() -> None:
    request = valid_request(placement_types=["Pre-Roll", "mid_roll"], fallback_strategy="relaxed")

    assert request.placement_types == (PlacementType.PRE_ROLL, PlacementType.MID_ROLL)
    assert request.show_ids == ("show-a", "show-b")
    assert request.weekdays == frozenset({1, 3})
    assert request.fallback_strategy is FallbackStrategy.RELAXED


def test_unknown_placement_becomes_validation_error() -> None:
    with pytest.raises(AllocationValidationError):
        valid_request(placement_types=["pre-roll", "billboard"])


def test_duplicate_placements_after_normalization_raise() -> None:
    with pytest.raises(AllocationValidationError):
        valid_request(placement_types=["pre-roll", "preroll"])


def test_duplicate_show_ids_raise() -> None:
    with pytest.raises(AllocationValidationError):
        valid_request(show_ids=["show-a", "show-a"])


def test_negative_spots_requested_raises() -> None:
    with pytest.raises(AllocationValidationError):
        valid_request(spots_requested=-1)


def test_zero_spots_requested_is_allowed() -> None:
    assert valid_request(spots_requested=0).spots_requested == 0


@pytest.mark.parametrize("field_name", ["spots_per_week", "max_spots_per_show_per_day"])
def test_non_positive_caps_raise(field_name) -> None:
    with pytest.raises(AllocationValidationError):
        valid_request(**{field_name: 0})


def test_inverted_date_range_is_not_a_validation_error() -> None:
    request = valid_request(start_date=date(2025, 3, 30), end_date=date(2025, 3, 1))
    validate_allocation_input(request)


def test_validate_rejects_raw_strategy_string() -> None:
    request = replace(valid_request(), fallback_strategy="relaxed")
    with pytest.raises(AllocationValidationError):
        validate_allocation_input(request)
