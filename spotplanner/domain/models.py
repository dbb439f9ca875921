"""Domain models for ad inventory availability and bulk spot allocation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import NamedTuple, Optional


class PlacementTypeError(ValueError):
    """Raised when a placement type string cannot be mapped to a known pool."""


class PlacementType(str, Enum):
    PRE_ROLL = "pre-roll"
    MID_ROLL = "mid-roll"
    POST_ROLL = "post-roll"


_PLACEMENT_SYNONYMS = {
    "pre-roll": PlacementType.PRE_ROLL,
    "preroll": PlacementType.PRE_ROLL,
    "pre_roll": PlacementType.PRE_ROLL,
    "pre roll": PlacementType.PRE_ROLL,
    "pre": PlacementType.PRE_ROLL,
    "mid-roll": PlacementType.MID_ROLL,
    "midroll": PlacementType.MID_ROLL,
    "mid_roll": PlacementType.MID_ROLL,
    "mid roll": PlacementType.MID_ROLL,
    "mid": PlacementType.MID_ROLL,
    "post-roll": PlacementType.POST_ROLL,
    "postroll": PlacementType.POST_ROLL,
    "post_roll": PlacementType.POST_ROLL,
    "post roll": PlacementType.POST_ROLL,
    "post": PlacementType.POST_ROLL,
}


def parse_placement_type(value: str | PlacementType) -> PlacementType:
    """Normalize "Pre-Roll", "preroll", "pre_roll" and friends to one enum."""
    if isinstance(value, PlacementType):
        return value
    if not isinstance(value, str):
        raise PlacementTypeError(f"Unknown placement type: {value!r}")
    placement = _PLACEMENT_SYNONYMS.get(value.strip().lower())
    if placement is None:
        raise PlacementTypeError(f"Unknown placement type: {value!r}")
    return placement


class ConflictKind(str, Enum):
    SOLD = "sold"
    HELD = "held"
    # Declared for callers; no resolver path produces these two yet.
    RESERVED = "reserved"
    COMPETITIVE = "competitive"
    NO_INVENTORY = "no_inventory"
    MAX_SPOTS_REACHED = "max_spots_reached"


class FallbackStrategy(str, Enum):
    STRICT = "strict"
    RELAXED = "relaxed"
    FILL_ANYWHERE = "fill_anywhere"


class SpotKey(NamedTuple):
    show_id: str
    air_date: date
    placement_type: PlacementType


class DailyKey(NamedTuple):
    show_id: str
    air_date: date


@dataclass(frozen=True)
class ShowMetadata:
    show_id: str
    name: str


@dataclass(frozen=True)
class Episode:
    episode_id: str
    show_id: str
    air_date: date
    status: str


@dataclass(frozen=True)
class PlacementCounts:
    """Slot counters for one placement pool of one episode."""

    total: int
    available: int
    reserved: int
    booked: int


@dataclass(frozen=True)
class EpisodeInventory:
    episode_id: str
    pre_roll: PlacementCounts
    mid_roll: PlacementCounts
    post_roll: PlacementCounts

    def counts_for(self, placement_type: PlacementType) -> PlacementCounts:
        if placement_type is PlacementType.PRE_ROLL:
            return self.pre_roll
        if placement_type is PlacementType.MID_ROLL:
            return self.mid_roll
        return self.post_roll


@dataclass(frozen=True)
class ReservationHold:
    """An active reservation item covering one episode placement."""

    reservation_id: str
    status: str
    campaign_id: Optional[str]
    advertiser_id: Optional[str]
    advertiser_name: Optional[str]
    expires_at: Optional[datetime]

    def is_owned_by(
        self,
        campaign_id: Optional[str],
        advertiser_id: Optional[str],
    ) -> bool:
        if campaign_id and self.campaign_id == campaign_id:
            return True
        if advertiser_id and self.advertiser_id == advertiser_id:
            return True
        return False


@dataclass(frozen=True)
class RateCard:
    show_id: str
    effective_date: date
    pre_roll_rate: Optional[float]
    mid_roll_rate: Optional[float]
    post_roll_rate: Optional[float]

    def rate_for(self, placement_type: PlacementType) -> float:
        if placement_type is PlacementType.PRE_ROLL:
            rate = self.pre_roll_rate
        elif placement_type is PlacementType.MID_ROLL:
            rate = self.mid_roll_rate
        else:
            rate = self.post_roll_rate
        return float(rate) if rate is not None else 0.0


@dataclass(frozen=True)
class InventoryDay:
    """Stored inventory counters for one show/date/placement pool."""

    air_date: date
    episode_id: str
    placement_type: PlacementType
    counts: PlacementCounts


@dataclass(frozen=True)
class AvailabilityStatus:
    available: bool
    available_slots: int = 0
    total_slots: int = 0
    rate: float = 0.0
    episode_id: Optional[str] = None
    reason: Optional[str] = None
    conflict_kind: Optional[ConflictKind] = None
    holder_campaign_id: Optional[str] = None
    holder_advertiser_id: Optional[str] = None
    holder_name: Optional[str] = None
    hold_expires_at: Optional[datetime] = None


@dataclass(frozen=True)
class MultiSpotAllowance:
    allowed: bool
    max_allowed: int
    reason: Optional[str] = None
    # Set only when the allowance could not be determined.
    conflict_kind: Optional[ConflictKind] = None


@dataclass(frozen=True)
class BulkAllocationInput:
    """One allocation request; weekdays use 0 = Sunday ... 6 = Saturday."""

    advertiser_id: str
    show_ids: tuple[str, ...]
    start_date: date
    end_date: date
    weekdays: frozenset[int]
    placement_types: tuple[PlacementType, ...]
    spots_requested: int
    campaign_id: Optional[str] = None
    agency_id: Optional[str] = None
    spots_per_week: Optional[int] = None
    allow_multiple_per_show_per_day: bool = False
    max_spots_per_show_per_day: Optional[int] = None
    fallback_strategy: FallbackStrategy = FallbackStrategy.STRICT


@dataclass(frozen=True)
class PlacementResult:
    show_id: str
    show_name: Optional[str]
    air_date: date
    placement_type: PlacementType
    rate: float
    episode_id: Optional[str]


@dataclass(frozen=True)
class PlacementConflict:
    show_id: str
    show_name: Optional[str]
    air_date: Optional[date]
    placement_type: Optional[PlacementType]
    reason: str
    conflict_kind: Optional[ConflictKind]


@dataclass
class SummaryBucket:
    requested: int = 0
    placed: int = 0


@dataclass(frozen=True)
class AllocationSummary:
    requested: int
    placeable: int
    unplaceable: int
    by_placement_type: dict[str, SummaryBucket]
    by_show: dict[str, SummaryBucket]
    by_week: dict[str, SummaryBucket]


@dataclass(frozen=True)
class AllocationResult:
    would_place: list[PlacementResult]
    conflicts: list[PlacementConflict]
    summary: AllocationSummary
    incomplete: bool = False


@dataclass(frozen=True)
class QuotaTargets:
    spots_per_placement_type: int
    spots_per_show: int
    spots_per_week: dict[str, int] = field(default_factory=dict)
