"""Per-show inventory summaries for schedule planning screens."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from spotplanner.domain.models import PlacementType
from spotplanner.repository.data_repository import DataRepository
from spotplanner.utils.config import Settings, get_settings


class InventoryWindowError(ValueError):
    """Raised when a summary window is malformed."""


@dataclass(frozen=True)
class PlacementAvailability:
    air_date: date
    placement_type: PlacementType
    episode_id: str
    total: int
    available: int
    reserved: int
    booked: int
    utilization_rate: float
    availability: str


@dataclass(frozen=True)
class ShowAvailabilityWindow:
    show_id: str
    start_date: date
    end_date: date
    rows: list[PlacementAvailability]


def classify_availability(available: int, reserved: int) -> str:
    if available > 0:
        return "available"
    if reserved > 0:
        return "limited"
    return "sold_out"


class ShowInventoryService:
    """Reports stored counters per date and placement pool for one show."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def summarize_show_availability(
        self,
        show_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        placement_type: Optional[PlacementType] = None,
    ) -> ShowAvailabilityWindow:
        """Summarize `[start_date, end_date]`; omitted bounds default to today and
        today plus the configured summary window."""
        start = start_date or datetime.now(timezone.utc).date()
        end = end_date or start + timedelta(days=self._settings.availability_summary_default_days)
        if start > end:
            raise InventoryWindowError("start_date must be on or before end_date")

        with self._repository.read_snapshot() as snapshot:
            days = snapshot.list_inventory_window(show_id, start, end, placement_type)

        rows: list[PlacementAvailability] = []
        for day in days:
            counts = day.counts
            utilization = (
                (counts.reserved + counts.booked) / counts.total * 100.0
                if counts.total > 0
                else 0.0
            )
            rows.append(
                PlacementAvailability(
                    air_date=day.air_date,
                    placement_type=day.placement_type,
                    episode_id=day.episode_id,
                    total=counts.total,
                    available=counts.available,
                    reserved=counts.reserved,
                    booked=counts.booked,
                    utilization_rate=round(utilization, 2),
                    availability=classify_availability(counts.available, counts.reserved),
                )
            )
        return ShowAvailabilityWindow(show_id=show_id, start_date=start, end_date=end, rows=rows)
