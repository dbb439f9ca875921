"""Inventory availability resolution for one show/date/placement slot."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from spotplanner.domain.models import (
    AvailabilityStatus,
    ConflictKind,
    MultiSpotAllowance,
    PlacementType,
    parse_placement_type,
)
from spotplanner.repository.data_repository import (
    DataRepository,
    InventorySnapshot,
    RepositoryError,
)
from spotplanner.utils.config import Settings, get_settings
from spotplanner.utils.logger import get_logger


logger = get_logger(__name__)


def _unavailable(
    kind: ConflictKind,
    reason: str,
    *,
    episode_id: Optional[str] = None,
    total_slots: int = 0,
) -> AvailabilityStatus:
    return AvailabilityStatus(
        available=False,
        available_slots=0,
        total_slots=total_slots,
        episode_id=episode_id,
        reason=reason,
        conflict_kind=kind,
    )


class InventoryAvailabilityService:
    """Answers whether a slot is sellable and how many spots a show/day may take.

    Lookups never raise out of the public calls: storage failures degrade to an
    unavailable `no_inventory` answer. Only an unrecognized placement type is
    reported as an error, because it is a caller bug and not an inventory fact.
    """

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def check_availability(
        self,
        show_id: str,
        air_date: date,
        placement_type: str | PlacementType,
        *,
        campaign_id: Optional[str] = None,
        advertiser_id: Optional[str] = None,
        reader: Optional[InventorySnapshot] = None,
        now: Optional[datetime] = None,
    ) -> AvailabilityStatus:
        placement = parse_placement_type(placement_type)
        resolved_now = now or datetime.now(timezone.utc)
        try:
            if reader is not None:
                return self._resolve(
                    reader, show_id, air_date, placement, campaign_id, advertiser_id, resolved_now
                )
            with self._repository.read_snapshot() as snapshot:
                return self._resolve(
                    snapshot, show_id, air_date, placement, campaign_id, advertiser_id, resolved_now
                )
        except RepositoryError as exc:
            logger.warning(
                "Availability lookup degraded | show_id=%s | date=%s | placement=%s | error=%s",
                show_id,
                air_date.isoformat(),
                placement.value,
                exc,
            )
            return _unavailable(
                ConflictKind.NO_INVENTORY,
                f"Unable to confirm inventory: {exc}",
            )

    def _resolve(
        self,
        reader: InventorySnapshot,
        show_id: str,
        air_date: date,
        placement: PlacementType,
        campaign_id: Optional[str],
        advertiser_id: Optional[str],
        now: datetime,
    ) -> AvailabilityStatus:
        episode = reader.get_episode(show_id, air_date)
        if episode is None:
            return _unavailable(
                ConflictKind.NO_INVENTORY,
                f"No episode scheduled for {air_date.isoformat()}",
            )

        inventory = reader.get_episode_inventory(episode.episode_id)
        if inventory is None:
            return _unavailable(
                ConflictKind.NO_INVENTORY,
                "Episode has no inventory configured",
                episode_id=episode.episode_id,
            )

        counts = inventory.counts_for(placement)
        if counts.total <= 0:
            return _unavailable(
                ConflictKind.NO_INVENTORY,
                f"No {placement.value} slots configured for this episode",
                episode_id=episode.episode_id,
            )

        if counts.available <= 0:
            if counts.booked >= counts.total:
                return _unavailable(
                    ConflictKind.SOLD,
                    f"All {placement.value} slots are sold",
                    episode_id=episode.episode_id,
                    total_slots=counts.total,
                )
            if counts.reserved >= counts.total:
                holds = reader.list_active_holds(
                    episode.episode_id,
                    placement,
                    now,
                    self._settings.reservation_active_statuses,
                )
                if any(hold.is_owned_by(campaign_id, advertiser_id) for hold in holds):
                    return AvailabilityStatus(
                        available=True,
                        available_slots=1,
                        total_slots=counts.total,
                        rate=self._resolve_rate(reader, show_id, air_date, placement),
                        episode_id=episode.episode_id,
                    )
                holder = holds[0] if holds else None
                if holder is None:
                    reason = f"{placement.value} slots are on hold"
                else:
                    reason = (
                        f"{placement.value} slot held by "
                        f"{holder.advertiser_name or holder.advertiser_id or 'another buyer'}"
                    )
                    if holder.expires_at is not None:
                        reason += f" until {holder.expires_at.isoformat()}"
                return AvailabilityStatus(
                    available=False,
                    available_slots=0,
                    total_slots=counts.total,
                    episode_id=episode.episode_id,
                    reason=reason,
                    conflict_kind=ConflictKind.HELD,
                    holder_campaign_id=holder.campaign_id if holder else None,
                    holder_advertiser_id=holder.advertiser_id if holder else None,
                    holder_name=holder.advertiser_name if holder else None,
                    hold_expires_at=holder.expires_at if holder else None,
                )

        # The cached `available` column drifts; recompute from the raw counters.
        scheduled = reader.count_scheduled_spots(show_id, air_date, placement)
        remaining = max(0, counts.total - counts.booked - counts.reserved - scheduled)
        if remaining <= 0:
            return _unavailable(
                ConflictKind.SOLD,
                f"No {placement.value} capacity remaining",
                episode_id=episode.episode_id,
                total_slots=counts.total,
            )

        return AvailabilityStatus(
            available=True,
            available_slots=remaining,
            total_slots=counts.total,
            rate=self._resolve_rate(reader, show_id, air_date, placement),
            episode_id=episode.episode_id,
        )

    @staticmethod
    def _resolve_rate(
        reader: InventorySnapshot,
        show_id: str,
        air_date: date,
        placement: PlacementType,
    ) -> float:
        rate_card = reader.get_rate_card(show_id, air_date)
        if rate_card is None:
            return 0.0
        return rate_card.rate_for(placement)

    def check_multi_spot_allowance(
        self,
        show_id: str,
        air_date: date,
        requested_spots: int,
        allow_multiple: bool,
        max_per_show_per_day: int = 1,
        *,
        reader: Optional[InventorySnapshot] = None,
    ) -> MultiSpotAllowance:
        """Decide whether `requested_spots` more spots fit on one show/day."""
        try:
            if reader is not None:
                existing = reader.count_scheduled_spots(show_id, air_date)
            else:
                with self._repository.read_snapshot() as snapshot:
                    existing = snapshot.count_scheduled_spots(show_id, air_date)
        except RepositoryError as exc:
            logger.warning(
                "Multi-spot lookup degraded | show_id=%s | date=%s | error=%s",
                show_id,
                air_date.isoformat(),
                exc,
            )
            return MultiSpotAllowance(
                allowed=False,
                max_allowed=0,
                reason=f"Unable to confirm existing spots: {exc}",
                conflict_kind=ConflictKind.NO_INVENTORY,
            )

        if not allow_multiple:
            if existing > 0:
                return MultiSpotAllowance(
                    allowed=False,
                    max_allowed=0,
                    reason="Show already has a spot scheduled on this day",
                )
            if requested_spots <= 1:
                return MultiSpotAllowance(allowed=True, max_allowed=1)
            return MultiSpotAllowance(
                allowed=False,
                max_allowed=1,
                reason="Only one spot per show per day is allowed",
            )

        headroom = max(0, max_per_show_per_day - existing)
        if requested_spots <= headroom:
            return MultiSpotAllowance(allowed=True, max_allowed=headroom)
        return MultiSpotAllowance(
            allowed=False,
            max_allowed=headroom,
            reason=(
                f"Maximum of {max_per_show_per_day} spots per show per day; "
                f"{existing} already scheduled"
            ),
        )
