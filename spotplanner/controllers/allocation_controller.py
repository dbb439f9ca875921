"""HTTP controller layer for availability checks and bulk allocation previews."""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from spotplanner.controllers.dependencies import (
    get_allocation_service,
    get_availability_service,
)
from spotplanner.domain.constraints import AllocationValidationError, build_allocation_input
from spotplanner.domain.models import (
    AllocationResult,
    FallbackStrategy,
    PlacementTypeError,
    parse_placement_type,
)
from spotplanner.repository.data_repository import RepositoryError
from spotplanner.services.allocation_service import BulkAllocationService, ShowNotFoundError
from spotplanner.services.availability_service import InventoryAvailabilityService
from spotplanner.utils.config import get_settings
from spotplanner.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["allocation"])

Weekday = Annotated[int, Field(ge=0, le=6)]


def _normalize_placement(value: str) -> str:
    try:
        return parse_placement_type(value).value
    except PlacementTypeError as exc:
        raise ValueError(str(exc)) from exc


class AvailabilityCheckRequest(BaseModel):
    show_id: str = Field(min_length=1)
    air_date: date = Field(alias="date")
    placement_type: str
    campaign_id: str | None = None
    advertiser_id: str | None = None

    @field_validator("placement_type")
    @classmethod
    def validate_placement_type(cls, value: str) -> str:
        return _normalize_placement(value)


class AvailabilityCheckResponse(BaseModel):
    available: bool
    available_slots: int = Field(ge=0)
    total_slots: int = Field(ge=0)
    rate: float = Field(ge=0.0)
    episode_id: str | None = None
    reason: str | None = None
    conflict_type: str | None = None
    holder_campaign_id: str | None = None
    holder_advertiser_id: str | None = None
    holder_name: str | None = None
    hold_expires_at: datetime | None = None


class BulkPreviewRequest(BaseModel):
    """Bulk placement request; weekdays use 0 = Sunday ... 6 = Saturday."""

    campaign_id: str | None = None
    advertiser_id: str = Field(min_length=1)
    agency_id: str | None = None
    show_ids: list[str] = Field(min_length=1)
    start_date: date
    end_date: date
    weekdays: list[Weekday] = Field(min_length=1)
    placement_types: list[str] = Field(min_length=1)
    spots_requested: int = Field(gt=0)
    spots_per_week: int | None = Field(default=None, gt=0)
    allow_multiple_per_show_per_day: bool | None = None
    max_spots_per_show_per_day: int | None = Field(default=None, gt=0)
    fallback_strategy: FallbackStrategy | None = None

    @field_validator("placement_types")
    @classmethod
    def validate_placement_types(cls, value: list[str]) -> list[str]:
        normalized = [_normalize_placement(item) for item in value]
        if len(set(normalized)) != len(normalized):
            raise ValueError("placement_types must not repeat a placement")
        return normalized

    @field_validator("show_ids")
    @classmethod
    def validate_show_ids(cls, value: list[str]) -> list[str]:
        if any(not item.strip() for item in value):
            raise ValueError("show_ids must be non-empty strings")
        if len(set(value)) != len(value):
            raise ValueError("show_ids must not repeat a show")
        return value

    @model_validator(mode="after")
    def validate_date_range(self) -> "BulkPreviewRequest":
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self


class PlacementResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    show_id: str
    show_name: str | None = None
    air_date: date = Field(alias="date")
    placement_type: str
    rate: float = Field(ge=0.0)
    episode_id: str | None = None


class ConflictResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    show_id: str
    show_name: str | None = None
    air_date: date | None = Field(default=None, alias="date")
    placement_type: str | None = None
    reason: str
    conflict_type: str | None = None


class SummaryBucketResponse(BaseModel):
    requested: int = Field(ge=0)
    placed: int = Field(ge=0)


class AllocationSummaryResponse(BaseModel):
    requested: int = Field(ge=0)
    placeable: int = Field(ge=0)
    unplaceable: int = Field(ge=0)
    by_placement_type: dict[str, SummaryBucketResponse]
    by_show: dict[str, SummaryBucketResponse]
    by_week: dict[str, SummaryBucketResponse]


class BulkPreviewResponse(BaseModel):
    correlation_id: str
    strict_shortfall: bool
    incomplete: bool
    would_place: list[PlacementResponse]
    conflicts: list[ConflictResponse]
    summary: AllocationSummaryResponse


def _to_preview_response(
    result: AllocationResult,
    correlation_id: str,
    strategy: FallbackStrategy,
) -> BulkPreviewResponse:
    summary = result.summary
    return BulkPreviewResponse(
        correlation_id=correlation_id,
        strict_shortfall=(
            strategy is FallbackStrategy.STRICT and summary.placeable < summary.requested
        ),
        incomplete=result.incomplete,
        would_place=[
            PlacementResponse(
                show_id=item.show_id,
                show_name=item.show_name,
                air_date=item.air_date,
                placement_type=item.placement_type.value,
                rate=item.rate,
                episode_id=item.episode_id,
            )
            for item in result.would_place
        ],
        conflicts=[
            ConflictResponse(
                show_id=item.show_id,
                show_name=item.show_name,
                air_date=item.air_date,
                placement_type=item.placement_type.value if item.placement_type else None,
                reason=item.reason,
                conflict_type=item.conflict_kind.value if item.conflict_kind else None,
            )
            for item in result.conflicts
        ],
        summary=AllocationSummaryResponse(
            requested=summary.requested,
            placeable=summary.placeable,
            unplaceable=summary.unplaceable,
            by_placement_type={
                key: SummaryBucketResponse(requested=bucket.requested, placed=bucket.placed)
                for key, bucket in summary.by_placement_type.items()
            },
            by_show={
                key: SummaryBucketResponse(requested=bucket.requested, placed=bucket.placed)
                for key, bucket in summary.by_show.items()
            },
            by_week={
                key: SummaryBucketResponse(requested=bucket.requested, placed=bucket.placed)
                for key, bucket in summary.by_week.items()
            },
        ),
    )


@router.post(
    "/availability/check",
    response_model=AvailabilityCheckResponse,
    status_code=status.HTTP_200_OK,
)
async def check_availability(
    payload: AvailabilityCheckRequest,
    service: InventoryAvailabilityService = Depends(get_availability_service),
) -> AvailabilityCheckResponse:
    """Resolve one show/date/placement slot."""
    result = service.check_availability(
        payload.show_id,
        payload.air_date,
        payload.placement_type,
        campaign_id=payload.campaign_id,
        advertiser_id=payload.advertiser_id,
    )
    return AvailabilityCheckResponse(
        available=result.available,
        available_slots=result.available_slots,
        total_slots=result.total_slots,
        rate=result.rate,
        episode_id=result.episode_id,
        reason=result.reason,
        conflict_type=result.conflict_kind.value if result.conflict_kind else None,
        holder_campaign_id=result.holder_campaign_id,
        holder_advertiser_id=result.holder_advertiser_id,
        holder_name=result.holder_name,
        hold_expires_at=result.hold_expires_at,
    )


@router.post(
    "/schedules/bulk/preview",
    response_model=BulkPreviewResponse,
    status_code=status.HTTP_200_OK,
)
async def preview_bulk_allocation(
    payload: BulkPreviewRequest,
    service: BulkAllocationService = Depends(get_allocation_service),
) -> BulkPreviewResponse:
    """Compute a placement plan without committing anything."""
    settings = get_settings()
    correlation_id = str(uuid4())
    allow_multiple = (
        payload.allow_multiple_per_show_per_day
        if payload.allow_multiple_per_show_per_day is not None
        else settings.allocation_default_allow_multiple_per_show_per_day
    )
    max_per_day = payload.max_spots_per_show_per_day or (
        settings.allocation_default_max_spots_multiple
        if allow_multiple
        else settings.allocation_default_max_spots_single
    )
    strategy = payload.fallback_strategy or FallbackStrategy(
        settings.allocation_default_fallback_strategy
    )
    logger.info(
        (
            "Bulk preview requested | correlation_id=%s | advertiser_id=%s | shows=%s | "
            "range=%s..%s | spots=%s | strategy=%s"
        ),
        correlation_id,
        payload.advertiser_id,
        len(payload.show_ids),
        payload.start_date.isoformat(),
        payload.end_date.isoformat(),
        payload.spots_requested,
        strategy.value,
    )
    try:
        request = build_allocation_input(
            advertiser_id=payload.advertiser_id,
            campaign_id=payload.campaign_id,
            agency_id=payload.agency_id,
            show_ids=payload.show_ids,
            start_date=payload.start_date,
            end_date=payload.end_date,
            weekdays=payload.weekdays,
            placement_types=payload.placement_types,
            spots_requested=payload.spots_requested,
            spots_per_week=payload.spots_per_week,
            allow_multiple_per_show_per_day=allow_multiple,
            max_spots_per_show_per_day=max_per_day,
            fallback_strategy=strategy,
        )
        result = service.allocate(request, require_known_shows=True)
    except AllocationValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except ShowNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": str(exc), "missing_show_ids": exc.missing_show_ids},
        ) from exc
    except RepositoryError as exc:
        logger.error("Inventory store unavailable | correlation_id=%s | error=%s", correlation_id, exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Inventory store unavailable",
        ) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected allocation failure | correlation_id=%s", correlation_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute allocation preview",
        ) from exc

    logger.info(
        "Bulk preview completed | correlation_id=%s | placed=%s/%s | conflicts=%s",
        correlation_id,
        result.summary.placeable,
        result.summary.requested,
        len(result.conflicts),
    )
    return _to_preview_response(result, correlation_id, strategy)
