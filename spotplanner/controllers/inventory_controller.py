"""HTTP controller layer for per-show inventory summaries."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from spotplanner.controllers.dependencies import get_inventory_service
from spotplanner.domain.models import PlacementTypeError, parse_placement_type
from spotplanner.repository.data_repository import RepositoryError
from spotplanner.services.inventory_service import InventoryWindowError, ShowInventoryService
from spotplanner.utils.config import get_settings
from spotplanner.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["inventory"])


class PlacementAvailabilityResponse(BaseModel):
    total: int = Field(ge=0)
    available: int
    reserved: int
    booked: int
    utilization_rate: float = Field(ge=0.0)
    availability: str
    episode_id: str


class ShowAvailabilityResponse(BaseModel):
    show_id: str
    start_date: date
    end_date: date
    availability_summary: dict[str, dict[str, PlacementAvailabilityResponse]]


@router.get(
    "/shows/{show_id}/availability",
    response_model=ShowAvailabilityResponse,
    status_code=status.HTTP_200_OK,
)
async def show_availability(
    show_id: str,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    placement_type: str | None = Query(default=None),
    service: ShowInventoryService = Depends(get_inventory_service),
) -> ShowAvailabilityResponse:
    """Stored slot counters per air date and placement for one show."""
    try:
        placement = parse_placement_type(placement_type) if placement_type else None
        window = service.summarize_show_availability(
            show_id,
            start_date=start_date,
            end_date=end_date,
            placement_type=placement,
        )
    except (PlacementTypeError, InventoryWindowError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except RepositoryError as exc:
        logger.error("Inventory store unavailable | show_id=%s | error=%s", show_id, exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Inventory store unavailable",
        ) from exc

    summary: dict[str, dict[str, PlacementAvailabilityResponse]] = {}
    for row in window.rows:
        summary.setdefault(row.air_date.isoformat(), {})[row.placement_type.value] = (
            PlacementAvailabilityResponse(
                total=row.total,
                available=row.available,
                reserved=row.reserved,
                booked=row.booked,
                utilization_rate=row.utilization_rate,
                availability=row.availability,
                episode_id=row.episode_id,
            )
        )
    return ShowAvailabilityResponse(
        show_id=show_id,
        start_date=window.start_date,
        end_date=window.end_date,
        availability_summary=summary,
    )


class HealthResponse(BaseModel):
    status: str
    app_name: str
    version: str


@router.get("/health", response_model=HealthResponse, status_code=status.HTTP_200_OK)
async def health() -> HealthResponse:
    settings = get_settings()
    return HealthResponse(status="ok", app_name=settings.app_name, version=settings.app_version)
