"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from spotplanner.services.allocation_service import BulkAllocationService
from spotplanner.services.availability_service import InventoryAvailabilityService
from spotplanner.services.inventory_service import ShowInventoryService


def get_availability_service(request: Request) -> InventoryAvailabilityService:
    service = getattr(request.app.state, "availability_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Availability service is not initialized",
        )
    return service


def get_allocation_service(request: Request) -> BulkAllocationService:
    service = getattr(request.app.state, "allocation_service", None)
    if service is None:
        repository = getattr(request.app.state, "repository", None)
        availability_service = getattr(request.app.state, "availability_service", None)
        if repository is not None:
            service = BulkAllocationService(
                repository=repository,
                availability_service=availability_service,
            )
            request.app.state.allocation_service = service
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Allocation service is not initialized",
        )
    return service


def get_inventory_service(request: Request) -> ShowInventoryService:
    service = getattr(request.app.state, "inventory_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Inventory service is not initialized",
        )
    return service
