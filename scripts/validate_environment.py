#!/usr/bin/env python3
"""Validate local spot planner environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from datetime import date, timedelta
from importlib.metadata import version
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from spotplanner.domain.constraints import build_allocation_input
from spotplanner.repository.data_repository import DataRepository
from spotplanner.services.allocation_service import BulkAllocationService
from spotplanner.services.availability_service import InventoryAvailabilityService
from spotplanner.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="spotplanner-env-")

    # CHECK 1 - Python version >= 3.10
    if sys.version_info >= (3, 10):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.10",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2 - Required packages importable
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    import_errors: list[str] = []
    for module_name, dist_name in package_specs:
        try:
            importlib.import_module(module_name)
            version(dist_name)
        except Exception as exc:  # pragma: no cover - runtime guard
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        validation_settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "spotplanner_validation.db",
        )
        repository = DataRepository(validation_settings)
        seed_start = date.today()

        # CHECK 3 - Database initialization
        try:
            repository.initialize_database()
            ok, line = _print_result("Database initialization", True)
        except Exception as exc:
            ok, line = _print_result("Database initialization", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4 - Synthetic inventory seeding
        try:
            repository.seed_synthetic_data(start_date=seed_start)
            show_count = repository.count_shows()
            expected = len(validation_settings.synthetic_show_names)
            if show_count != expected:
                raise RuntimeError(f"expected {expected} shows, got {show_count}")
            ok, line = _print_result("Synthetic inventory", True, f": {show_count} shows")
        except Exception as exc:
            ok, line = _print_result("Synthetic inventory", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 5 - Bulk allocation preview
        availability_service = InventoryAvailabilityService(
            repository=repository,
            settings=validation_settings,
        )
        allocation_service = BulkAllocationService(
            repository=repository,
            settings=validation_settings,
            availability_service=availability_service,
        )
        try:
            request = build_allocation_input(
                advertiser_id="validation-advertiser",
                show_ids=repository.list_show_ids()[:2],
                start_date=seed_start,
                end_date=seed_start + timedelta(days=27),
                weekdays=[1, 3, 5],
                placement_types=["pre-roll", "mid-roll"],
                spots_requested=8,
                fallback_strategy="relaxed",
            )
            result = allocation_service.allocate(request, require_known_shows=True)
            summary = result.summary
            if summary.placeable + summary.unplaceable != summary.requested:
                raise RuntimeError("placeable and unplaceable do not add up to requested")
            ok, line = _print_result(
                "Bulk allocation preview",
                True,
                f": placed={summary.placeable}/{summary.requested}",
            )
        except Exception as exc:
            ok, line = _print_result("Bulk allocation preview", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Spot Planner Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
