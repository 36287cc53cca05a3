"""Service Dependencies — per-request service construction for the routes.

Invariants:
    - One AsyncSession per request (get_db); every service of the request shares it
    - Policy knobs come from get_settings(); time comes from get_clock()

Design Decisions:
    - get_clock is a dependency so route tests can override time with
      app.dependency_overrides instead of patching datetime
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bibli.config import Settings, get_settings
from bibli.core.boundary_protocols import Clock
from bibli.infrastructure.clock import SystemClock
from bibli.infrastructure.database import get_db
from bibli.services.allocation_engine import AllocationEngine
from bibli.services.barcode_issuer import BarcodeIssuer
from bibli.services.borrower_registry import BorrowerRegistry
from bibli.services.catalog_store import CatalogStore
from bibli.services.duplicate_resolver import DuplicateResolver
from bibli.services.loan_ledger import LoanLedger
from bibli.services.location_tree import LocationTree


def get_clock() -> Clock:
    return SystemClock()


def get_catalog(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
) -> CatalogStore:
    return CatalogStore(
        db, clock, settings.barcode_format,
        settings.fuzzy_match_threshold, settings.max_location_depth,
    )


def get_locations(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> LocationTree:
    return LocationTree(db, settings.max_location_depth)


def get_borrowers(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> BorrowerRegistry:
    return BorrowerRegistry(db, settings.default_loan_duration_days)


def get_allocation(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AllocationEngine:
    return AllocationEngine(
        db, settings.location_accessibility, settings.max_location_depth,
    )


def get_ledger(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
) -> LoanLedger:
    return LoanLedger(
        db, clock, settings.default_loan_duration_days, settings.barcode_format,
        settings.location_accessibility, settings.max_location_depth,
    )


def get_resolver(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
) -> DuplicateResolver:
    return DuplicateResolver(db, clock, settings.fuzzy_match_threshold)


def get_barcodes(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> BarcodeIssuer:
    return BarcodeIssuer(db, settings.barcode_format)
