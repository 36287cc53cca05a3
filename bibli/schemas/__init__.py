"""Pydantic Schemas — request/response validation and read projections.

Invariants:
    - Schemas validate at system boundary (user input, API responses)
    - Domain enums from core/ used for enum fields

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
    - Read projections (VolumeWithTitle, LoanDetail, LocationWithPath) live here and
      are built by services, so routes stay thin
"""
