"""Services Layer — the imperative shell around core/ for each component.

Invariants:
    - Each service wraps one AsyncSession; lookups are gathered first, then every
      mutation of an operation happens inside one atomic() unit
    - Services raise core/errors.py exceptions; they never return error dicts

Design Decisions:
    - One service class per component for locality: barcode issuer, location tree,
      catalog store, allocation engine, loan ledger, duplicate resolver,
      borrower registry
"""
