"""Infrastructure Layer — database, logging, and time sources.

Invariants:
    - Infrastructure never imports from core/ domain logic (errors excepted)
"""
