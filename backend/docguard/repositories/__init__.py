"""
Repositories package — data-access layer.

Each repository file handles all DB operations for one domain entity.
Repositories do NOT handle HTTP concerns or business logic beyond
basic data integrity.

Convention:
    - One file per aggregate root (e.g., documents.py, jobs.py)
    - All functions accept `AsyncSession` as the first argument
    - Use `flush()` internally; commit/rollback is handled by whoever
      owns the session (the `get_db` dependency, the pipeline, or the
      queue worker)
"""
