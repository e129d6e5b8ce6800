"""Business logic layer for files app.

This package contains all business logic for stored files:
- Upload ingestion (streaming, size limits, atomic commit)
- Download access resolution (records, expiry, anti-leak rules)
- Lifecycle (removal of blobs with their records, the reaper)

All business logic should be implemented here, separate from
views (HTTP layer) and infrastructure (filesystem).
"""
