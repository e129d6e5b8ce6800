"""Infrastructure layer for files app.

This package contains integrations with external systems:
- Filesystem storage for uploaded blobs
- Filesystem storage for per-file records (JSON)
- Naming and fingerprint helpers

Keep infrastructure concerns separate from business logic.
"""
