"""Core (UI-agnostic) client insights logic.

This package contains:
- CSV validation, field mapping and record building for uploads
- backend access (Supabase, or an in-memory store seeded with sample data)
- filter normalization and data loading (rows -> pandas)
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
