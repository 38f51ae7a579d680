"""
FastAPI REST API for the public map

Provides REST endpoints for:
- Paginated public map reads (bounding box + cursor)
- Geocoding with a persistent cache
- Report preview and export (JSON, CSV, PDF)
- Exclusive resident/point assignments
- Manual and background snapshot refresh
"""
