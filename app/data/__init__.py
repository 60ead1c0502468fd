"""
Data access layer.

Design rules:
- Views call ONLY functions in this package.
- List reads go through `service` so they can fall back to mock data.
- Writes raise; the mentorship booking write falls back to the local store.
- No env var reads here (config-only).
"""

