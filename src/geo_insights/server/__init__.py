"""FastAPI server adapter for geo-insights.

Design intent:
- Keep workflow semantics in `geo_insights.engine`
- Keep server-specific concerns (routing, CORS, credential checks) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from geo_insights.server.app import create_app
