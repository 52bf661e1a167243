"""geo-insights.

IP geolocation with AI-generated location insights, composed into tracked
multi-step workflows:
- configuration loaded from `.env`
- structured logging
- an execution engine with pollable, subscribable workflow records
"""

__version__ = "0.1.0"

from geo_insights.config import ServiceSettings

__all__ = ["__version__", "ServiceSettings"]
