"""Weather provider clients.

Available clients:
- openmeteo: Open-Meteo API client for hourly weather series
"""

from . import openmeteo

__all__ = ["openmeteo"]
