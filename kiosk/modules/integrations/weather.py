"""
Weather lookup for the kiosk location.

Uses the Open-Meteo forecast API (no key required) for the current
temperature and WMO weather code. Any failure is raised as
WeatherUnavailable with a message suitable for the kiosk screen.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp

from kiosk.core.errors import WeatherUnavailable
from kiosk.core.types import WeatherReport

logger = logging.getLogger(__name__)


@dataclass
class WeatherConfig:
    latitude: float = 37.5665
    longitude: float = 126.9780
    base_url: str = "https://api.open-meteo.com/v1/forecast"
    timeout_s: float = 10.0

    @classmethod
    def from_dict(cls, config: dict) -> "WeatherConfig":
        return cls(
            latitude=config.get("latitude", 37.5665),
            longitude=config.get("longitude", 126.9780),
            base_url=config.get("base_url", "https://api.open-meteo.com/v1/forecast"),
            timeout_s=config.get("timeout_s", 10.0),
        )


def weather_icon(code: Optional[int]) -> str:
    """Icon name for the status line."""
    if code is None:
        return "sun"
    if 71 <= code <= 77:
        return "snow"
    if 61 <= code <= 95:
        return "rain"
    if code > 2:
        return "cloud"
    return "sun"


def parse_current(data: dict) -> WeatherReport:
    """Extract the current conditions from an Open-Meteo response body."""
    try:
        current = data["current"]
        return WeatherReport(
            condition_code=int(current["weather_code"]),
            temperature_c=float(current["temperature_2m"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise WeatherUnavailable(f"Unexpected weather response: {e}") from e


class OpenMeteoWeatherService:
    """Async Open-Meteo client.

    The HTTP session is created lazily and can be injected for tests.
    """

    def __init__(self, config: Optional[WeatherConfig] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        self.config = config or WeatherConfig()
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_s),
                headers={"User-Agent": "touchless-menu-kiosk/1.0"},
            )
        return self._session

    async def lookup(self, latitude: float, longitude: float) -> WeatherReport:
        """Fetch current conditions.

        Raises:
            WeatherUnavailable: on network, HTTP or parsing errors
        """
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "current": "temperature_2m,weather_code",
        }
        session = await self._get_session()
        try:
            async with session.get(self.config.base_url, params=params) as response:
                response.raise_for_status()
                data = await response.json()
        except asyncio.TimeoutError as e:
            raise WeatherUnavailable(
                f"Could not load the weather: no response within {self.config.timeout_s:g}s") from e
        except aiohttp.ClientError as e:
            raise WeatherUnavailable(f"Could not load the weather: {e}") from e
        except ValueError as e:
            raise WeatherUnavailable(f"Unexpected weather response: {e}") from e

        report = parse_current(data)
        logger.info("Weather at (%.4f, %.4f): code=%d (%s), %.1f°C",
                    latitude, longitude, report.condition_code,
                    report.condition.value, report.temperature_c)
        return report

    async def close(self):
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None
