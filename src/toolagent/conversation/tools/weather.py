"""
Weather tool backed by Open-Meteo (https://open-meteo.com/, no API key).

``get_weather(location)`` geocodes the location name, then reads the current
conditions at those coordinates.  Place names are requested in Chinese by
default so that "北京" or "郑州" resolve and come back as written.
"""

from __future__ import annotations

import json
import logging
from typing import Any, NamedTuple

import httpx

from toolagent.conversation.tools.errors import ExecutionFailed
from toolagent.conversation.tools.schema import (
    Arguments,
    ParameterSpec,
    ParameterType,
    ToolDescriptor,
)

logger = logging.getLogger(__name__)

GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"

_CURRENT_FIELDS = (
    "temperature_2m",
    "relative_humidity_2m",
    "weather_code",
    "wind_speed_10m",
)

# WMO weather interpretation codes, grouped.
_CONDITION_GROUPS: tuple[tuple[tuple[int, ...], str], ...] = (
    ((0,), "晴"),
    ((1, 2), "少云"),
    ((3,), "阴"),
    ((45, 48), "雾"),
    ((51, 53, 55, 56, 57), "毛毛雨"),
    ((61, 66, 80), "小雨"),
    ((63, 81), "中雨"),
    ((65, 67, 82), "大雨"),
    ((71, 77, 85), "小雪"),
    ((73,), "中雪"),
    ((75, 86), "大雪"),
    ((95,), "雷阵雨"),
    ((96, 99), "雷阵雨伴有冰雹"),
)
_CONDITIONS: dict[int, str] = {
    code: text for codes, text in _CONDITION_GROUPS for code in codes
}


def describe_weather_code(code: int) -> str:
    return _CONDITIONS.get(code, f"未知天气 (code {code})")


class Place(NamedTuple):
    name: str
    latitude: float
    longitude: float


class WeatherTool:
    """The ``get_weather`` tool.

    Attributes:
        timeout: Seconds allowed for each HTTP request.
        language: Language of geocoded place names.
    """

    NAME = "get_weather"
    DESCRIPTION = "获取指定城市的当前天气：气温（摄氏度）、天气状况、相对湿度和风速。"
    PARAMETERS = (
        ParameterSpec("location", ParameterType.STRING, "城市名称，例如 '北京' 或 'Xiamen'"),
    )

    def __init__(self, timeout: float = 10.0, language: str = "zh") -> None:
        self.timeout = timeout
        self.language = language

    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(
            name=self.NAME,
            description=self.DESCRIPTION,
            parameters=self.PARAMETERS,
            executor=self._execute,
        )

    async def get_weather(self, location: str) -> dict[str, Any]:
        """Look up the current weather at *location*.

        Returns:
            ``location_name``, ``temperature_c``, ``conditions``,
            ``humidity_percent``, ``wind_speed_kmh`` and a one-line
            ``summary``.

        Raises:
            ValueError: The location could not be geocoded.
            httpx.HTTPStatusError: Either request returned a non-2xx status.
            httpx.TimeoutException: A request exceeded ``timeout``.
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            place = await self.geocode(client, location)
            current = await self.current_conditions(client, place)

        conditions = describe_weather_code(int(current["weather_code"]))
        temperature = current["temperature_2m"]
        return {
            "location_name": place.name,
            "temperature_c": temperature,
            "conditions": conditions,
            "humidity_percent": int(current["relative_humidity_2m"]),
            "wind_speed_kmh": current["wind_speed_10m"],
            "summary": f"当前 {place.name} 的天气是 {temperature}°C, {conditions}",
        }

    async def geocode(self, client: httpx.AsyncClient, location: str) -> Place:
        query = {"name": location, "count": 1, "language": self.language, "format": "json"}
        response = await client.get(GEOCODING_URL, params=query)
        response.raise_for_status()

        matches = response.json().get("results") or []
        if not matches:
            raise ValueError(f"Location not found: {location!r}")
        best = matches[0]
        parts = [best.get("name", location)]
        parts.extend(best[key] for key in ("admin1", "country") if best.get(key))
        place = Place(", ".join(parts), best["latitude"], best["longitude"])
        logger.debug("Geocoded %r as %s", location, place)
        return place

    async def current_conditions(
        self, client: httpx.AsyncClient, place: Place
    ) -> dict[str, Any]:
        query = {
            "latitude": place.latitude,
            "longitude": place.longitude,
            "current": ",".join(_CURRENT_FIELDS),
            "temperature_unit": "celsius",
            "wind_speed_unit": "kmh",
        }
        response = await client.get(FORECAST_URL, params=query)
        response.raise_for_status()
        return response.json()["current"]

    async def _execute(self, args: Arguments) -> str:
        location = str(args["location"]).strip()
        if not location:
            raise ExecutionFailed("location must not be empty")
        try:
            report = await self.get_weather(location)
        except ValueError as exc:
            raise ExecutionFailed(str(exc)) from exc
        except httpx.HTTPStatusError as exc:
            logger.error("Open-Meteo returned %s for %r", exc.response.status_code, location)
            raise ExecutionFailed(
                f"Weather service error: {exc.response.status_code}"
            ) from exc
        except httpx.TimeoutException as exc:
            logger.error("Open-Meteo timed out for %r", location)
            raise ExecutionFailed("Weather service timed out") from exc
        return json.dumps(report, ensure_ascii=False)
