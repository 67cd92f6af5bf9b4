"""
Date/time tool for the toolagent conversation loop.

Returns the current date and time, optionally in a named IANA timezone.  It
needs no network access and is the reference example of a tool with an
optional parameter.  An unrecognised timezone falls back to UTC and the
result carries an ``"error"`` field describing the problem.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from toolagent.conversation.tools.schema import (
    Arguments,
    ParameterSpec,
    ParameterType,
    ToolDescriptor,
)

logger = logging.getLogger(__name__)


class DateTimeTool:
    """Returns the current date and time, with optional timezone support."""

    NAME = "get_current_datetime"
    DESCRIPTION = (
        "Get the current date and time. "
        "Returns the date, time, day of the week and Unix timestamp. "
        "Optionally accepts an IANA timezone name such as 'Asia/Shanghai' "
        "or 'Europe/London'; defaults to UTC."
    )
    PARAMETERS = (
        ParameterSpec(
            name="timezone",
            type=ParameterType.STRING,
            description="IANA timezone name, e.g. 'Asia/Shanghai'. Omit for UTC.",
            required=False,
        ),
    )

    def descriptor(self) -> ToolDescriptor:
        """Return the ``ToolDescriptor`` for registration with ``ToolRegistry``."""
        return ToolDescriptor(
            name=self.NAME,
            description=self.DESCRIPTION,
            parameters=self.PARAMETERS,
            executor=self._execute,
        )

    def get_datetime(
        self, timezone_name: str | None = None, now: datetime | None = None
    ) -> dict[str, Any]:
        """Return the current date and time.

        Args:
            timezone_name: IANA timezone name.  ``None`` or empty means UTC.
            now: Override for the current instant (must be timezone-aware).

        Returns:
            A dict with ``datetime_iso``, ``date``, ``time``, ``timezone``,
            ``day_of_week`` and ``unix_timestamp``, plus ``error`` when the
            requested timezone was invalid.
        """
        tz, tz_error = self._resolve_timezone(timezone_name)
        now = (now or datetime.now(tz=timezone.utc)).astimezone(tz)

        result: dict[str, Any] = {
            "datetime_iso": now.isoformat(timespec="seconds"),
            "date": now.strftime("%Y-%m-%d"),
            "time": now.strftime("%H:%M:%S"),
            "timezone": str(tz),
            "day_of_week": now.strftime("%A"),
            "unix_timestamp": int(now.timestamp()),
        }
        if tz_error:
            result["error"] = tz_error
        return result

    def _execute(self, args: Arguments) -> str:
        tz_name = args.get("timezone") or None
        return json.dumps(self.get_datetime(tz_name), ensure_ascii=False)

    def _resolve_timezone(self, timezone_name: str | None) -> tuple[Any, str | None]:
        if not timezone_name:
            return timezone.utc, None
        try:
            return ZoneInfo(timezone_name), None
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone: %r; falling back to UTC", timezone_name)
            return timezone.utc, (
                f"Unknown timezone {timezone_name!r}; showing UTC instead."
            )
