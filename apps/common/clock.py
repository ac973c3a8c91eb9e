"""
Time sources used by billing and expiry decisions.

Services receive a clock instead of calling ``timezone.now()`` so tests can pin
time and operators can opt into network-corrected time.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Protocol

import requests
from dateutil import parser as date_parser
from django.conf import settings
from django.utils import timezone

from apps.common.types import Err, Ok, Result

logger = logging.getLogger(__name__)


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Local wall-clock time."""

    def now(self) -> datetime:
        return timezone.now()


class FixedClock:
    """Clock pinned to an instant; moves only when told to."""

    def __init__(self, at: datetime) -> None:
        if timezone.is_naive(at):
            at = timezone.make_aware(at)
        self._at = at

    def now(self) -> datetime:
        return self._at

    def set(self, at: datetime) -> None:
        self._at = at if timezone.is_aware(at) else timezone.make_aware(at)

    def advance(self, **kwargs: float) -> datetime:
        self._at = self._at + timedelta(**kwargs)
        return self._at


class NetworkTimeClock:
    """
    Local time corrected by an offset fetched from a time service.

    The offset is cached on the instance and refreshed once it is older than
    ``refresh_interval`` seconds. When the service cannot be reached the last
    known offset is kept, or local time is used if there never was one.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 5,
        refresh_interval: float = 3600,
        local_clock: Clock | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.refresh_interval = timedelta(seconds=refresh_interval)
        self._local = local_clock or SystemClock()
        self._offset: timedelta | None = None
        self._synced_at: datetime | None = None
        self._lock = threading.Lock()

    @property
    def offset(self) -> timedelta | None:
        return self._offset

    def now(self) -> datetime:
        local_now = self._local.now()
        with self._lock:
            if self._needs_refresh(local_now):
                result = self.fetch_offset()
                if result.is_ok():
                    self._offset = result.unwrap()
                    logger.debug(f"⏰ [Clock] Network offset refreshed: {self._offset.total_seconds():.3f}s")
                else:
                    logger.warning(f"⚠️ [Clock] Time sync failed, using local time: {result.unwrap_err()}")
                # Retry only after another full interval, success or not
                self._synced_at = local_now
            offset = self._offset
        return local_now + offset if offset is not None else local_now

    def _needs_refresh(self, local_now: datetime) -> bool:
        if self._synced_at is None:
            return True
        return local_now - self._synced_at >= self.refresh_interval

    def fetch_offset(self) -> Result[timedelta, str]:
        """Ask the time service for the current time and diff it against local time."""
        try:
            response = requests.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as e:
            return Err(f"request failed: {e}")

        raw = payload.get("datetime") if isinstance(payload, dict) else None
        if not raw:
            return Err("response has no 'datetime' field")
        try:
            network_now = date_parser.isoparse(raw)
        except (ValueError, OverflowError) as e:
            return Err(f"unparseable datetime {raw!r}: {e}")
        if timezone.is_naive(network_now):
            return Err(f"datetime {raw!r} carries no UTC offset")

        return Ok(network_now - self._local.now())


def get_default_clock() -> Clock:
    """Build the clock configured in settings. Each call returns a new instance."""
    if getattr(settings, "TIME_SYNC_ENABLED", False):
        return NetworkTimeClock(
            url=settings.TIME_SYNC_URL,
            timeout=getattr(settings, "TIME_SYNC_TIMEOUT_SECONDS", 5),
            refresh_interval=getattr(settings, "TIME_SYNC_REFRESH_SECONDS", 3600),
        )
    return SystemClock()
