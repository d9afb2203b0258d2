"""Single-slot JSON cache for the last auto-detected location."""

from __future__ import annotations

import json
import logging
import math
import time
from pathlib import Path
from typing import Any, Callable

from ...config import settings
from ...models.domain import LocationData

logger = logging.getLogger(__name__)

MS_PER_HOUR = 60 * 60 * 1000


def _epoch_ms() -> int:
    return int(time.time() * 1000)


class LocationCache:
    """Persists ``{"data": <location>, "timestamp": <epoch ms>}`` in one file.

    Entries older than the TTL are ignored but left on disk; the next
    successful detection overwrites them. Storage failures behave like an
    empty cache.
    """

    def __init__(
        self,
        path: Path | None = None,
        ttl_hours: float | None = None,
        clock_ms: Callable[[], int] = _epoch_ms,
    ) -> None:
        self.path = Path(path or settings.location_cache_file)
        self.ttl_ms = int((ttl_hours if ttl_hours is not None else settings.location_cache_ttl_hours) * MS_PER_HOUR)
        self._clock_ms = clock_ms

    def _read_entry(self) -> dict[str, Any] | None:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug(f"Location cache unreadable at {self.path}: {exc}")
            return None
        try:
            entry = json.loads(text)
        except json.JSONDecodeError:
            logger.debug(f"Location cache at {self.path} is not valid JSON")
            return None
        return entry if isinstance(entry, dict) else None

    def read(self, now_ms: int | None = None) -> LocationData | None:
        entry = self._read_entry()
        if entry is None:
            return None
        timestamp = entry.get("timestamp")
        data = entry.get("data")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)) or not isinstance(data, dict):
            return None
        now = now_ms if now_ms is not None else self._clock_ms()
        # NaN, infinite and future timestamps count as stale
        if not math.isfinite(timestamp) or timestamp > now or now - timestamp >= self.ttl_ms:
            return None
        return LocationData.from_dict(data)

    def write(self, location: LocationData, now_ms: int | None = None) -> None:
        entry = {
            "data": location.to_dict(),
            "timestamp": now_ms if now_ms is not None else self._clock_ms(),
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            with tmp.open("w", encoding="utf-8") as handle:
                json.dump(entry, handle, ensure_ascii=False)
            tmp.replace(self.path)
        except OSError as exc:
            logger.debug(f"Failed to write location cache at {self.path}: {exc}")

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            logger.debug(f"Failed to clear location cache at {self.path}: {exc}")
