from __future__ import annotations

import json
import logging
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from config.settings import Settings, get_settings
from models import RateLimitCounter, RateLimitStats


logger = logging.getLogger(__name__)


def _resolve_tz(name: Optional[str]) -> tzinfo:
    if not name or name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


class RateLimiter:
    """Daily profile quota persisted as ``{"date": "YYYY-MM-DD", "count": n}``.

    Read-modify-write without locking: only one process is expected to run
    batches at a time.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        path: Optional[str | Path] = None,
        daily_max: Optional[int] = None,
        today: Optional[Callable[[], str]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.path = Path(path or self.settings.rate_limit_file)
        self.daily_max = int(daily_max if daily_max is not None else self.settings.max_profiles_per_day)
        self._tz = _resolve_tz(self.settings.rate_limit_timezone)
        self._today = today or self._default_today

    def _default_today(self) -> str:
        return datetime.now(self._tz).strftime("%Y-%m-%d")

    def _load(self) -> RateLimitCounter:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return RateLimitCounter.model_validate(data)
        except FileNotFoundError:
            return RateLimitCounter(date=self._today(), count=0)
        except Exception as e:
            logger.error(f"Could not read rate limit file {self.path}: {e}", extra={"step": "rate_limit", "error": type(e).__name__})
            return RateLimitCounter(date=self._today(), count=0)

    def _save(self, counter: RateLimitCounter) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(counter.model_dump(), indent=2), encoding="utf-8")
        except Exception as e:
            logger.error(f"Could not write rate limit file {self.path}: {e}", extra={"step": "rate_limit", "error": type(e).__name__})

    def can_process_more(self) -> bool:
        counter = self._load()
        today = self._today()
        if counter.date != today:
            logger.info("New day detected, resetting rate limit counter", extra={"step": "rate_limit"})
            self._save(RateLimitCounter(date=today, count=0))
            return True
        if counter.count >= self.daily_max:
            logger.warning(f"Daily limit reached: {counter.count}/{self.daily_max}", extra={"step": "rate_limit", "status": "exhausted"})
            return False
        return True

    def increment_count(self, amount: int = 1) -> int:
        counter = self._load()
        today = self._today()
        if counter.date != today:
            counter = RateLimitCounter(date=today, count=0)
        counter = RateLimitCounter(date=counter.date, count=counter.count + max(0, int(amount)))
        self._save(counter)
        logger.info(f"Rate limit: {counter.count}/{self.daily_max} profiles processed today", extra={"step": "rate_limit"})
        return counter.count

    def get_stats(self) -> RateLimitStats:
        counter = self._load()
        today = self._today()
        # Rollover is reported, not persisted, on the read path
        count = counter.count if counter.date == today else 0
        return RateLimitStats(
            date=today,
            count=count,
            limit=self.daily_max,
            remaining=max(0, self.daily_max - count),
        )
