from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


def _load_env() -> None:
    # Centralized dotenv loading; safe if .env missing
    load_dotenv()


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    # HubSpot (profile source + deal sink)
    hubspot_token: str | None
    hubspot_list_id: str
    hubspot_base_url: str
    hubspot_pipeline_id: str
    hubspot_deal_stage_id: str | None
    hubspot_processed_property: str
    hubspot_page_size: int
    hubspot_max_pages: int
    deal_currency_code: str

    # Apify (batch extraction)
    apify_api_token: str | None
    apify_actor_id: str
    apify_batch_size: int
    apify_batch_delay_seconds: float
    max_posts: int
    include_quote_posts: bool
    include_reposts: bool
    scrape_reactions: bool
    max_reactions: int
    scrape_comments: bool
    max_comments: int

    # Daily quota
    max_profiles_per_day: int
    rate_limit_file: str
    rate_limit_timezone: str

    # Scheduling / HTTP surface
    scrape_interval_minutes: int
    scheduler_timezone: str
    run_on_startup: bool
    port: int

    # Retries/Timeouts
    max_retries: int
    request_timeout_seconds: int

    # Logging/tracing
    log_level: str
    log_dir: str | None
    run_trace: bool = False
    run_log_path: str = "logs/runs.jsonl"

    run_env: str = "local"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    _load_env()
    log_dir = os.getenv("LOG_DIR", "data/logs")
    return Settings(
        hubspot_token=os.getenv("HUBSPOT_TOKEN"),
        hubspot_list_id=os.getenv("HUBSPOT_LIST_ID", "5557"),
        hubspot_base_url=os.getenv("HUBSPOT_BASE_URL", "https://api.hubapi.com"),
        hubspot_pipeline_id=os.getenv("HUBSPOT_PIPELINE_ID", "811215668"),
        hubspot_deal_stage_id=os.getenv("HUBSPOT_DEAL_STAGE_ID") or None,
        hubspot_processed_property=os.getenv("HUBSPOT_PROCESSED_PROPERTY", "scrapeado_linkedin"),
        hubspot_page_size=int(os.getenv("HUBSPOT_PAGE_SIZE", "100")),
        hubspot_max_pages=int(os.getenv("HUBSPOT_MAX_PAGES", "150")),
        deal_currency_code=os.getenv("DEAL_CURRENCY_CODE", "MXN"),
        apify_api_token=os.getenv("APIFY_API_TOKEN"),
        apify_actor_id=os.getenv("APIFY_ACTOR_ID", "A3cAPGpwBEG8RJwse"),
        apify_batch_size=int(os.getenv("APIFY_BATCH_SIZE", "10")),
        apify_batch_delay_seconds=float(os.getenv("APIFY_BATCH_DELAY_SECONDS", "2")),
        max_posts=int(os.getenv("MAX_POSTS", "5")),
        include_quote_posts=os.getenv("INCLUDE_QUOTE_POSTS", "true").lower() != "false",
        include_reposts=_as_bool(os.getenv("INCLUDE_REPOSTS")),
        scrape_reactions=_as_bool(os.getenv("SCRAPE_REACTIONS")),
        max_reactions=int(os.getenv("MAX_REACTIONS", "5")),
        scrape_comments=_as_bool(os.getenv("SCRAPE_COMMENTS")),
        max_comments=int(os.getenv("MAX_COMMENTS", "5")),
        max_profiles_per_day=int(os.getenv("MAX_PROFILES_PER_DAY", "50")),
        rate_limit_file=os.getenv("RATE_LIMIT_FILE", "data/rate-limit.json"),
        rate_limit_timezone=os.getenv("RATE_LIMIT_TIMEZONE", "UTC"),
        scrape_interval_minutes=int(os.getenv("SCRAPE_INTERVAL_MINUTES", "0")),
        scheduler_timezone=os.getenv("SCHEDULER_TIMEZONE", "America/New_York"),
        run_on_startup=_as_bool(os.getenv("RUN_ON_STARTUP"), default=True),
        port=int(os.getenv("PORT", "3003")),
        max_retries=int(os.getenv("MAX_RETRIES", "3")),
        request_timeout_seconds=int(os.getenv("REQUEST_TIMEOUT", "30")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        # Empty LOG_DIR disables the daily file handler
        log_dir=log_dir or None,
        run_trace=_as_bool(os.getenv("RUN_TRACE")),
        run_log_path=os.getenv("RUN_LOG_PATH", "logs/runs.jsonl"),
        run_env=os.getenv("RUN_ENV", "local"),
    )
