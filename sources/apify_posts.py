from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from apify_client import ApifyClient

from config.settings import Settings, get_settings
from errors import ConfigurationError, ExtractionError
from models import ExtractionBatchResult
from ports.extraction import ExtractionPort
from sources.registry import register


logger = logging.getLogger(__name__)


class ApifyPostsSource(ExtractionPort):
    """LinkedIn profile posts through an Apify actor, one actor run per chunk."""

    source_name = "apify_linkedin_posts"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[ApifyClient] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings or get_settings()
        # Created on first use so the source can be registered without a token
        self._apify: Optional[ApifyClient] = client
        self._sleep = sleep

    def _client(self) -> ApifyClient:
        if self._apify is None:
            if not self.settings.apify_api_token:
                raise ConfigurationError("APIFY_API_TOKEN is not configured")
            self._apify = ApifyClient(self.settings.apify_api_token)
        return self._apify

    def build_run_input(self, urls: List[str]) -> Dict[str, Any]:
        s = self.settings
        return {
            "targetUrls": list(urls),
            "maxPosts": s.max_posts,
            "includeQuotePosts": s.include_quote_posts,
            "includeReposts": s.include_reposts,
            "scrapeReactions": s.scrape_reactions,
            "maxReactions": s.max_reactions,
            "scrapeComments": s.scrape_comments,
            "maxComments": s.max_comments,
        }

    def _run_chunk(self, client: ApifyClient, urls: List[str], number: int) -> List[Any]:
        actor_id = self.settings.apify_actor_id
        run = client.actor(actor_id).call(run_input=self.build_run_input(urls))
        if not run:
            raise ExtractionError(f"Apify actor {actor_id} returned no run for batch {number}")
        status = run.get("status")
        logger.info(f"Actor run {run.get('id')} finished with status {status}", extra={"step": "extract", "status": status})
        if status and status != "SUCCEEDED":
            logger.warning(f"Batch {number} finished as {status}; reading whatever the dataset holds", extra={"step": "extract", "status": status})
        return list(client.dataset(run["defaultDatasetId"]).list_items().items)

    def submit_extraction_batch(self, urls: List[str]) -> ExtractionBatchResult:
        if not urls:
            raise ExtractionError("submit_extraction_batch needs a non-empty URL list")
        client = self._client()
        batch_size = max(1, self.settings.apify_batch_size)
        chunks = [urls[i:i + batch_size] for i in range(0, len(urls), batch_size)]
        logger.info(
            f"Extracting posts for {len(urls)} profiles in {len(chunks)} actor run(s) of up to {batch_size}",
            extra={"step": "extract"},
        )

        raw_items: List[Any] = []
        for number, chunk in enumerate(chunks, start=1):
            t0 = time.time()
            try:
                items = self._run_chunk(client, chunk, number)
            except ExtractionError:
                raise
            except Exception as e:
                raise ExtractionError(f"Apify extraction failed on batch {number}/{len(chunks)}: {e}") from e
            raw_items.extend(items)
            logger.info(
                f"Batch {number}/{len(chunks)}: {len(items)} items",
                extra={"step": "extract", "status": "ok", "duration_ms": int((time.time() - t0) * 1000)},
            )
            if number < len(chunks):
                self._sleep(self.settings.apify_batch_delay_seconds)

        return ExtractionBatchResult(raw_items=raw_items, total_items=len(raw_items), batches_processed=len(chunks))


def _register():
    register(ApifyPostsSource.source_name, ApifyPostsSource)


_register()
