from __future__ import annotations

import logging

from pipelines.runner import RunContext
from ports.extraction import ExtractionPort
from services.reconciliation import reconcile


logger = logging.getLogger(__name__)


class ExtractPosts:
    """All selected URLs go out as one logical request (the actor bills per run)."""

    def __init__(self, extractor: ExtractionPort) -> None:
        self.extractor = extractor

    def run(self, ctx: RunContext) -> RunContext:
        urls = [p.canonical_url for p in ctx.to_process]
        ctx.extraction = self.extractor.submit_extraction_batch(urls)
        logger.info(
            f"Extraction returned {ctx.extraction.total_items} items in {ctx.extraction.batches_processed} batch(es)",
            extra={"step": "extract", "status": "ok", "run_id": ctx.run_id or "-"},
        )
        return ctx


class ReconcilePosts:
    def __init__(self, strategies=None) -> None:
        self.strategies = strategies

    def run(self, ctx: RunContext) -> RunContext:
        raw_items = ctx.extraction.raw_items if ctx.extraction else []
        ctx.groups = reconcile(raw_items, ctx.to_process, strategies=self.strategies)
        return ctx
