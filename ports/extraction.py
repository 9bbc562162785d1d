from __future__ import annotations

from typing import List, Protocol

from models import ExtractionBatchResult


class ExtractionPort(Protocol):
    source_name: str

    def submit_extraction_batch(self, urls: List[str]) -> ExtractionBatchResult:
        """One logical request; chunking and inter-chunk delay happen inside."""
        ...
