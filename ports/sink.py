from __future__ import annotations

from typing import Optional, Protocol

from models import Post, SinkRecord


class SinkPort(Protocol):
    def create_sink_record(self, post: Post, profile_url: str, display_name: str) -> Optional[SinkRecord]:
        """Create a record for ``post`` unless one exists; None on unrecoverable error."""
        ...
