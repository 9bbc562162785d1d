from __future__ import annotations

from typing import List, Protocol

from models import Profile


class ProfileSourcePort(Protocol):
    """Where candidate profiles come from and where their processed flag lives."""

    def fetch_unprocessed_profiles(self) -> List[Profile]:
        """Profiles not yet marked processed, with normalized canonical URLs."""
        ...

    def mark_profile_processed(self, profile_id: str) -> bool:
        ...

    def reset_all_processed(self) -> bool:
        ...

    def all_processed(self) -> bool:
        """True only if every known profile is processed; False on an empty set."""
        ...
