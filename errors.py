from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A collaborator was used without the credentials/settings it needs."""


class CRMError(RuntimeError):
    """HubSpot request failed in a way the caller should not silently absorb."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ExtractionError(RuntimeError):
    """The batched extraction call failed as a whole."""


class RunInProgressError(RuntimeError):
    """A batch run is already active in this process."""
