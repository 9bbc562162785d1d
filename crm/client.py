from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

import requests

from config.settings import Settings, get_settings
from errors import ConfigurationError, CRMError


logger = logging.getLogger(__name__)

_RETRY_STATUSES = {429, 500, 502, 503, 504}


class HubSpotClient:
    """Thin requests wrapper for the HubSpot REST API.

    - Bearer auth from ``HUBSPOT_TOKEN``
    - retries with exponential backoff on network errors, 429 and 5xx
    - raises CRMError for any other non-2xx answer
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings or get_settings()
        if not self.settings.hubspot_token:
            raise ConfigurationError("HUBSPOT_TOKEN is not configured")
        self.base_url = self.settings.hubspot_base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {self.settings.hubspot_token}",
            "Content-Type": "application/json",
        })
        self._sleep = sleep
        self.api_calls_made = 0

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Any = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        attempts = max(1, self.settings.max_retries)
        last_error: Optional[str] = None
        last_status: Optional[int] = None

        for attempt in range(attempts):
            try:
                response = self.session.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    timeout=self.settings.request_timeout_seconds,
                )
                self.api_calls_made += 1
            except requests.exceptions.RequestException as e:
                last_error = str(e)
                last_status = None
                logger.error(f"HubSpot request error on attempt {attempt + 1}: {e}", extra={"step": "hubspot", "error": type(e).__name__})
            else:
                if 200 <= response.status_code < 300:
                    if not response.content:
                        return {}
                    return response.json()
                last_status = response.status_code
                last_error = response.text
                if response.status_code not in _RETRY_STATUSES:
                    raise CRMError(
                        f"HubSpot {method} {path} failed with status {response.status_code}: {response.text}",
                        status_code=response.status_code,
                    )
                logger.warning(
                    f"HubSpot {method} {path} returned {response.status_code}, attempt {attempt + 1}/{attempts}",
                    extra={"step": "hubspot", "status": response.status_code},
                )
            if attempt < attempts - 1:
                self._sleep(2 ** attempt)  # Exponential backoff

        raise CRMError(f"HubSpot {method} {path} failed after {attempts} attempt(s): {last_error}", status_code=last_status)

    def get(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        return self.request("POST", path, **kwargs)

    def patch(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        return self.request("PATCH", path, **kwargs)
