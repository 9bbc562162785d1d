from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional

from crm.client import HubSpotClient
from errors import CRMError
from models import Profile
from services.url_utils import is_profile_url, normalize_url


logger = logging.getLogger(__name__)

LINKEDIN_PROPERTIES = ("linkedin", "hs_linkedin_url", "linkedin_profile_link")
NAME_PROPERTIES = ("firstname", "lastname", "name")
BATCH_UPDATE_SIZE = 100


def _prop_value(properties: Dict[str, Any], name: str) -> Any:
    # v1 list payloads wrap values as {"value": ...}; v3 uses plain values
    value = properties.get(name)
    if isinstance(value, dict):
        value = value.get("value")
    return value


def _is_truthy_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() == "true"


class ContactsRepo:
    """HubSpot contact list as the profile source.

    The "processed" state is a contact property (``HUBSPOT_PROCESSED_PROPERTY``);
    absent values count as not processed.
    """

    def __init__(self, client: HubSpotClient):
        self.client = client
        self.settings = client.settings
        self.processed_property = self.settings.hubspot_processed_property
        self.last_fetch_complete = True

    def _iter_list_contacts(self) -> Iterator[Dict[str, Any]]:
        list_id = self.settings.hubspot_list_id
        properties = [*LINKEDIN_PROPERTIES, *NAME_PROPERTIES, self.processed_property]
        offset: Optional[Any] = None
        self.last_fetch_complete = True

        for page in range(1, self.settings.hubspot_max_pages + 1):
            params: List[tuple] = [("count", str(self.settings.hubspot_page_size))]
            params.extend(("property", prop) for prop in properties)
            if offset is not None:
                params.append(("vidOffset", str(offset)))
            try:
                data = self.client.get(f"/contacts/v1/lists/{list_id}/contacts/all", params=params)
            except CRMError as e:
                if e.status_code == 404:
                    raise CRMError(f"HubSpot list {list_id} not found; check HUBSPOT_LIST_ID", status_code=404) from e
                if e.status_code == 401:
                    raise CRMError("HubSpot token is invalid or expired", status_code=401) from e
                logger.error(f"Error fetching contacts page {page}: {e}", extra={"step": "fetch_profiles", "error": "CRMError"})
                self.last_fetch_complete = False
                return

            contacts = data.get("contacts") or []
            logger.debug(f"Contacts on page {page}: {len(contacts)}", extra={"step": "fetch_profiles"})
            yield from contacts

            if data.get("has-more") is not True:
                return
            offset = data.get("vid-offset")
        # Page cap reached with more data left
        self.last_fetch_complete = False

    def _to_profile(self, contact: Dict[str, Any]) -> Optional[Profile]:
        properties = contact.get("properties") or {}
        raw_url = None
        for name in LINKEDIN_PROPERTIES:
            raw_url = _prop_value(properties, name)
            if raw_url:
                break
        if not isinstance(raw_url, str) or "linkedin.com" not in raw_url.lower():
            return None
        url = normalize_url(raw_url)
        if not url or not is_profile_url(url):
            return None

        first = _prop_value(properties, "firstname") or ""
        last = _prop_value(properties, "lastname") or ""
        name = f"{first} {last}".strip() or (_prop_value(properties, "name") or "").strip() or None

        contact_id = contact.get("vid", contact.get("id"))
        return Profile(
            id=str(contact_id) if contact_id is not None else None,
            display_name=name,
            canonical_url=url,
            processed=_is_truthy_flag(_prop_value(properties, self.processed_property)),
        )

    def list_profiles(self) -> List[Profile]:
        """Every contact of the list that carries a usable LinkedIn URL."""
        profiles: List[Profile] = []
        total = 0
        for contact in self._iter_list_contacts():
            total += 1
            profile = self._to_profile(contact)
            if profile is not None:
                profiles.append(profile)
        logger.info(
            f"Contacts fetched: {total}, with LinkedIn profile: {len(profiles)}",
            extra={"step": "fetch_profiles", "status": "ok" if self.last_fetch_complete else "partial"},
        )
        if total and not profiles:
            logger.warning("Contacts found but none has a valid LinkedIn URL", extra={"step": "fetch_profiles"})
        return profiles

    def fetch_unprocessed_profiles(self) -> List[Profile]:
        profiles = [p for p in self.list_profiles() if not p.processed]
        logger.info(f"Unprocessed profiles: {len(profiles)}", extra={"step": "fetch_profiles"})
        return profiles

    def mark_profile_processed(self, profile_id: str) -> bool:
        return self._set_processed(profile_id, True)

    def _set_processed(self, profile_id: str, value: bool) -> bool:
        try:
            self.client.patch(
                f"/crm/v3/objects/contacts/{profile_id}",
                json={"properties": {self.processed_property: "true" if value else "false"}},
            )
            return True
        except Exception as e:
            logger.error(f"Could not update contact {profile_id}: {e}", extra={"step": "mark_processed", "profile": profile_id, "error": type(e).__name__})
            return False

    def reset_all_processed(self) -> bool:
        """Clear the processed flag everywhere; keeps going past failed chunks."""
        try:
            processed = [p for p in self.list_profiles() if p.processed and p.id]
        except Exception as e:
            logger.error(f"Could not list contacts for reset: {e}", extra={"step": "reset", "error": type(e).__name__})
            return False

        ok = True
        reset = 0
        for start in range(0, len(processed), BATCH_UPDATE_SIZE):
            chunk = processed[start:start + BATCH_UPDATE_SIZE]
            inputs = [{"id": p.id, "properties": {self.processed_property: "false"}} for p in chunk]
            try:
                self.client.post("/crm/v3/objects/contacts/batch/update", json={"inputs": inputs})
                reset += len(chunk)
            except Exception as e:
                ok = False
                logger.error(f"Reset chunk starting at {start} failed: {e}", extra={"step": "reset", "error": type(e).__name__})
        logger.info(f"Reset processed flag on {reset}/{len(processed)} contacts", extra={"step": "reset", "status": "ok" if ok else "partial"})
        return ok

    def all_processed(self) -> bool:
        profiles = self.list_profiles()
        if not profiles or not self.last_fetch_complete:
            return False
        return all(p.processed for p in profiles)
