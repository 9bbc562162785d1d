from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from crm.client import HubSpotClient
from models import Post, SinkRecord


logger = logging.getLogger(__name__)

DESCRIPTION_TEXT_LIMIT = 1000
NOT_AVAILABLE = "Not available"


def build_deal_description(post: Post, profile_url: Optional[str], author_name: str) -> str:
    """Semi-structured deal body; the post URL line is what duplicate search keys on."""
    lines = [
        "LinkedIn post",
        "",
        f"Author/Profile: {author_name}",
        f"Profile URL: {profile_url or NOT_AVAILABLE}",
        f"Post URL: {post.url}",
        "",
    ]
    if post.text:
        text = post.text[:DESCRIPTION_TEXT_LIMIT]
        if len(post.text) > DESCRIPTION_TEXT_LIMIT:
            text += "..."
        lines.extend(["Content:", text, ""])
    if post.created_at:
        lines.append(f"Posted at: {post.created_at}")
    return "\n".join(lines)


class DealsRepo:
    """One HubSpot deal per post, with search-before-create dedup (best effort)."""

    def __init__(self, client: HubSpotClient):
        self.client = client
        self.settings = client.settings
        self._pipeline_stage: Optional[Tuple[Optional[str], Optional[str]]] = None

    def find_deal_by_post_url(self, post_url: str) -> Optional[str]:
        """Return the id of a deal whose description contains ``post_url``."""
        try:
            data = self.client.post(
                "/crm/v3/objects/deals/search",
                json={
                    "filterGroups": [{
                        "filters": [{
                            "propertyName": "description",
                            "operator": "CONTAINS_TOKEN",
                            "value": post_url,
                        }],
                    }],
                    "limit": 10,
                    "properties": ["dealname", "description"],
                },
            )
        except Exception as e:
            # Search failures must not block creation
            logger.debug(f"Duplicate search failed, continuing: {e}", extra={"step": "sink_write"})
            return None
        for deal in data.get("results") or []:
            description = (deal.get("properties") or {}).get("description") or ""
            if post_url in description:
                return str(deal.get("id"))
        return None

    def _resolve_pipeline_stage(self) -> Tuple[Optional[str], Optional[str]]:
        if self._pipeline_stage is not None:
            return self._pipeline_stage

        pipeline_id = self.settings.hubspot_pipeline_id
        stage_id = self.settings.hubspot_deal_stage_id
        if stage_id and stage_id.isdigit():
            self._pipeline_stage = (pipeline_id, stage_id)
            return self._pipeline_stage

        try:
            pipelines = self.client.get("/crm/v3/pipelines/deals").get("results") or []
        except Exception as e:
            logger.warning(f"Could not fetch deal pipelines: {e}", extra={"step": "sink_write"})
            pipelines = []

        target: Optional[Dict[str, Any]] = next((p for p in pipelines if str(p.get("id")) == pipeline_id), None)
        if target is None and pipelines:
            target = pipelines[0]
        if target and target.get("stages"):
            first_stage = target["stages"][0]
            self._pipeline_stage = (str(target.get("id")), str(first_stage.get("id")))
        else:
            logger.warning("No valid pipeline/stage found; deals are created without a stage", extra={"step": "sink_write"})
            self._pipeline_stage = (pipeline_id if pipeline_id and pipeline_id.isdigit() else None, None)
        return self._pipeline_stage

    def create_sink_record(self, post: Post, profile_url: str, display_name: str) -> Optional[SinkRecord]:
        if not post.url:
            logger.warning("No post URL to save", extra={"step": "sink_write"})
            return None

        existing = self.find_deal_by_post_url(post.url)
        if existing:
            logger.info(f"Duplicate post, deal {existing} already exists: {post.url}", extra={"step": "sink_write", "status": "duplicate"})
            return SinkRecord(id=existing, duplicate=True)

        author_name = display_name or post.author or NOT_AVAILABLE
        name = f"{author_name} - LinkedIn post"
        description = build_deal_description(post, profile_url, author_name)
        properties: Dict[str, Any] = {
            "dealname": name,
            "description": description,
            "amount": "0",
            "deal_currency_code": self.settings.deal_currency_code,
        }
        pipeline_id, stage_id = self._resolve_pipeline_stage()
        if pipeline_id:
            properties["pipeline"] = pipeline_id
        if stage_id:
            properties["dealstage"] = stage_id

        try:
            data = self.client.post("/crm/v3/objects/deals", json={"properties": properties})
        except Exception as e:
            logger.error(f"Error creating deal for {post.url}: {e}", extra={"step": "sink_write", "status": "failed", "error": type(e).__name__})
            return None
        deal_id = data.get("id")
        logger.info(f"Deal created: {deal_id}", extra={"step": "sink_write", "status": "saved"})
        return SinkRecord(id=str(deal_id) if deal_id is not None else None, name=name, description=description, duplicate=False)
