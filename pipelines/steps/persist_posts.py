from __future__ import annotations

import logging
from typing import Set

from models import PostOutcome, ProfilePostGroup
from pipelines.runner import RunContext
from ports.sink import SinkPort
from ports.source import ProfileSourcePort


logger = logging.getLogger(__name__)


class PersistPosts:
    """Mark each matched profile processed, then write its posts one at a time.

    A failed post never stops the remaining posts or groups.
    """

    def __init__(self, source: ProfileSourcePort, sink: SinkPort) -> None:
        self.source = source
        self.sink = sink

    def _mark(self, profile_id: str, run_id: str) -> None:
        try:
            marked = self.source.mark_profile_processed(profile_id)
        except Exception as e:
            logger.error(f"Marking profile {profile_id} failed: {e}", extra={"step": "mark_processed", "profile": profile_id, "run_id": run_id, "error": type(e).__name__})
            marked = False
        if not marked:
            logger.warning(f"Could not mark profile {profile_id} as processed; continuing", extra={"step": "mark_processed", "profile": profile_id, "run_id": run_id})

    def _write_group(self, group: ProfilePostGroup, ctx: RunContext) -> None:
        run_id = ctx.run_id or "-"
        saved = duplicates = failed = 0
        for post in group.posts:
            try:
                record = self.sink.create_sink_record(post, group.profile_url, group.profile_display_name)
            except Exception as e:
                failed += 1
                logger.error(f"Error saving post {post.url}: {e}", extra={"step": "sink_write", "status": "failed", "run_id": run_id, "error": type(e).__name__})
                ctx.results.append(PostOutcome(
                    profile_url=group.profile_url,
                    profile_name=group.profile_display_name,
                    post_url=post.url,
                    success=False,
                    error=str(e),
                ))
                continue

            if record is None:
                failed += 1
                outcome = PostOutcome(
                    profile_url=group.profile_url,
                    profile_name=group.profile_display_name,
                    post_url=post.url,
                    success=False,
                    error="sink returned no record",
                )
            elif record.duplicate:
                duplicates += 1
                outcome = PostOutcome(
                    profile_url=group.profile_url,
                    profile_name=group.profile_display_name,
                    post_url=post.url,
                    success=False,
                    deal_id=record.id,
                    duplicate=True,
                )
            else:
                saved += 1
                outcome = PostOutcome(
                    profile_url=group.profile_url,
                    profile_name=group.profile_display_name,
                    post_url=post.url,
                    success=True,
                    deal_id=record.id,
                )
            ctx.results.append(outcome)

        logger.info(
            f"{group.profile_display_name}: {saved} saved, {duplicates} duplicate, {failed} failed",
            extra={"step": "sink_write", "profile": group.profile_id or "-", "run_id": run_id},
        )

    def run(self, ctx: RunContext) -> RunContext:
        run_id = ctx.run_id or "-"
        marked_ids: Set[str] = set()

        for group in ctx.groups:
            if group.matched and group.profile_id:
                if group.profile_id not in marked_ids:
                    self._mark(group.profile_id, run_id)
                    marked_ids.add(group.profile_id)
            elif not group.matched:
                logger.warning(
                    f"Posts for {group.profile_url} are not linked to a known profile; nothing will be marked",
                    extra={"step": "sink_write", "status": "unmatched", "run_id": run_id},
                )
            logger.info(f"Processing {group.profile_display_name}: {len(group.posts)} post(s)", extra={"step": "sink_write", "run_id": run_id})
            self._write_group(group, ctx)

        # Submitted profiles count as consumed even when they returned no posts
        for profile in ctx.to_process:
            if profile.id and profile.id not in marked_ids:
                self._mark(profile.id, run_id)
                marked_ids.add(profile.id)

        ctx.profiles_processed = len(ctx.to_process)
        return ctx
