from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional

from models import RunResult


def _runs_for_day(day: str) -> Dict[str, int]:
    """Aggregate traced runs from the run log for a YYYY-MM-DD (UTC) day.

    Returns dict like {'runs': N, 'failed_runs': F, 'posts_saved': S, 'profiles_processed': P, ...}
    """
    result: Dict[str, int] = {
        "runs": 0,
        "failed_runs": 0,
        "posts_total": 0,
        "posts_saved": 0,
        "posts_failed": 0,
        "duplicates": 0,
        "profiles_processed": 0,
        "resets": 0,
    }
    try:
        from config.settings import get_settings
        settings = get_settings()
        log_path = Path(settings.run_log_path)
        if not log_path.exists():
            return result
        with log_path.open("r", encoding="utf-8") as f:
            for line in f:
                try:
                    rec = json.loads(line)
                except Exception:
                    continue
                if not isinstance(rec, dict) or not str(rec.get("ts") or "").startswith(day):
                    continue
                result["runs"] += 1
                if not rec.get("success"):
                    result["failed_runs"] += 1
                if rec.get("reset_triggered"):
                    result["resets"] += 1
                summary = rec.get("summary") or {}
                result["posts_total"] += int(summary.get("total") or 0)
                result["posts_saved"] += int(summary.get("successful") or 0)
                result["posts_failed"] += int(summary.get("failed") or 0)
                result["duplicates"] += int(summary.get("duplicates") or 0)
                result["profiles_processed"] += int(summary.get("profiles_processed") or 0)
    except OSError:
        return result
    return result


def print_summary(result: RunResult, output_path: Optional[Path] = None) -> None:
    """Print summary of one scrape run."""
    print("\n" + "="*60)
    print("LINKEDIN POSTS HARVESTER - RUN SUMMARY")
    print("="*60)
    print(f"Run ID: {result.run_id or 'N/A'}")
    print(f"Success: {result.success}")
    if result.error:
        print(f"Stopped: {result.error}")
    if result.summary:
        s = result.summary
        print()
        print("Posts:")
        print(f"  Total: {s.total}")
        print(f"  Saved: {s.successful}")
        print(f"  Duplicates: {s.duplicates}")
        print(f"  Failed: {s.failed}")
        print(f"Profiles Processed: {s.profiles_processed}")
    if result.reset_triggered:
        print("Rotation: all profiles processed, state reset")
    if result.stats:
        st = result.stats
        print()
        print(f"Daily Quota ({st.date}): {st.count}/{st.limit} used, {st.remaining} remaining")
    if output_path:
        print(f"Output File: {output_path}")
    print("="*60)


def print_daily_report(day: str) -> None:
    totals = _runs_for_day(day)
    print(f"Runs on {day}: {totals['runs']} ({totals['failed_runs']} stopped or failed)")
    print(f"  Posts: {totals['posts_total']} total, {totals['posts_saved']} saved, "
          f"{totals['duplicates']} duplicates, {totals['posts_failed']} failed")
    print(f"  Profiles processed: {totals['profiles_processed']}")
    print(f"  Rotation resets: {totals['resets']}")
