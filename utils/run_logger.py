from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


def _ensure_parent_dir(path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except Exception:
        pass


def log_run(
    *,
    run_id: Optional[str],
    trigger: str,
    success: bool,
    error: Optional[str] = None,
    summary: Optional[Dict[str, Any]] = None,
    stats: Optional[Dict[str, Any]] = None,
    duration_ms: Optional[int] = None,
    reset_triggered: bool = False,
) -> None:
    """Append one JSON line describing a batch run if run tracing is enabled.

    Controlled by RUN_TRACE / RUN_LOG_PATH in config/settings.py
    """
    from config.settings import get_settings
    try:
        # Ensure latest env changes (tests may monkeypatch env between calls)
        get_settings.cache_clear()  # type: ignore[attr-defined]
    except Exception:
        pass
    settings = get_settings()
    if not settings.run_trace:
        return

    log_path = Path(settings.run_log_path)
    _ensure_parent_dir(log_path)

    payload: Dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "run_id": run_id,
        "trigger": trigger,
        "success": success,
        "error": error,
        "summary": summary or {},
        "stats": stats or {},
        "duration_ms": duration_ms,
        "reset_triggered": reset_triggered,
    }

    try:
        with log_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(payload, ensure_ascii=False) + "\n")
    except Exception:
        # Never break a run on trace-logging failures
        return
