# crowdsafe/backend/routes/dashboard.py
import asyncio
import json
import logging
import os
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from starlette.responses import StreamingResponse

from crowdsafe import storage
from crowdsafe.backend.routes.metrics_store import metrics
from crowdsafe.errors import CrowdSafeError, DashboardLoadError

logger = logging.getLogger(__name__)

router = APIRouter()

STREAM_POLL_SECONDS = float(os.getenv("STREAM_POLL_SECONDS", "2.0"))
TREND_POINTS = 9
ALERT_ROWS = 5

ALERT_SEVERITY = {"danger": "Critical", "warning": "High"}


def _density_status(avg: float) -> str:
    if avg > 0.7:
        return "CRITICAL"
    if avg > 0.4:
        return "WARNING"
    return "SAFE"


def _hhmm(created_at: str) -> str:
    return datetime.fromisoformat(created_at).strftime("%H:%M")


def summarize(analyses: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Aggregate dashboard stats over recent rows (newest first)."""
    n = len(analyses)
    total_people = sum(a["total_people"] for a in analyses)
    avg_density = (sum(a["average_density"] for a in analyses) / n) if n else 0.0

    safe = sum(a["safe_zones"] for a in analyses)
    warning = sum(a["warning_zones"] for a in analyses)
    danger = sum(a["danger_zones"] for a in analyses)
    zone_total = safe + warning + danger

    critical = sum(1 for a in analyses if a["crowd_level"] == "Critical")
    if critical > n / 2:
        overall = "Critical"
    elif critical > 0:
        overall = "Warning"
    else:
        overall = "Safe"

    trend = [
        {"time": _hhmm(a["created_at"]), "density": a["average_density"]}
        for a in reversed(analyses[:TREND_POINTS])
    ]

    alerts = [
        {
            "id": f"{i}-{j}",
            "time": a["created_at"],
            "zone": f"Analysis {i + 1}",
            "level": ALERT_SEVERITY.get(alert.get("level"), "Medium"),
            "status": "Resolved",
            "message": alert.get("message"),
        }
        for i, a in enumerate(analyses[:ALERT_ROWS])
        for j, alert in enumerate(a.get("alerts") or [])
    ]

    return {
        "analysisCount": n,
        "totalPeople": total_people,
        "averageDensity": round(avg_density, 4),
        "densityStatus": _density_status(avg_density),
        "zones": {
            "safe": safe,
            "warning": warning,
            "danger": danger,
            "safeRatio": min(safe / zone_total, 1.0) if zone_total else 0.0,
        },
        "criticalCount": critical,
        "overallStatus": overall,
        "densityTrend": trend,
        "recentAlerts": alerts,
    }


async def _load(fn, *args, **kwargs):
    try:
        return await run_in_threadpool(fn, *args, **kwargs)
    except SQLAlchemyError as e:
        logger.error("Error fetching analyses: %s", e)
        raise DashboardLoadError() from e


@router.get("/dashboard", summary="Aggregate stats over recent analyses")
async def get_dashboard(limit: int = Query(10, ge=1, le=100)):
    with metrics.timed("dashboard") as m:
        rows = await _load(storage.list_analyses, limit=limit)
        out = summarize(rows)
        m["output"] = {"analysisCount": out["analysisCount"], "overallStatus": out["overallStatus"]}
    return out


@router.get("/analyses", summary="Recent analyses, newest first (cursor paginated)")
async def get_analyses(limit: int = Query(10, ge=1, le=100), before: Optional[str] = None):
    rows = await _load(storage.list_analyses, limit=limit, before=before)
    return {"items": rows, "next": rows[-1]["id"] if len(rows) == limit else None}


@router.get("/analyses/changes", summary="Analyses newer than a cursor, oldest first")
async def get_changes(after: Optional[str] = None, limit: int = Query(50, ge=1, le=500)):
    rows = await _load(storage.list_analyses_after, after=after, limit=limit)
    return {"items": rows, "cursor": rows[-1]["id"] if rows else after}


async def change_stream(after: Optional[str] = None, max_polls: Optional[int] = None) -> AsyncIterator[str]:
    """SSE frames for rows inserted after `after` (or after the newest row at connect time)."""
    polls = 0
    try:
        cursor = after
        if cursor is None:
            latest = await _load(storage.list_analyses, limit=1)
            cursor = latest[0]["id"] if latest else None
        while max_polls is None or polls < max_polls:
            if polls:
                await asyncio.sleep(max(STREAM_POLL_SECONDS, 0.05))
            polls += 1
            rows = await _load(storage.list_analyses_after, after=cursor)
            for row in rows:
                cursor = row["id"]
                yield f"id: {cursor}\nevent: analysis\ndata: {json.dumps(row)}\n\n"
    except CrowdSafeError as e:
        yield f"event: error\ndata: {json.dumps({'error': e.message})}\n\n"


@router.get("/analyses/stream", summary="Server-sent events for new analyses")
async def stream_analyses(after: Optional[str] = None):
    return StreamingResponse(change_stream(after), media_type="text/event-stream")


@router.get("/analyses/{analysis_id}")
async def get_one(analysis_id: str):
    row = await _load(storage.get_analysis, analysis_id)
    if not row:
        raise HTTPException(status_code=404, detail="analysis not found")
    return row
