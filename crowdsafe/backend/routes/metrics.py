# crowdsafe/backend/routes/metrics.py
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from crowdsafe.backend.routes.metrics_store import metrics  # <- use the singleton

router = APIRouter()


@router.get("")  # GET /api/v1/metrics
async def get_metrics():
    snap = metrics.snapshot()

    out = {
        op: {
            "calls":          snap.get(op, {}).get("calls", 0),
            "errors":         snap.get(op, {}).get("errors", 0),
            "avg_latency_ms": snap.get(op, {}).get("avg_latency_ms", 0.0),
            "last_request":   snap.get(op, {}).get("last_request"),
            "last_output":    snap.get(op, {}).get("last_output"),
        }
        for op in ("upload", "analyze", "dashboard")
    }
    return JSONResponse(content=out)
