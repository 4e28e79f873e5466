# crowdsafe/backend/routes/analyze.py
import logging
import os
from typing import Any, Dict

import httpx
from fastapi import APIRouter, UploadFile, File
from pydantic import ValidationError

from crowdsafe.backend import bucket
from crowdsafe.backend.routes.metrics_store import metrics
from crowdsafe.errors import AnalysisError, VideoValidationError
from crowdsafe.models import AnalysisResult, AnalyzeUrlRequest

logger = logging.getLogger(__name__)

router = APIRouter()

# -------------------------------
# Service configuration (env vars)
# -------------------------------
ANALYZE_SVC_URL = os.getenv("ANALYZE_SVC_URL", "http://127.0.0.1:8002")
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "100"))
MAX_UPLOAD_BYTES = MAX_UPLOAD_MB * 1024 * 1024

# None means a real network transport; tests mount the function app here
_transport = None


# -------------------------------
# Helpers
# -------------------------------
def _check_video(file: UploadFile) -> None:
    """Reject before anything touches the bucket or the function."""
    if not file or not file.filename:
        raise VideoValidationError("file is required", status_code=422)

    content_type = (file.content_type or "").lower()
    if not content_type.startswith("video/"):
        raise VideoValidationError("Please upload a valid video file")

    if file.size is not None and file.size > MAX_UPLOAD_BYTES:
        raise VideoValidationError(f"File size must be less than {MAX_UPLOAD_MB}MB", status_code=413)


def _error_message(resp: httpx.Response):
    try:
        body = resp.json()
    except ValueError:
        return None
    return body.get("error") if isinstance(body, dict) else None


async def invoke_function(payload: Dict[str, Any]) -> AnalysisResult:
    """POST to the analysis function once. No retries."""
    try:
        async with httpx.AsyncClient(base_url=ANALYZE_SVC_URL, timeout=None, transport=_transport) as client:
            resp = await client.post("/analyze-video", json=payload)
    except httpx.HTTPError as e:
        logger.error("Analysis error: %s", e)
        raise AnalysisError() from e

    if resp.status_code != 200:
        message = _error_message(resp)
        logger.error("Analysis error (%s): %s", resp.status_code, message or resp.text)
        raise AnalysisError(message)

    try:
        return AnalysisResult.model_validate(resp.json())
    except (ValueError, ValidationError) as e:
        logger.error("Analysis function returned an unexpected payload: %s", e)
        raise AnalysisError() from e


# -------------------------------
# Routes
# -------------------------------
@router.post("/upload", response_model=AnalysisResult, summary="Upload a video and analyze it")
async def analyze_upload(file: UploadFile = File(..., description="video/* only, max 100MB")):
    try:
        _check_video(file)

        name = bucket.object_name(file.filename)
        with metrics.timed("upload") as m:
            size = await bucket.upload(name, file, MAX_UPLOAD_BYTES)
            m["output"] = {"path": name, "size_bytes": size}
    finally:
        await file.close()

    with metrics.timed("analyze") as m:
        result = await invoke_function({"videoPath": name})
        m["output"] = {"path": name, "crowd_level": result.crowd_level}
    return result


@router.post("/url", response_model=AnalysisResult, summary="Analyze a linked video")
async def analyze_url(req: AnalyzeUrlRequest):
    video_url = (req.video_url or "").strip()
    if not video_url:
        raise VideoValidationError("Please enter a video URL")

    with metrics.timed("analyze") as m:
        result = await invoke_function({"videoUrl": video_url})
        m["output"] = {"url": video_url, "crowd_level": result.crowd_level}
    return result
