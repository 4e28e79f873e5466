# crowdsafe/client.py
"""
Python client for the CrowdSafe backend.

Mirrors the web UI: files are checked locally before any request is made,
and one client runs at most one analysis at a time.
"""
from __future__ import annotations

import logging
import mimetypes
import threading
from pathlib import Path
from typing import Any, Dict, Optional, Type

import httpx

from crowdsafe.errors import (
    AnalysisError,
    ClientBusyError,
    CrowdSafeError,
    DashboardLoadError,
    UploadError,
    VideoValidationError,
)
from crowdsafe.models import AnalysisResult

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 100 * 1024 * 1024


def validate_video(path: Path, max_bytes: int = MAX_UPLOAD_BYTES) -> str:
    """Return the video's MIME type or raise VideoValidationError."""
    mime, _ = mimetypes.guess_type(path.name)
    if not mime or not mime.startswith("video/"):
        raise VideoValidationError("Please upload a valid video file")
    if path.stat().st_size > max_bytes:
        raise VideoValidationError(
            f"File size must be less than {max_bytes // (1024 * 1024)}MB", status_code=413
        )
    return mime


class CrowdSafeClient:
    def __init__(self, base_url: str = "http://127.0.0.1:8000", timeout: Optional[float] = None,
                 transport: Optional[httpx.BaseTransport] = None):
        self._http = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)
        self._busy = threading.Lock()

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "CrowdSafeClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    # ---- analysis ----

    def analyze_file(self, path) -> AnalysisResult:
        path = Path(path)
        mime = validate_video(path)
        with self._exclusive():
            with path.open("rb") as fh:
                resp = self._send("POST", "/api/v1/analyze/upload",
                                  files={"file": (path.name, fh, mime)})
            return self._result(resp)

    def analyze_url(self, url: str) -> AnalysisResult:
        if not url or not url.strip():
            raise VideoValidationError("Please enter a video URL")
        with self._exclusive():
            resp = self._send("POST", "/api/v1/analyze/url", json={"videoUrl": url.strip()})
            return self._result(resp)

    # ---- dashboard ----

    def dashboard(self, limit: int = 10) -> Dict[str, Any]:
        resp = self._send("GET", "/api/v1/dashboard", params={"limit": limit}, error=DashboardLoadError)
        return self._json(resp, DashboardLoadError)

    def recent(self, limit: int = 10, before: Optional[str] = None) -> Dict[str, Any]:
        params: Dict[str, Any] = {"limit": limit}
        if before:
            params["before"] = before
        resp = self._send("GET", "/api/v1/analyses", params=params, error=DashboardLoadError)
        return self._json(resp, DashboardLoadError)

    def changes(self, after: Optional[str] = None) -> Dict[str, Any]:
        params = {"after": after} if after else {}
        resp = self._send("GET", "/api/v1/analyses/changes", params=params, error=DashboardLoadError)
        return self._json(resp, DashboardLoadError)

    # ---- internals ----

    def _exclusive(self):
        if not self._busy.acquire(blocking=False):
            raise ClientBusyError()
        return _Release(self._busy)

    def _send(self, method: str, url: str, error: Type[CrowdSafeError] = AnalysisError, **kwargs) -> httpx.Response:
        try:
            return self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", method, url, e)
            raise error() from e

    @staticmethod
    def _error_message(resp: httpx.Response) -> Optional[str]:
        try:
            body = resp.json()
        except ValueError:
            return None
        return body.get("error") if isinstance(body, dict) else None

    def _json(self, resp: httpx.Response, error: Type[CrowdSafeError]) -> Dict[str, Any]:
        if resp.is_success:
            return resp.json()
        raise error(self._error_message(resp), status_code=resp.status_code)

    def _result(self, resp: httpx.Response) -> AnalysisResult:
        if resp.is_success:
            return AnalysisResult.model_validate(resp.json())
        message = self._error_message(resp)
        if resp.status_code in (400, 413, 422):
            raise VideoValidationError(message, status_code=resp.status_code)
        if message == UploadError.default_message:
            raise UploadError(message, status_code=resp.status_code)
        raise AnalysisError(message, status_code=resp.status_code)


class _Release:
    def __init__(self, lock: threading.Lock):
        self._lock = lock

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self._lock.release()
        return False
