import os
import tempfile

# storage and bucket read their settings at import time
_TMP = tempfile.mkdtemp(prefix="crowdsafe-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'crowdsafe.db')}"
os.environ["BUCKET_DIR"] = os.path.join(_TMP, "bucket")
os.environ.setdefault("STREAM_POLL_SECONDS", "0.05")

import httpx
import pytest
from fastapi.testclient import TestClient

from crowdsafe import storage
from crowdsafe.analysis_service import main as function_main
from crowdsafe.backend import main as backend_main
from crowdsafe.backend.routes import analyze
from crowdsafe.backend.routes.metrics_store import metrics


@pytest.fixture(autouse=True)
def clean_db():
    with storage.SessionLocal() as db:
        db.query(storage.VideoAnalysis).delete()
        db.commit()
    metrics.reset()
    yield


@pytest.fixture
def function_client():
    with TestClient(function_main.app) as client:
        yield client
    function_main.app.dependency_overrides.clear()


@pytest.fixture
def backend_client(monkeypatch):
    # gateway -> function calls go straight into the function app
    monkeypatch.setattr(analyze, "_transport", httpx.ASGITransport(app=function_main.app))
    with TestClient(backend_main.app) as client:
        yield client
    function_main.app.dependency_overrides.clear()
