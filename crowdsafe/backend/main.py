# crowdsafe/backend/main.py
from dotenv import load_dotenv
load_dotenv()

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from crowdsafe import __version__
from crowdsafe.backend.routes import analyze, dashboard, metrics
from crowdsafe.config.cors import add_cors
from crowdsafe.config.log import setup_logging
from crowdsafe.errors import CrowdSafeError
from crowdsafe.storage import init_db

setup_logging()
logger = logging.getLogger(__name__)

# -----------------------------
# App Initialization
# -----------------------------
app = FastAPI(
    title="CrowdSafe Backend",
    version=__version__,
    description="Backend API for CrowdSafe AI "
                "(Upload, Analysis, Dashboard, Metrics)."
)

# -----------------------------
# Startup Event (DB init, etc.)
# -----------------------------
@app.on_event("startup")
async def startup_event():
    init_db()  # ensure video_analysis exists

# -----------------------------
# CORS Middleware
# -----------------------------
add_cors(app)

# -----------------------------
# Error rendering: {"error": message}
# -----------------------------
@app.exception_handler(CrowdSafeError)
async def crowdsafe_error_handler(request: Request, exc: CrowdSafeError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    return JSONResponse(status_code=422, content={"error": errors[0]["msg"] if errors else "Invalid request"})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

# -----------------------------
# Global Middleware
# -----------------------------
@app.middleware("http")
async def api_version_header(request: Request, call_next):
    """Attach API version header to every response."""
    response = await call_next(request)
    response.headers["X-API-Version"] = "1"
    return response

# -----------------------------
# Healthcheck Root
# -----------------------------
@app.get("/", tags=["Health"])
def read_root():
    return {
        "status": "success",
        "message": "CrowdSafe Backend Running",
        "version": __version__
    }

# -----------------------------
# Routers
# -----------------------------
app.include_router(analyze.router,   prefix="/api/v1/analyze", tags=["Analyze"])
app.include_router(dashboard.router, prefix="/api/v1",         tags=["Dashboard"])
app.include_router(metrics.router,   prefix="/api/v1/metrics", tags=["Metrics"])
