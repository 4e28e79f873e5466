# crowdsafe/analysis_service/main.py
from dotenv import load_dotenv
load_dotenv()

import logging

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from crowdsafe.analysis_service.analyzer import Analyzer, RandomScenarioAnalyzer
from crowdsafe.config.cors import add_cors
from crowdsafe.config.log import setup_logging
from crowdsafe.errors import CrowdSafeError, PersistenceError
from crowdsafe.models import AnalysisResult, AnalyzeRequest
from crowdsafe import storage

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="CrowdSafe Analysis Function")
add_cors(app, allow_all=True)

_analyzer = RandomScenarioAnalyzer()


def get_analyzer() -> Analyzer:
    return _analyzer


@app.exception_handler(CrowdSafeError)
async def crowdsafe_error_handler(request: Request, exc: CrowdSafeError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    return JSONResponse(status_code=422, content={"error": errors[0]["msg"] if errors else "Invalid request"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Error in analyze-video function")
    return JSONResponse(status_code=500, content={"error": str(exc) or "Unknown error"})


@app.get("/health")
async def health():
    return {"status": "ok", "model": getattr(_analyzer, "name", "analyzer"), "version": "v0"}


@app.post("/analyze-video", response_model=AnalysisResult)
async def analyze_video(req: AnalyzeRequest, analyzer: Analyzer = Depends(get_analyzer)):
    logger.info("Analyzing video: path=%s url=%s", req.video_path, req.video_url)

    result = analyzer.analyze(req.reference)

    # A row must exist before the result is handed back
    try:
        storage.save_analysis(result, video_path=req.video_path, video_url=req.video_url)
    except Exception as e:
        logger.error("Error saving analysis: %s", e)
        raise PersistenceError() from e

    return result
