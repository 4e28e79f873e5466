# crowdsafe/errors.py
from typing import Optional


class CrowdSafeError(Exception):
    """Base error. Rendered by the apps as {"error": message}."""

    status_code = 500
    default_message = "Unknown error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class VideoValidationError(CrowdSafeError):
    status_code = 400
    default_message = "Please upload a valid video file"


class UploadError(CrowdSafeError):
    status_code = 500
    default_message = "Failed to upload video"


class AnalysisError(CrowdSafeError):
    status_code = 502
    default_message = "Failed to analyze video"


class PersistenceError(AnalysisError):
    status_code = 500
    default_message = "Failed to save analysis"


class DashboardLoadError(CrowdSafeError):
    status_code = 500
    default_message = "Failed to load dashboard data"


class ClientBusyError(CrowdSafeError):
    status_code = 409
    default_message = "An analysis is already in progress"


class UnknownCursorError(CrowdSafeError):
    status_code = 404
    default_message = "unknown cursor"
