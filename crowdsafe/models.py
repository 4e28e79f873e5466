# crowdsafe/models.py
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CrowdLevel = Literal["Safe", "Warning", "Critical"]
AlertLevel = Literal["info", "warning", "danger"]


class _CamelModel(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Alert(_CamelModel):
    time: str = Field(..., pattern=r"^\d{2}:\d{2}$", description="mm:ss offset into the video")
    message: str
    level: AlertLevel


class AnalysisResult(_CamelModel):
    total_people: int = Field(..., ge=0)
    crowd_level: CrowdLevel
    average_density: float = Field(..., ge=0, le=1)
    safe_zones: int = Field(..., ge=0)
    warning_zones: int = Field(..., ge=0)
    danger_zones: int = Field(..., ge=0)
    alerts: List[Alert] = Field(default_factory=list)


class AnalyzeRequest(_CamelModel):
    """Body accepted by the analysis function."""
    video_path: Optional[str] = Field(None, description="Object name inside the video bucket")
    video_url: Optional[str] = Field(None, description="Externally hosted video link")

    @property
    def reference(self) -> Optional[str]:
        return self.video_url or self.video_path


class AnalyzeUrlRequest(_CamelModel):
    video_url: str = Field("", description="YouTube or direct video link")
