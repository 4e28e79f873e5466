# crowdsafe/analysis_service/analyzer.py
"""
Mock crowd analysis.

No frames are decoded: one of five fixed scenarios is drawn at random and
its alert timeline is filled in from the template for its crowd level.
Swap RandomScenarioAnalyzer for a real model by implementing Analyzer.
"""
from __future__ import annotations

import logging
import random
from typing import Dict, List, NamedTuple, Optional, Protocol

from crowdsafe.models import Alert, AnalysisResult

logger = logging.getLogger(__name__)


class Scenario(NamedTuple):
    people: int
    density: float
    safe: int
    warning: int
    danger: int
    level: str


SCENARIOS: List[Scenario] = [
    Scenario(people=45,  density=0.35, safe=4, warning=1, danger=0, level="Safe"),
    Scenario(people=120, density=0.55, safe=2, warning=3, danger=1, level="Warning"),
    Scenario(people=280, density=0.82, safe=1, warning=2, danger=3, level="Critical"),
    Scenario(people=85,  density=0.42, safe=3, warning=2, danger=0, level="Safe"),
    Scenario(people=195, density=0.68, safe=2, warning=3, danger=2, level="Warning"),
]

# (time, message, level), chronological
ALERT_TEMPLATES: Dict[str, List[tuple]] = {
    "Critical": [
        ("00:05", "High crowd density detected in Zone A", "warning"),
        ("00:28", "Critical overcrowding in Zone B - immediate action recommended", "danger"),
        ("00:45", "Multiple congestion points identified", "danger"),
        ("01:12", "Emergency exits showing restricted flow", "danger"),
    ],
    "Warning": [
        ("00:10", "Moderate crowd density in Zone A", "info"),
        ("00:35", "Density increasing in Zone C - monitor closely", "warning"),
        ("00:52", "Flow rate decreasing in main corridor", "warning"),
        ("01:20", "Crowd movement stabilizing", "info"),
    ],
    "Safe": [
        ("00:12", "Normal crowd density across all zones", "info"),
        ("00:40", "Good circulation patterns observed", "info"),
        ("01:05", "All zones within safe parameters", "info"),
    ],
}


def alerts_for(level: str) -> List[Alert]:
    """Fresh alert list for a crowd level."""
    return [Alert(time=t, message=m, level=lv) for t, m, lv in ALERT_TEMPLATES[level]]


def scenario_result(index: int) -> AnalysisResult:
    if not 0 <= index < len(SCENARIOS):
        raise IndexError(f"scenario index out of range: {index}")
    s = SCENARIOS[index]
    return AnalysisResult(
        total_people=s.people,
        crowd_level=s.level,
        average_density=s.density,
        safe_zones=s.safe,
        warning_zones=s.warning,
        danger_zones=s.danger,
        alerts=alerts_for(s.level),
    )


def generate(video_reference: Optional[str] = None, rng: Optional[random.Random] = None) -> AnalysisResult:
    """
    Fabricate a result for a video.

    video_reference is accepted but never opened; the same video can come
    back with a different scenario on every call.
    """
    draw = rng if rng is not None else random
    index = draw.randrange(len(SCENARIOS))
    logger.debug("scenario %d selected for %r", index, video_reference)
    return scenario_result(index)


class Analyzer(Protocol):
    def analyze(self, video_reference: Optional[str]) -> AnalysisResult: ...


class RandomScenarioAnalyzer:
    name = "random_scenario_v0"

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng

    def analyze(self, video_reference: Optional[str]) -> AnalysisResult:
        return generate(video_reference, rng=self._rng)
