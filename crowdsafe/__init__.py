"""CrowdSafe: demo crowd-safety analysis service."""

__version__ = "1.0.0"
