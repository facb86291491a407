"""MCP tool implementations."""

from project_health.tools.analyze_target import analyze_target
from project_health.tools.classify_package import classify_package

__all__ = [
    "analyze_target",
    "classify_package",
]
