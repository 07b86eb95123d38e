"""Mailbox analytics over a sliding time window."""

from .content import extract_keywords, subject_patterns, top_keywords
from .engine import AnalyticsEngine
from .report import build_recommendations, format_report

__all__ = [
    "AnalyticsEngine",
    "build_recommendations",
    "extract_keywords",
    "format_report",
    "subject_patterns",
    "top_keywords",
]
