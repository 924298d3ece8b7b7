"""Visitor profiling."""
from .visitor_profiler import VisitorProfiler, build_roster, dominant_expression

__all__ = ["VisitorProfiler", "build_roster", "dominant_expression"]
