"""Result aggregation and report generation."""

from scheduler.reporting.aggregator import GroupSummary, OverallSummary, RunReport, aggregate
from scheduler.reporting.reporter import Reporter, default_report_path, print_summary

__all__ = [
    "GroupSummary",
    "OverallSummary",
    "Reporter",
    "RunReport",
    "aggregate",
    "default_report_path",
    "print_summary",
]
