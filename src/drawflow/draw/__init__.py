"""Draw allocation: sanitization, ranking, quota allocation, metrics and export."""

from drawflow.draw.allocation import process_draw
from drawflow.draw.codec import parse_applicants, parse_hunt_codes
from drawflow.draw.export import DrawExport, export_results
from drawflow.draw.metrics import DrawMetric, MetricTitle, generate_draw_metrics, percent
from drawflow.draw.sort import build_comparator, sort_applicants, validate_sort_rules

__all__ = [
    "DrawExport",
    "DrawMetric",
    "MetricTitle",
    "build_comparator",
    "export_results",
    "generate_draw_metrics",
    "parse_applicants",
    "parse_hunt_codes",
    "percent",
    "process_draw",
    "sort_applicants",
    "validate_sort_rules",
]
