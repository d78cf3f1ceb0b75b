"""Prometheus metrics definitions for Nightplan."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "nightplan_http_requests_total",
    "Total number of HTTP requests processed by the Nightplan API",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "nightplan_http_request_duration_seconds",
    "Latency of HTTP requests processed by the Nightplan API",
    ["method", "path"],
)

PLANS_GENERATED = Counter(
    "nightplan_plans_generated_total",
    "Number of plans successfully generated by kind",
    ["kind"],
)

PLANS_ABORTED = Counter(
    "nightplan_plans_aborted_total",
    "Number of plan generations aborted by kind and reason",
    ["kind", "reason"],
)

VALIDATION_FAILURES = Counter(
    "nightplan_plan_validation_failures_total",
    "Number of model outputs rejected by the plan schema validator",
)

INFERENCE_DURATION = Histogram(
    "nightplan_plan_inference_duration_seconds",
    "Wall time spent generating a plan, including every model attempt",
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0),
)

__all__ = [
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "PLANS_GENERATED",
    "PLANS_ABORTED",
    "VALIDATION_FAILURES",
    "INFERENCE_DURATION",
]
