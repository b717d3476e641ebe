"""
Prometheus counters for checkout, settlement and notification outcomes.
"""
from __future__ import annotations

from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest


NOTIFICATION_DISPATCH = Counter(
    "notification_dispatch_total",
    "Email and attribution dispatch attempts",
    ["channel", "kind", "result"],
)

CHECKOUT_POLL = Counter(
    "checkout_poll_total",
    "Charge status polls issued by checkout sessions",
    ["result"],
)

ORDER_TRANSITIONS = Counter(
    "order_transitions_total",
    "Order status transition attempts",
    ["source", "target", "result"],
)


def metrics_response() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
