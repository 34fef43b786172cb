"""
Vidstream Prometheus metrics, exposed under /metrics.
"""
from __future__ import annotations

from prometheus_client import Counter, Gauge

TOGGLES = Counter(
    "vidstream_toggles_total",
    "Relation toggles by kind and resulting state",
    ["kind", "outcome"],
)

NOTIFICATIONS = Counter(
    "vidstream_notifications_total",
    "Notification deliveries per connection handle",
    ["result"],
)

NOTIFICATION_CONNECTIONS = Gauge(
    "vidstream_notification_connections",
    "Open notification connection handles",
)
