"""
Prometheus metrics for the reconciliation loop.

Provides observability into reconcile outcomes, the work queue and workers.
"""
from prometheus_client import Counter, Gauge, Histogram

# Reconcile metrics
reconcile_total = Counter(
    "dbcontroller_reconcile_total",
    "Total number of reconciliation attempts",
    ["result"],
)

reconcile_duration_seconds = Histogram(
    "dbcontroller_reconcile_duration_seconds",
    "Time spent reconciling a single key",
    ["result"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30),
)

reconcile_errors_total = Counter(
    "dbcontroller_reconcile_errors_total",
    "Total number of unexpected reconciliation errors",
)

# Queue metrics
queue_depth = Gauge(
    "dbcontroller_queue_depth",
    "Number of keys waiting in the work queue",
)

queue_requeue_total = Counter(
    "dbcontroller_queue_requeue_total",
    "Total number of rate-limited requeues",
)

# Watch metrics
watch_events_total = Counter(
    "dbcontroller_watch_events_total",
    "Total number of Database watch events received",
    ["type"],
)

watch_restarts_total = Counter(
    "dbcontroller_watch_restarts_total",
    "Total number of Database watch stream restarts",
)

# Object metrics
secrets_created_total = Counter(
    "dbcontroller_secrets_created_total",
    "Total credential secrets created",
)

databases_created_total = Counter(
    "dbcontroller_databases_created_total",
    "Total logical databases provisioned",
    ["backend"],
)
