from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "accu_api_requests_total",
    "Total API requests",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "accu_api_request_latency_seconds",
    "API request latency",
    ["method", "path"],
)

TASK_COUNT = Counter(
    "accu_task_total",
    "Total task executions",
    ["task", "status"],
)

TRANSITION_COUNT = Counter(
    "accu_application_transitions_total",
    "Applied application status transitions",
    ["from_status", "to_status"],
)

SIDE_EFFECT_COUNT = Counter(
    "accu_side_effects_total",
    "Outbox side-effect delivery attempts",
    ["kind", "outcome"],
)
