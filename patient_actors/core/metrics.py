"""
Prometheus metrics for the patient actor backend.

Exposed through GET /metrics (api/routers/metrics.py).
"""
from prometheus_client import Counter, Histogram

chat_responses_total = Counter(
    "patient_actor_chat_responses_total",
    "Chat turns answered by a patient actor",
    ["mode", "status"],
)

llm_fallbacks_total = Counter(
    "patient_actor_llm_fallbacks_total",
    "Chat turns answered with the in-character fallback after a model failure",
    ["mode"],
)

llm_call_duration_seconds = Histogram(
    "patient_actor_llm_call_duration_seconds",
    "Latency of language model calls",
    ["provider", "status"],
    buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0),
)

sessions_created_total = Counter(
    "patient_actor_sessions_created_total",
    "Chat sessions persisted for authenticated students",
)

submission_transitions_total = Counter(
    "patient_actor_submission_transitions_total",
    "Submission status transitions",
    ["to_status"],
)
