"""Prometheus metrics for best-effort work that never reaches the caller"""

from prometheus_client import Counter

BACKGROUND_TASKS = Counter(
    "blogcore_background_tasks_total",
    "Fire-and-forget task outcomes",
    ["operation", "result"],
)
EMBEDDING_OPERATIONS = Counter(
    "blogcore_embedding_operations_total",
    "Embedding index outcomes",
    ["operation", "result"],
)
