"""
urinorm.observability — Run counters for a normalizer instance.

Counters
--------
lookups        calls to normalize / resolve / fetch
cache_hits     lookups answered from the result cache
cache_misses   lookups that went to the rule table or the network
failures       lookups that raised
"""

import uuid
from datetime import datetime, timezone

COUNTERS = ("lookups", "cache_hits", "cache_misses", "failures")


def start_run(stage: str) -> dict:
    """Begin a new run.  Returns a metrics dict to populate."""
    metrics = {
        "run_id": str(uuid.uuid4()),
        "run_start": datetime.now(timezone.utc),
        "run_end": None,
        "duration_seconds": None,
        "stage": stage,
        "cache_hit_rate_pct": None,
        "failure_rate_pct": None,
        "status": "running",
    }
    for name in COUNTERS:
        metrics[name] = 0
    return metrics


def record(metrics: dict, counter: str, amount: int = 1) -> None:
    metrics[counter] += amount


def finish_run(metrics: dict) -> dict:
    """Finalise a copy of ``metrics``: duration, hit and failure rates, status."""
    result = dict(metrics)
    result["run_end"] = datetime.now(timezone.utc)
    elapsed = (result["run_end"] - result["run_start"]).total_seconds()
    result["duration_seconds"] = round(elapsed, 2)

    lookups = result["lookups"]
    if lookups > 0:
        result["cache_hit_rate_pct"] = round(result["cache_hits"] / lookups * 100, 2)
        result["failure_rate_pct"] = round(result["failures"] / lookups * 100, 2)
    else:
        result["cache_hit_rate_pct"] = 0.0
        result["failure_rate_pct"] = 0.0

    if result["status"] == "running":
        result["status"] = "completed"
    return result
