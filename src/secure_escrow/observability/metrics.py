"""Prometheus metrics for the secure escrow middleware.

Metrics include:

- Request counter by escrow outcome (served, forbidden, escrowed,
  passthrough, error)
- Counter of entries placed in escrow
- Cleanup operation tracking for stores without native expiry

Examples:
    >>> record_request("served", 200)
    >>> record_stored()
    >>> record_cleanup(records_removed=3)
"""

from prometheus_client import Counter

# Labels: outcome (served, forbidden, escrowed, passthrough, error), status_code
requests_total = Counter(
    "secure_escrow_requests_total",
    "Total number of requests handled by the escrow engine",
    ["outcome", "status_code"],
)

entries_stored = Counter(
    "secure_escrow_entries_stored_total",
    "Total number of responses placed in escrow",
)

cleanup_operations = Counter(
    "secure_escrow_cleanup_operations_total",
    "Total number of cleanup operations performed",
)

cleanup_records_removed = Counter(
    "secure_escrow_cleanup_records_removed_total",
    "Total number of expired escrow entries removed by cleanup",
)


def record_request(outcome: str, status_code: int) -> None:
    """Record a handled request.

    Args:
        outcome: The dispatch outcome
        status_code: HTTP status code of the response
    """
    requests_total.labels(outcome=outcome, status_code=str(status_code)).inc()


def record_stored() -> None:
    entries_stored.inc()


def record_cleanup(records_removed: int) -> None:
    """Record a cleanup operation.

    Args:
        records_removed: Number of expired entries removed
    """
    cleanup_operations.inc()
    cleanup_records_removed.inc(records_removed)
