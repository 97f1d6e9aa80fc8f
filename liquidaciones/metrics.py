"""Prometheus metrics for the liquidation service.

All metric objects are module-level singletons; import and use directly.

Metrics exposed:
  liquidaciones_quotes_total              counter  commission_configured=true|false
  liquidaciones_liquidations_saved_total  counter  result=saved|failed
  liquidaciones_nettings_total            counter  result=committed|rejected|conflict
  liquidaciones_difference_writes_total   counter  result=saved|skipped
"""
import logging

from prometheus_client import Counter, start_http_server

logger = logging.getLogger(__name__)

quotes_total = Counter(
    "liquidaciones_quotes_total",
    "Commission quotes computed",
    ["commission_configured"],   # "true" | "false"
)

liquidations_saved_total = Counter(
    "liquidaciones_liquidations_saved_total",
    "Liquidation snapshots persisted",
    ["result"],          # "saved" | "failed"
)

nettings_total = Counter(
    "liquidaciones_nettings_total",
    "Penalty netting operations",
    ["result"],          # "committed" | "rejected" | "conflict"
)

difference_writes_total = Counter(
    "liquidaciones_difference_writes_total",
    "Best-effort writes of the reconciliation difference",
    ["result"],          # "saved" | "skipped"
)


def start_metrics_server(port: int = 9091) -> None:
    """Start the Prometheus metrics HTTP server in a background thread.

    Logs a warning and continues if the port is already in use.
    """
    try:
        start_http_server(port)
        logger.info(f"Prometheus metrics server listening on :{port}/metrics")
    except OSError as exc:
        logger.warning(f"Could not start metrics server on port {port}: {exc}")
