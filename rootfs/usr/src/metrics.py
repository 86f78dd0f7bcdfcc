"""
Metrics Module

Renders the current status snapshot as Prometheus metrics and serves them over
HTTP on /metrics.
"""

import logging
import re
import threading
from wsgiref.simple_server import WSGIRequestHandler, make_server

from prometheus_client import make_wsgi_app
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, InfoMetricFamily
from prometheus_client.exposition import ThreadingWSGIServer
from prometheus_client.registry import Collector, CollectorRegistry

from constants import ErrorCategory, InfoLabel
import state as state_module
from utils import parse_float

logger = logging.getLogger(__name__)

PREFIX = "apcupsd"
METRICS_PATH = "/metrics"

_INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_:]")


def metric_name(key: str) -> str:
    """Build the gauge name for a status key, e.g. LINEV -> apcupsd_linev."""
    return f"{PREFIX}_{_INVALID_NAME_CHARS.sub('_', key.lower())}"


class ApcupsdCollector(Collector):
    """
    Collector exporting the latest status snapshot.

    Descriptive keys become labels of the apcupsd_info metric, every other key
    with a numeric value becomes a gauge. The snapshot is read once per scrape.
    """

    def __init__(self, context: state_module.AppContext) -> None:
        self.app_context = context

    def describe(self):
        return []

    def collect(self):
        snapshot = self.app_context.snapshot

        yield InfoMetricFamily(
            PREFIX,
            "APC UPS daemon information",
            value={label.lower(): snapshot.get(label, "") for label in InfoLabel},
        )

        seen = set()
        for key, value in snapshot.values.items():
            if key in InfoLabel.__members__:
                continue

            numeric_value = parse_float(value)
            if numeric_value is None:
                continue

            name = metric_name(key)
            if name in seen:
                logger.debug(f"Skipping duplicate metric '{name}' for key '{key}'")
                continue
            seen.add(name)
            yield GaugeMetricFamily(name, f"APC UPS {key}", value=numeric_value)

        yield from self._collect_exporter()

    def _collect_exporter(self):
        context = self.app_context
        yield InfoMetricFamily(
            f"{PREFIX}_exporter_build",
            "Version of the apcupsd exporter",
            value={"version": context.version},
        )
        yield GaugeMetricFamily(
            f"{PREFIX}_exporter_start_time_seconds",
            "Unix time the exporter was started",
            value=context.startup_time.timestamp(),
        )
        yield GaugeMetricFamily(
            f"{PREFIX}_exporter_up",
            "Whether the last poll of the apcupsd NIS succeeded",
            value=1 if context.up else 0,
        )
        last_success = context.last_success
        yield GaugeMetricFamily(
            f"{PREFIX}_exporter_last_success_timestamp_seconds",
            "Unix time of the last successful poll",
            value=last_success.timestamp() if last_success else 0,
        )
        yield CounterMetricFamily(
            f"{PREFIX}_exporter_fetch_failures",
            "Number of failed polls of the apcupsd NIS",
            value=context.fetch_failures,
        )


def build_registry(context: state_module.AppContext) -> CollectorRegistry:
    """Create a registry that only holds the apcupsd collector."""
    registry = CollectorRegistry()
    registry.register(ApcupsdCollector(context))
    return registry


def create_app(registry: CollectorRegistry):
    """WSGI app serving the registry on /metrics and 404 elsewhere."""
    metrics_app = make_wsgi_app(registry)

    def app(environ, start_response):
        if environ.get("PATH_INFO") != METRICS_PATH:
            start_response("404 Not Found", [("Content-Type", "text/plain; charset=utf-8")])
            return [b"Not Found\n"]
        return metrics_app(environ, start_response)

    return app


class _LoggingHandler(WSGIRequestHandler):
    """Send request logs to the logger instead of stderr."""

    def log_message(self, format, *args):
        logger.debug(f"HTTP {self.address_string()} - {format % args}")


def start_metrics_server(context: state_module.AppContext, address: str, port: int) -> ThreadingWSGIServer:
    """
    Start the HTTP server in a daemon thread.

    Args:
        context: Application context to export.
        address: Listen address.
        port: Listen port.

    Returns:
        ThreadingWSGIServer: The running server; call shutdown() to stop it.

    Raises:
        OSError: If the address cannot be bound.
    """
    app = create_app(build_registry(context))
    try:
        httpd = make_server(address, port, app, ThreadingWSGIServer, handler_class=_LoggingHandler)
    except OSError as e:
        context.set_error(f"Failed to bind {address}:{port}: {e}", category=ErrorCategory.HTTP)
        raise

    thread = threading.Thread(target=httpd.serve_forever, name="MetricsServer", daemon=True)
    thread.start()
    logger.info(f"Serving metrics on http://{address}:{httpd.server_port}{METRICS_PATH}")
    return httpd
