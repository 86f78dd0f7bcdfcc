"""
APCUPSD Exporter Healthcheck

Lightweight healthcheck script for Docker HEALTHCHECK.
Requests the metrics endpoint of the running exporter.
Exit code 0 = healthy, 1 = unhealthy.
"""

import os
import sys
import urllib.error
import urllib.request

DEFAULT_PORT = "8080"
LOOPBACK = "127.0.0.1"
WILDCARD_ADDRESSES = ("0.0.0.0", "::")


def default_url() -> str:
    """Metrics URL of the local exporter, from METRICS_ADDRESS and METRICS_PORT."""
    address = os.getenv("METRICS_ADDRESS") or LOOPBACK
    if address in WILDCARD_ADDRESSES:
        address = LOOPBACK
    elif ":" in address:
        address = f"[{address}]"
    port = os.getenv("METRICS_PORT") or DEFAULT_PORT
    return f"http://{address}:{port}/metrics"


def is_exporter_healthy(url: str | None = None, timeout: float = 5) -> bool:
    """Check if the metrics endpoint answers with HTTP 200."""
    if url is None:
        url = default_url()

    try:
        with urllib.request.urlopen(url, timeout=timeout) as response:
            return response.status == 200
    except (urllib.error.URLError, OSError, ValueError):
        return False


if __name__ == "__main__":
    sys.exit(0 if is_exporter_healthy() else 1)
