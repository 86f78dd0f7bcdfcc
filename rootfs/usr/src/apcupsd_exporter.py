"""
Description
-----------
This small Python application polls the Network Information Server (NIS) of apcupsd and exports the
status of the UPS as Prometheus metrics on http://<listen_address>:<port>/metrics.

NIS
---
The status is requested by sending a 2-byte length followed by the command:

0x00 0x06 status

apcupsd answers with one record per status line, every record prefixed with its length byte and
separated by null bytes, e.g.:

\\x00\\x1aAPC      : 001,036,0876\\n\\x00\\x1bSTATUS   : ONLINE\\n ... "  \\n\\x00\\x00"

Units (Volts, Percent, Minutes, ...) are stripped from the values unless disabled.

Metrics
-------
apcupsd_info{apc,hostname,upsname,version,cable,model,upsmode,driver,apcmodel} 1
apcupsd_<key> - one gauge for every other key with a numeric value, e.g. apcupsd_linev, apcupsd_bcharge
apcupsd_exporter_up - 1 if the last poll succeeded
apcupsd_exporter_last_success_timestamp_seconds
apcupsd_exporter_fetch_failures_total
apcupsd_exporter_build_info{version} 1
apcupsd_exporter_start_time_seconds

Configuration
-------------
Environment: APCUPSD_HOST, APCUPSD_PORT, APCUPSD_TIMEOUT (or TIMEOUT), APCUPSD_STRIP_UNITS,
METRICS_ADDRESS, METRICS_PORT, INTERVAL, LOG_LEVEL. See --help for the command-line equivalents.
"""

import logging
import signal
import sys
import threading

import config as config_module
from metrics import start_metrics_server
from nis_client import NisIOError, fetch
from poller import TaskPollNis
import state as state_module
from utils import get_version

logger = logging.getLogger(__name__)


def dump_status(config: config_module.ConfigModel) -> int:
    """Print the status once, in the format of apcaccess."""
    nis = config.nis
    try:
        values = fetch(nis.host, nis.port, nis.timeout, nis.strip_units)
    except NisIOError as e:
        print(f"Failed to fetch APC UPS stats from {nis.host}:{nis.port}: {e}", file=sys.stderr)
        return 1

    for key, value in values.items():
        print(f"{key:<9}: {value}")
    return 0


# ------------------------------------------------------------------------------------
# Main
# ------------------------------------------------------------------------------------

def main(argv=None) -> int:
    args = config_module.init_args(argv)
    version = get_version()

    if args.version:
        print(version)
        return 0

    context = state_module.get_context()
    context.version = version

    try:
        context.config = config_module.read_config(args, version=version)
    except Exception:
        logger.error('Fatal exception during startup', exc_info=True)
        return 1

    if args.dump:
        return dump_status(context.config)

    stopper = threading.Event()

    # Signal handling for graceful shutdown
    def signal_handler(signum, frame):
        logger.info(f"Signal {signum} received, stopping...")
        stopper.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    task = TaskPollNis(context, stopper)

    nis = context.config.nis
    logger.debug(f"Fetching initial APC UPS stats from {nis.host}:{nis.port}")
    if task.poll_once():
        logger.info("Successfully fetched initial APC UPS stats")
    else:
        logger.warning("Initial fetch failed, serving empty metrics until the next successful poll")

    exporter = context.config.exporter
    try:
        httpd = start_metrics_server(context, exporter.listen_address, exporter.port)
    except OSError:
        logger.error('Fatal exception starting the metrics server', exc_info=True)
        return 1

    task.start()

    # Wait with timeout so signals are handled by the main thread
    while task.is_alive():
        task.join(1)

    httpd.shutdown()
    httpd.server_close()

    logger.info('Stop: apcupsd-exporter')
    return 0


if __name__ == "__main__":
    sys.exit(main())
