"""
Poll Task Module

Contains the TaskPollNis class that fetches the UPS status periodically and
publishes it into the application context.
"""

import logging
import threading

from constants import ErrorCategory
from nis_client import NisIOError, fetch
import state as state_module

logger = logging.getLogger(__name__)


class TaskPollNis(threading.Thread):
    """
    Task to poll the apcupsd NIS and update the shared status snapshot.

    A failed poll keeps the previous snapshot, so a short outage only makes the
    metrics stale instead of removing them.
    """

    def __init__(self, context: state_module.AppContext, stopper: threading.Event) -> None:
        """
        Initialize the poll task.

        Args:
            context: Application context, its config must be populated.
            stopper: Event to signal when the task should stop.
        """
        super().__init__(name="TaskPollNis", daemon=True)
        self._stopper = stopper
        self.app_context = context

    def poll_once(self) -> bool:
        """
        Fetch the status once and publish it.

        Returns:
            bool: True if a new snapshot was published.
        """
        nis = self.app_context.config.nis
        logger.debug(f"Fetching APC UPS stats from {nis.host}:{nis.port}")
        try:
            values = fetch(nis.host, nis.port, nis.timeout, nis.strip_units)
        except NisIOError as e:
            self.app_context.record_failure()
            self.app_context.set_error(
                f"Failed to fetch APC UPS stats from {nis.host}:{nis.port}: {e}", category=ErrorCategory.NIS
            )
            return False

        self.app_context.publish(state_module.StatusSnapshot.from_status(values))
        self.app_context.set_error(None, category=ErrorCategory.NIS)
        logger.debug(f"Fetched {len(values)} values")
        return True

    def run(self) -> None:
        """Main thread execution."""
        interval = self.app_context.config.exporter.interval
        logger.info(f"Poll Task: fetching APC UPS stats every {interval} seconds")

        while not self._stopper.wait(interval):
            try:
                self.poll_once()
            except Exception:
                logger.error("Unexpected exception in Poll Task", exc_info=True)

        logger.info("Poll Task: stopped")
