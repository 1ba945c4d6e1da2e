"""
Sweep loop adapter.

Background thread that runs the campaign sweeper on a fixed interval.
Used by the `sweep-loop` CLI command and by local development; hosted
deployments can instead call the process-scheduled endpoint from an
external trigger.
"""

from __future__ import annotations

import logging
import threading

from newsdesk.components.sweeper import CampaignSweeper, SweepSummary

logger = logging.getLogger(__name__)


class SweepLoop:
    """
    Campaign sweeper with background polling.

    Runs a daemon thread that sweeps at a configurable interval.
    """

    def __init__(
        self,
        sweeper: CampaignSweeper,
        poll_interval_seconds: float = 60.0,
    ) -> None:
        """
        Initialize loop.

        Args:
            sweeper: Sweeper to run
            poll_interval_seconds: Interval between sweeps
        """
        self._sweeper = sweeper
        self._poll_interval = poll_interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._running = False

    def start(self) -> None:
        """Start the background loop."""
        if self._running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._poll_loop, daemon=True)
        self._thread.start()
        self._running = True
        logger.info("Sweep loop started (poll interval: %.1fs)", self._poll_interval)

    def stop(self) -> None:
        """Stop the loop gracefully."""
        if not self._running:
            return

        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5.0)
        self._running = False
        logger.info("Sweep loop stopped")

    def wait(self) -> None:
        """Block until stop() is called."""
        self._stop_event.wait()

    def trigger_now(self) -> SweepSummary:
        """Run one sweep synchronously."""
        return self._sweeper.run_summary()

    @property
    def is_running(self) -> bool:
        """Check if loop is active."""
        return self._running

    def _poll_loop(self) -> None:
        """Background polling loop."""
        while not self._stop_event.wait(timeout=self._poll_interval):
            try:
                summary = self._sweeper.run_summary()
                if summary.total_processed > 0:
                    logger.info(
                        "Sweep processed %d campaigns: %d sent, %d failed",
                        summary.total_processed,
                        summary.sent,
                        summary.failed,
                    )
            except Exception:
                logger.exception("Error in sweep loop")
