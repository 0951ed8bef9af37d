"""
Network connectivity monitor.

The job pipeline calls await_connectivity() before every fetch attempt.
While the network is down, every waiting worker polls the probe endpoint
with a fixed delay; the "connection lost" / "connection restored" messages
are emitted once per transition for the whole process, not once per worker
or once per poll.

Usage:
    monitor = ConnectivityMonitor()
    monitor.await_connectivity()  # returns once a probe succeeds
"""

import threading
import time
from typing import Callable

import requests

from yt_playlist_dl.core.config import DEFAULT_PROBE_URL
from yt_playlist_dl.core.logger import get_logger

logger = get_logger(__name__)


class ConnectivityMonitor:
    """
    Probes network reachability and blocks callers during outages.

    Attributes:
        probe_url: Endpoint requested by probe(). Any HTTP response counts
                   as online.
        probe_timeout: Seconds before a probe counts as failed.
        reconnect_delay: Seconds slept between failed probes.

    Thread Safety:
        probe() and await_connectivity() may be called from any number of
        worker threads. The offline flag is guarded by a lock so a single
        outage produces exactly one pair of notifications.
    """

    def __init__(
        self,
        probe_url: str = DEFAULT_PROBE_URL,
        probe_timeout: float = 3.0,
        reconnect_delay: float = 5.0,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep
    ) -> None:
        """
        Initialize the monitor.

        Args:
            probe_url: Endpoint to probe.
            probe_timeout: Per-probe timeout in seconds.
            reconnect_delay: Delay between failed probes in seconds.
            session: HTTP session. A new requests.Session is created when None.
            sleep: Delay function, replaceable in tests.
        """
        self.probe_url = probe_url
        self.probe_timeout = probe_timeout
        self.reconnect_delay = reconnect_delay
        self._session = session or requests.Session()
        self._sleep = sleep
        self._lock = threading.Lock()
        self._offline = False

    @property
    def is_offline(self) -> bool:
        """True between a reported outage and the matching recovery."""
        with self._lock:
            return self._offline

    def probe(self) -> bool:
        """
        Check reachability once.

        Returns:
            True when the endpoint answered within the timeout, False on
            any connection error or timeout. Never raises.
        """
        try:
            response = self._session.get(
                self.probe_url,
                timeout=self.probe_timeout,
                allow_redirects=False
            )
            response.close()
            return True
        except requests.RequestException as e:
            logger.debug(f"Connectivity probe failed: {e}")
            return False

    def await_connectivity(self) -> None:
        """
        Block until the network is reachable.

        Returns immediately when the first probe succeeds. Otherwise marks
        the process offline (warning logged once), sleeps reconnect_delay
        between probes, and on recovery marks it online again (info logged
        once).
        """
        while not self.probe():
            self._mark_offline()
            self._sleep(self.reconnect_delay)
        self._mark_online()

    def _mark_offline(self) -> None:
        with self._lock:
            if self._offline:
                return
            self._offline = True
        logger.warning(
            f"Network connection lost. Waiting for reconnection "
            f"(checking every {self.reconnect_delay:g}s)..."
        )

    def _mark_online(self) -> None:
        with self._lock:
            if not self._offline:
                return
            self._offline = False
        logger.info("Network connection restored. Resuming downloads...")

    def close(self) -> None:
        self._session.close()
