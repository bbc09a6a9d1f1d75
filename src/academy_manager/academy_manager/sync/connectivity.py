from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

import requests

logger = logging.getLogger(__name__)

Listener = Callable[[bool], None]


class ConnectivityMonitor:
    """Online/offline flag with transition callbacks.

    Listeners fire only on a change of state, once per transition.
    """

    def __init__(self, online: bool = True):
        self._online = bool(online)
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    def is_online(self) -> bool:
        return self._online

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def report_unreachable(self) -> None:
        """A remote call failed for lack of a connection. A manually set flag is left alone."""

    def set_online(self, online: bool) -> None:
        online = bool(online)
        with self._lock:
            if online == self._online:
                return
            self._online = online
            listeners = list(self._listeners)

        logger.info("Connectivity changed: %s", "online" if online else "offline")
        for listener in listeners:
            try:
                listener(online)
            except Exception:
                logger.exception("Connectivity listener failed")


class HttpConnectivityMonitor(ConnectivityMonitor):
    """Derives the flag from a lightweight GET against ``probe_url``.

    While offline, ``is_online`` re-probes at most once per ``retry_interval``
    seconds so a returning connection is noticed on the next read or write.
    """

    def __init__(
        self, probe_url: str, *, timeout: float = 2.0, retry_interval: float = 30.0, online: bool = True
    ):
        super().__init__(online=online)
        self._probe_url = probe_url
        self._timeout = timeout
        self._retry_interval = retry_interval
        self._last_probe: Optional[float] = None

    def is_online(self) -> bool:
        if not self._online and self._probe_due():
            return self.probe()
        return self._online

    def _probe_due(self) -> bool:
        return self._last_probe is None or time.monotonic() - self._last_probe >= self._retry_interval

    def report_unreachable(self) -> None:
        self._last_probe = time.monotonic()
        self.set_online(False)

    def probe(self) -> bool:
        self._last_probe = time.monotonic()
        try:
            requests.get(self._probe_url, timeout=self._timeout)
            reachable = True
        except requests.RequestException:
            reachable = False
        self.set_online(reachable)
        return reachable
