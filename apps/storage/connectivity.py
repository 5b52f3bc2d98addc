import logging
import threading

logger = logging.getLogger(__name__)


class Connectivity:
    """
    Online/offline flag for the remote record store.

    While offline the sync adapter serves reads from the local cache and
    queues writes. Listeners run when the flag flips back to online.
    """

    def __init__(self, online: bool = True):
        self._online = online
        self._listeners = []
        self._lock = threading.Lock()

    def is_online(self) -> bool:
        return self._online

    def add_listener(self, callback):
        """Register a zero-argument callable to run on restoration"""
        self._listeners.append(callback)

    def mark_offline(self):
        with self._lock:
            if self._online:
                logger.info("Record store connectivity marked offline")
            self._online = False

    def mark_online(self):
        with self._lock:
            restored = not self._online
            self._online = True

        if restored:
            logger.info("Record store connectivity restored")
            for callback in list(self._listeners):
                callback()
