"""
MethodChannel — the host app's only way in: start / stop tracking.
"""

from .config import log
from .constants import CHANNEL_NAME, METHOD_START, METHOD_STOP


class MethodNotImplemented(Exception):
    def __init__(self, method):
        super().__init__(f"Method not implemented: {method}")
        self.method = method


class MethodChannel:
    name = CHANNEL_NAME

    def __init__(self, controller):
        self._handlers = {
            METHOD_START: controller.start,
            METHOD_STOP: controller.stop,
        }

    @property
    def methods(self):
        return sorted(self._handlers)

    def handle(self, method, arguments=None):
        """Dispatch one call. Returns None as the acknowledgement."""
        handler = self._handlers.get(method)
        if handler is None:
            log.warning("%s: unknown method %r", self.name, method)
            raise MethodNotImplemented(method)
        log.info("%s: %s", self.name, method)
        handler()
        return None
