import threading
from typing import Callable, Set


class ThreadingScheduler:
    """Планировщик отложенных вызовов на threading.Timer"""

    def __init__(self):
        self._lock = threading.Lock()
        self._timers: Set[threading.Timer] = set()
        self._closed = False

    def call_later(self, delay: float, fn: Callable, *args) -> threading.Timer:
        timer = None

        def run():
            with self._lock:
                self._timers.discard(timer)
            fn(*args)

        timer = threading.Timer(max(delay, 0), run)
        timer.daemon = True
        with self._lock:
            if self._closed:
                return timer
            self._timers.add(timer)
        timer.start()
        return timer

    def cancel(self, handle):
        if handle is None:
            return
        handle.cancel()
        with self._lock:
            self._timers.discard(handle)

    def shutdown(self):
        """Отмена всех ожидающих вызовов; новые вызовы игнорируются"""
        with self._lock:
            self._closed = True
            timers, self._timers = self._timers, set()
        for timer in timers:
            timer.cancel()
