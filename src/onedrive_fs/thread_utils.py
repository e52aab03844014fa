# -*- coding: utf-8 -*-
"""
Console output and counters safe to share between threads.

One adapter may serve several uploads at once; diagnostics from each are
written whole lines at a time, and the request monitor counts through
ThreadSafeCounter.
"""

import threading

_console_lock = threading.Lock()


def _thread_label():
    """
    Short label for the current thread, used as a DEBUG line prefix.

    Returns:
        str: 'Main', 'Worker-N' for executor threads, else the first 10 chars of the name
    """
    name = threading.current_thread().name
    if name == "MainThread":
        return "Main"
    if "ThreadPoolExecutor" in name:
        return f"Worker-{name.rsplit('_', 1)[-1]}"
    return name[:10]


def thread_safe_print(*args, **kwargs):
    """
    print() under a global lock.

    With DEBUG=true each line is prefixed with the producing thread, e.g.
    '[Worker-2] [→] Uploading Backups/db.dump'.

    Args:
        *args: Same as print()
        **kwargs: Same as print()
    """
    from .utils import is_debug_enabled

    if args and is_debug_enabled():
        args = (f"[{_thread_label()}]",) + args

    with _console_lock:
        print(*args, **kwargs)


class ThreadSafeCounter:
    """Integer counter guarded by a lock."""

    def __init__(self, initial=0):
        self._value = initial
        self._lock = threading.Lock()

    def increment(self, amount=1):
        """
        Add to the counter.

        Args:
            amount (int): Amount to add, e.g. a byte count

        Returns:
            int: New value
        """
        with self._lock:
            self._value += amount
            return self._value

    def value(self):
        with self._lock:
            return self._value
