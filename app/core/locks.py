import threading
import uuid
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator


class KeyedLockRegistry:
    """
    One lock per aggregate key.
    Operations on different styles never contend; operations on the same
    style are serialized.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._locks: Dict[Hashable, threading.RLock] = {}

    def get(self, key: Hashable) -> threading.RLock:
        with self._lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self.get(key)
        with lock:
            yield


_style_locks = KeyedLockRegistry()


@contextmanager
def style_lock(style_id: uuid.UUID) -> Iterator[None]:
    # Re-entrant: advance() reconciles the style's links while holding it.
    with _style_locks.hold(style_id):
        yield
