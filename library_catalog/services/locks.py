import threading
from contextlib import contextmanager
from typing import Dict, List


class BookLockRegistry:
    """In-process locks keyed by book id.

    Serializes the read-check-write sequences (borrow, return, delete,
    archive) that touch the same book within one process. The row lock taken
    by BookRepository.get_for_update covers other worker processes.

    An entry lives only while some thread holds or waits for it.
    """

    def __init__(self):
        self._lock = threading.Lock()
        # book_id -> [lock, number of holders and waiters]
        self._book_locks: Dict[int, List] = {}

    def _acquire_entry(self, book_id: int) -> threading.Lock:
        with self._lock:
            entry = self._book_locks.get(book_id)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._book_locks[book_id] = entry
            entry[1] += 1
            return entry[0]

    def _release_entry(self, book_id: int) -> None:
        with self._lock:
            entry = self._book_locks[book_id]
            entry[1] -= 1
            if entry[1] == 0:
                del self._book_locks[book_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._book_locks)

    @contextmanager
    def hold(self, book_id: int):
        lock = self._acquire_entry(book_id)
        try:
            with lock:
                yield
        finally:
            self._release_entry(book_id)


book_locks = BookLockRegistry()
