"""
Master Selection

Tracks which stream is the synchronization reference.
"""

import logging
import threading
from typing import Iterator, Optional

from .errors import InvalidMasterIndex

logger = logging.getLogger(__name__)


class MasterSelector:
    """
    Holds the current master index for a fixed number of streams.

    Invalid assignments are rejected and the previous master is kept.
    A switch only affects ticks that start after it; nothing is corrected
    retroactively.
    """

    def __init__(self, count: int, initial: int = 0):
        if count < 1:
            raise ValueError("at least one stream is required")
        self._count = count
        self._lock = threading.Lock()
        self._index = 0
        if not self.select(initial):
            logger.warning("Falling back to stream 0 as master")

    @property
    def count(self) -> int:
        return self._count

    @property
    def index(self) -> int:
        with self._lock:
            return self._index

    def is_valid(self, index) -> bool:
        # bool is an int subclass but never a meaningful index
        if isinstance(index, bool) or not isinstance(index, int):
            return False
        return 0 <= index < self._count

    def select(self, index) -> bool:
        """Make ``index`` the master. Returns False if it was rejected."""
        if not self.is_valid(index):
            logger.warning("Rejected master assignment: %s", InvalidMasterIndex(index, self._count))
            return False
        with self._lock:
            self._index = index
        return True

    def followers(self, master: Optional[int] = None) -> Iterator[int]:
        """
        Yield every index except the master.

        Pass ``master`` to iterate against an index read earlier, so a
        concurrent switch cannot change the set mid-iteration.
        """
        if master is None:
            master = self.index
        for i in range(self._count):
            if i != master:
                yield i
