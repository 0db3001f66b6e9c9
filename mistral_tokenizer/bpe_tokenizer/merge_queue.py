import heapq
import itertools
from typing import Any, Generic, List, Optional, Tuple, TypeVar


T = TypeVar("T")


class MergeQueue(Generic[T]):
    """
    Min-priority queue over merge candidates, backed by heapq.

    pop() always returns the item with the smallest priority pushed so far.
    Items with equal priority come out in insertion order, and the items
    themselves are never compared. Stale entries are not removed here; the
    caller checks them when they are popped (lazy deletion).
    """

    def __init__(self) -> None:
        self._heap: List[Tuple[Any, int, T]] = []
        self._counter = itertools.count()

    def push(self, priority: Any, item: T) -> int:
        heapq.heappush(self._heap, (priority, next(self._counter), item))
        return len(self._heap)

    def pop(self) -> Optional[T]:
        """
        Returns None when the queue is empty.
        """
        if not self._heap:
            return None
        _, _, item = heapq.heappop(self._heap)
        return item

    def peek(self) -> Optional[T]:
        if not self._heap:
            return None
        return self._heap[0][2]

    def is_empty(self) -> bool:
        return not self._heap

    def __len__(self) -> int:
        return len(self._heap)
