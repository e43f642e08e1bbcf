# (c) Copyright Datacraft, 2026
"""Per-key mutual exclusion."""
import threading
from collections.abc import Hashable, Iterator
from contextlib import contextmanager


class KeyedLock:
	"""Serializes callers that share a key; different keys run in parallel.

	Entries are reference counted and dropped once nobody holds or waits
	for them, so the table does not grow with every user ever seen.
	"""

	def __init__(self):
		self._guard = threading.Lock()
		self._locks: dict[Hashable, list] = {}  # key -> [lock, refcount]

	@contextmanager
	def hold(self, key: Hashable) -> Iterator[None]:
		with self._guard:
			entry = self._locks.setdefault(key, [threading.Lock(), 0])
			entry[1] += 1

		entry[0].acquire()
		try:
			yield
		finally:
			entry[0].release()
			with self._guard:
				entry[1] -= 1
				if entry[1] == 0:
					del self._locks[key]

	def __len__(self) -> int:
		with self._guard:
			return len(self._locks)
