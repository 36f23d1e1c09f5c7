"""
Key-Value Store Module
A thread-safe in-memory key-value store with a counter of mutating operations.
Shared by the HTTP handlers and the background reporter.
"""

import threading
from typing import Dict, NamedTuple


class StoreStats(NamedTuple):
    """Counter and size taken under the same lock acquisition."""
    total_requests: int
    size: int


class KeyValueStore:
    """
    Thread-safe Key-Value Store implementation.

    Uses a dictionary of string keys to string values plus an operation
    counter, both guarded by a single lock. Every public method is one
    critical section, so readers never see a half-applied mutation.

    Rep Invariant:
        - self._store is always a dictionary
        - Every key in self._store is a non-empty string
        - self._operations >= 0 and never decreases

    Safety from Rep Exposure:
        - _store is private and never returned directly
        - get_all() returns a copy of the store
        - All access is through public methods with locking
    """

    def __init__(self):
        """Initialize an empty store with a zero operation counter."""
        self._store: Dict[str, str] = {}
        self._operations = 0
        self._lock = threading.Lock()

    def set(self, key: str, value: str) -> None:
        """
        Insert or overwrite a key-value pair.

        Args:
            key: The key to set (must be a non-empty string)
            value: The value to associate with the key

        Raises:
            ValueError: if key is empty

        Postconditions:
            - Store maps key to value
            - Operation counter is incremented by exactly 1
        """
        if not key:
            raise ValueError("Key cannot be empty")
        with self._lock:
            self._store[key] = value
            self._operations += 1

    def delete(self, key: str) -> bool:
        """
        Delete a key from the store.

        Args:
            key: The key to delete (must be a non-empty string)

        Returns:
            True if key was deleted, False if key didn't exist

        Raises:
            ValueError: if key is empty

        Postconditions:
            - Key no longer exists in store
            - Operation counter is incremented only when a key was removed
        """
        if not key:
            raise ValueError("Key cannot be empty")
        with self._lock:
            if key not in self._store:
                return False
            del self._store[key]
            self._operations += 1
            return True

    def get_all(self) -> Dict[str, str]:
        """
        Get a copy of all key-value pairs in the store.

        Returns:
            A dictionary copy of all key-value pairs

        Postconditions:
            - Returned dict is independent of the store in both directions
            - Operation counter is unchanged
        """
        with self._lock:
            return dict(self._store)

    def stats(self) -> StoreStats:
        """
        Get the operation counter and the number of entries.

        Both values are read inside one critical section, so they always
        describe the same state.
        """
        with self._lock:
            return StoreStats(total_requests=self._operations, size=len(self._store))

    def total_requests(self) -> int:
        """Number of successful sets and deletes so far."""
        with self._lock:
            return self._operations

    def size(self) -> int:
        """Number of key-value pairs in the store."""
        with self._lock:
            return len(self._store)
