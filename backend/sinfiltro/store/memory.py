from __future__ import annotations

import copy
import logging
from collections import deque
from threading import RLock
from typing import Any, Callable, Mapping

from .base import (
    Callback,
    StateStore,
    SubscriptionHub,
    TransactionAborted,
    Unsubscribe,
    get_in,
    set_in,
    split_path,
)

log = logging.getLogger(__name__)


class MemoryStore(StateStore):
    """Process-local store.

    Commits happen under one lock. Change notifications are queued at commit
    time and delivered outside the lock, in commit order, so a callback may
    write back into the store.
    """

    def __init__(self, max_retries: int = 25) -> None:
        self.max_retries = max_retries
        self._lock = RLock()
        self._root: dict[str, Any] = {}
        self._hub = SubscriptionHub()
        self._pending: deque[tuple[Callback, Any]] = deque()
        self._dispatching = False

    def read(self, path: str) -> Any:
        with self._lock:
            return copy.deepcopy(get_in(self._root, split_path(path)))

    def write(self, path: str, value: Any) -> None:
        segs = split_path(path)
        with self._lock:
            self._apply([(segs, copy.deepcopy(value))])
        self._drain()

    def patch(self, path: str, fields: Mapping[str, Any]) -> None:
        base = split_path(path)
        changes = [(base + split_path(key), copy.deepcopy(value)) for key, value in fields.items()]
        if not changes:
            return
        with self._lock:
            self._apply(changes)
        self._drain()

    def atomic_update(self, path: str, fn: Callable[[Any], Any]) -> Any:
        segs = split_path(path)
        for _ in range(self.max_retries):
            with self._lock:
                current = copy.deepcopy(get_in(self._root, segs))

            new = fn(copy.deepcopy(current))

            with self._lock:
                if get_in(self._root, segs) != current:
                    continue
                if new != current:
                    self._apply([(segs, copy.deepcopy(new))])
            self._drain()
            return copy.deepcopy(new)

        raise TransactionAborted(f"atomic update of {path} did not settle")

    def subscribe(self, path: str, callback: Callback) -> Unsubscribe:
        sub_id = self._hub.add(path, callback)

        def unsubscribe() -> None:
            self._hub.discard(sub_id)

        return unsubscribe

    def _apply(self, changes: list[tuple[list[str], Any]]) -> None:
        # Caller holds the lock.
        for segs, value in changes:
            root = set_in(self._root, segs, value)
            self._root = root if isinstance(root, dict) else {}

        for sub_segs, callback in self._hub.matching([segs for segs, _ in changes]):
            self._pending.append((callback, copy.deepcopy(get_in(self._root, sub_segs))))

    def _drain(self) -> None:
        with self._lock:
            if self._dispatching:
                return
            self._dispatching = True

        try:
            while True:
                with self._lock:
                    if not self._pending:
                        self._dispatching = False
                        return
                    callback, value = self._pending.popleft()
                try:
                    callback(value)
                except Exception:
                    log.exception("store subscriber failed")
        except BaseException:
            with self._lock:
                self._dispatching = False
            raise
