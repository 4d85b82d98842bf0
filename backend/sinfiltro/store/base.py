from __future__ import annotations

import abc
import logging
import threading
import time
from typing import Any, Callable, Mapping

log = logging.getLogger(__name__)

Callback = Callable[[Any], None]
Unsubscribe = Callable[[], None]


class StoreError(Exception):
    """The shared store could not complete an operation."""


class TransactionAborted(StoreError):
    """An atomic update kept losing the race and gave up."""


def split_path(path: str) -> list[str]:
    return [seg for seg in str(path or "").strip("/").split("/") if seg]


def overlaps(a: list[str], b: list[str]) -> bool:
    """True when one path is an ancestor of (or equal to) the other."""
    n = min(len(a), len(b))
    return a[:n] == b[:n]


def get_in(tree: Any, segments: list[str]) -> Any:
    node = tree
    for seg in segments:
        if isinstance(node, dict):
            node = node.get(seg)
        elif isinstance(node, list):
            if not seg.isdigit():
                return None
            idx = int(seg)
            node = node[idx] if idx < len(node) else None
        else:
            return None
        if node is None:
            return None
    return node


def set_in(tree: Any, segments: list[str], value: Any) -> Any:
    """Store ``value`` under ``segments`` and return the (possibly new) tree.

    ``None`` deletes. Containers are mutated in place; dicts left empty by a
    delete are pruned, the way the hosted realtime stores behave.
    """
    if not segments:
        return value

    if not isinstance(tree, (dict, list)):
        if value is None:
            return tree
        tree = {}

    head, rest = segments[0], segments[1:]

    if isinstance(tree, list):
        if not head.isdigit():
            raise StoreError(f"cannot index a list with {head!r}")
        idx = int(head)
        current = tree[idx] if idx < len(tree) else None
        child = set_in(current, rest, value) if rest else value
        if idx < len(tree):
            tree[idx] = child
        elif idx == len(tree):
            if child is not None:
                tree.append(child)
        else:
            raise StoreError(f"list index {idx} out of range")
        return tree

    child = set_in(tree.get(head), rest, value) if rest else value
    if child is None or child == {}:
        tree.pop(head, None)
    else:
        tree[head] = child
    return tree


class SubscriptionHub:
    """Path -> callbacks registry shared by the store backends."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._next_id = 0
        self._subs: dict[int, tuple[list[str], Callback]] = {}

    def add(self, path: str, callback: Callback) -> int:
        with self._lock:
            self._next_id += 1
            self._subs[self._next_id] = (split_path(path), callback)
            return self._next_id

    def discard(self, sub_id: int) -> None:
        with self._lock:
            self._subs.pop(sub_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._subs)

    def matching(self, changed: list[list[str]]) -> list[tuple[list[str], Callback]]:
        with self._lock:
            subs = list(self._subs.values())
        return [(segs, cb) for segs, cb in subs if any(overlaps(segs, c) for c in changed)]


class StateStore(abc.ABC):
    """Hierarchical key-path tree shared by every client of a room.

    Paths are slash separated (``rooms/BOLA/players/p1/score``). Values are
    JSON-compatible; writing ``None`` deletes.
    """

    @abc.abstractmethod
    def read(self, path: str) -> Any:
        ...

    @abc.abstractmethod
    def write(self, path: str, value: Any) -> None:
        ...

    @abc.abstractmethod
    def patch(self, path: str, fields: Mapping[str, Any]) -> None:
        """Update only the named fields; keys may be sub-paths."""

    @abc.abstractmethod
    def atomic_update(self, path: str, fn: Callable[[Any], Any]) -> Any:
        """Read-modify-write ``path``; ``fn`` may run more than once."""

    @abc.abstractmethod
    def subscribe(self, path: str, callback: Callback) -> Unsubscribe:
        ...

    def remove(self, path: str) -> None:
        self.write(path, None)

    def close(self) -> None:
        pass


def read_retrying(
    store: StateStore,
    path: str,
    attempts: int = 3,
    delay: float = 0.2,
    sleep: Callable[[float], None] = time.sleep,
) -> Any:
    for attempt in range(1, attempts + 1):
        try:
            return store.read(path)
        except StoreError:
            if attempt == attempts:
                raise
            log.warning("read of %s failed (attempt %d/%d), retrying", path, attempt, attempts)
            sleep(delay)
    return None
