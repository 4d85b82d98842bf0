from __future__ import annotations

import copy
import json
import logging
from typing import Any, Callable, Mapping

import redis

from .base import (
    Callback,
    StateStore,
    StoreError,
    SubscriptionHub,
    TransactionAborted,
    Unsubscribe,
    get_in,
    set_in,
    split_path,
)

log = logging.getLogger(__name__)


class RedisStore(StateStore):
    """Store backed by Redis.

    Every ``<collection>/<id>`` subtree (``rooms/BOLA``, ``libraries/X7K2QP``)
    is one JSON document. Writes to a document run in a WATCH/MULTI
    transaction and publish the changed paths on a single channel, which
    drives subscriptions.
    """

    def __init__(
        self,
        client: redis.Redis,
        prefix: str = "sinfiltro",
        doc_depth: int = 2,
        max_retries: int = 25,
    ) -> None:
        self._client = client
        self.prefix = prefix
        self.doc_depth = doc_depth
        self.max_retries = max_retries
        self.channel = f"{prefix}:changes"
        self._hub = SubscriptionHub()
        self._pubsub = None
        self._listener = None

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisStore":
        return cls(redis.Redis.from_url(url, decode_responses=True), **kwargs)

    def _key(self, doc_segs: list[str]) -> str:
        return ":".join([self.prefix, *doc_segs])

    def _load(self, raw: str | None) -> Any:
        return json.loads(raw) if raw else None

    def read(self, path: str) -> Any:
        segs = split_path(path)
        try:
            if len(segs) >= self.doc_depth:
                doc = self._load(self._client.get(self._key(segs[: self.doc_depth])))
                return get_in(doc, segs[self.doc_depth :])

            tree: Any = None
            pattern = self._key(segs + ["*"]) if segs else f"{self.prefix}:*"
            for key in self._client.scan_iter(match=pattern):
                doc_segs = key.split(":")[1:]
                if len(doc_segs) != self.doc_depth:
                    continue
                doc = self._load(self._client.get(key))
                if doc is not None:
                    tree = set_in(tree, doc_segs[len(segs) :], doc)
            return tree
        except redis.RedisError as e:
            raise StoreError(str(e)) from e

    def write(self, path: str, value: Any) -> None:
        segs = split_path(path)
        if len(segs) >= self.doc_depth:
            self._transact(segs[: self.doc_depth], lambda doc: set_in(doc, segs[self.doc_depth :], copy.deepcopy(value)), [segs])
            return

        # Collection-level write: replace every document below the path.
        existing = self.read(path) or {}
        for child in list(existing):
            self.write("/".join(segs + [child]), None)
        if isinstance(value, dict):
            for child, sub in value.items():
                self.write("/".join(segs + [child]), sub)

    def patch(self, path: str, fields: Mapping[str, Any]) -> None:
        base = split_path(path)
        grouped: dict[tuple[str, ...], list[tuple[list[str], Any]]] = {}
        for key, value in fields.items():
            segs = base + split_path(key)
            if len(segs) < self.doc_depth:
                raise StoreError(f"patch path {'/'.join(segs)} is above document level")
            grouped.setdefault(tuple(segs[: self.doc_depth]), []).append((segs, copy.deepcopy(value)))

        # Atomic per document only.
        for doc_segs, changes in grouped.items():

            def mutate(doc: Any, changes=changes) -> Any:
                for segs, value in changes:
                    doc = set_in(doc, segs[self.doc_depth :], value)
                return doc

            self._transact(list(doc_segs), mutate, [segs for segs, _ in changes])

    def atomic_update(self, path: str, fn: Callable[[Any], Any]) -> Any:
        segs = split_path(path)
        if len(segs) < self.doc_depth:
            raise StoreError(f"atomic update of {path} is above document level")
        inner = segs[self.doc_depth :]
        result: dict[str, Any] = {}

        def mutate(doc: Any) -> Any:
            new = fn(copy.deepcopy(get_in(doc, inner)))
            result["value"] = new
            return set_in(doc, inner, copy.deepcopy(new))

        self._transact(segs[: self.doc_depth], mutate, [segs])
        return result.get("value")

    def _transact(self, doc_segs: list[str], mutate: Callable[[Any], Any], changed: list[list[str]]) -> None:
        key = self._key(doc_segs)
        try:
            with self._client.pipeline() as pipe:
                for _ in range(self.max_retries):
                    try:
                        pipe.watch(key)
                        doc = mutate(self._load(pipe.get(key)))
                        pipe.multi()
                        if doc is None or doc == {}:
                            pipe.delete(key)
                        else:
                            pipe.set(key, json.dumps(doc))
                        pipe.publish(self.channel, json.dumps(["/".join(c) for c in changed]))
                        pipe.execute()
                        return
                    except redis.WatchError:
                        continue
        except redis.RedisError as e:
            raise StoreError(str(e)) from e
        raise TransactionAborted(f"transaction on {key} did not settle")

    def subscribe(self, path: str, callback: Callback) -> Unsubscribe:
        sub_id = self._hub.add(path, callback)
        self._ensure_listener()

        def unsubscribe() -> None:
            self._hub.discard(sub_id)

        return unsubscribe

    def _ensure_listener(self) -> None:
        if self._listener is not None:
            return
        self._pubsub = self._client.pubsub(ignore_subscribe_messages=True)
        self._pubsub.subscribe(**{self.channel: self._on_message})
        self._listener = self._pubsub.run_in_thread(sleep_time=0.01, daemon=True)

    def _on_message(self, message: dict) -> None:
        try:
            changed = [split_path(p) for p in json.loads(message["data"])]
        except (TypeError, ValueError):
            log.warning("ignoring malformed change message: %r", message)
            return

        for sub_segs, callback in self._hub.matching(changed):
            try:
                callback(self.read("/".join(sub_segs)))
            except Exception:
                log.exception("store subscriber failed")

    def close(self) -> None:
        if self._listener is not None:
            self._listener.stop()
            self._listener = None
        if self._pubsub is not None:
            self._pubsub.close()
            self._pubsub = None
