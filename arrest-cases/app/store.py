"""Document store for case records, with live snapshot subscriptions.

Each case is one JSON document under a collection directory scoped by the
deployment's app id:

    <data_dir>/artifacts/<app_id>/public/data/arrests/<case_id>.json

Writes are single-document and atomic (temp file + ``os.replace``). Any
``SERVER_TIMESTAMP`` value in a write is replaced with the store clock's
time when the write lands. Subscribers receive the full current snapshot
on subscribe and again after every acknowledged write made through this
store instance.
"""

from __future__ import annotations

import inspect
import json
import logging
import os
import secrets
import string
import weakref
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

logger = logging.getLogger(__name__)

COLLECTION = "arrests"

_ID_ALPHABET = string.ascii_letters + string.digits
_ID_LENGTH = 20

Document = dict[str, Any]
SnapshotCallback = Callable[[list[Document]], None]
ErrorCallback = Callable[[Exception], None]


class CaseStoreError(RuntimeError):
    """A read, write, or subscription against the store failed."""


class CaseNotFoundError(CaseStoreError):
    """The addressed case document does not exist."""


class _ServerTimestamp:
    """Placeholder resolved to the store's clock at write time."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_document_id() -> str:
    """Generate a 20-character random document id."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))


# ── Serialization ────────────────────────────────────────────────────────────


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return {"__datetime__": value.isoformat()}
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    return value


def _decode(value: Any) -> Any:
    if isinstance(value, dict):
        if set(value) == {"__datetime__"}:
            return datetime.fromisoformat(value["__datetime__"])
        return {k: _decode(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decode(v) for v in value]
    return value


# ── Subscription handle ──────────────────────────────────────────────────────


class Subscription:
    """A standing listener on the collection. Release with ``unsubscribe()``.

    Bound-method callbacks are held weakly: once their owner is garbage
    collected the subscription releases itself. Plain functions are held
    strongly and stay registered until ``unsubscribe()``.
    """

    def __init__(
        self,
        store: CaseStore,
        on_snapshot: SnapshotCallback,
        status: str | None = None,
        on_error: ErrorCallback | None = None,
    ):
        self._store = store
        self._on_snapshot = self._ref(on_snapshot)
        self._on_error = self._ref(on_error) if on_error is not None else None
        self.status = status
        self.active = True

    def _ref(self, callback: Callable) -> Callable[[], Callable | None]:
        if inspect.ismethod(callback):
            return weakref.WeakMethod(callback, self._owner_collected)
        return lambda: callback

    def _owner_collected(self, _ref: weakref.ref) -> None:
        logger.debug("Listener owner collected; releasing subscription")
        self.unsubscribe()

    @property
    def on_snapshot(self) -> SnapshotCallback | None:
        return self._on_snapshot()

    @property
    def on_error(self) -> ErrorCallback | None:
        return self._on_error() if self._on_error is not None else None

    def unsubscribe(self) -> None:
        if self.active:
            self._store._remove_listener(self)
            self.active = False

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info) -> None:
        self.unsubscribe()


# ── Store ────────────────────────────────────────────────────────────────────


class CaseStore:
    """Create / read / update / subscribe over the case collection."""

    def __init__(
        self,
        data_dir: Path,
        app_id: str,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.app_id = app_id
        self.collection_dir = (
            Path(data_dir) / "artifacts" / app_id / "public" / "data" / COLLECTION
        )
        self._clock = clock
        self._listeners: list[Subscription] = []

    # -- paths / io --

    def _path(self, case_id: str) -> Path:
        return self.collection_dir / f"{case_id}.json"

    def _resolve(self, fields: Document) -> Document:
        now = self._clock()
        return {k: (now if v is SERVER_TIMESTAMP else v) for k, v in fields.items()}

    def _read(self, path: Path) -> Document:
        try:
            with open(path, encoding="utf-8") as f:
                return _decode(json.load(f))
        except (OSError, json.JSONDecodeError) as exc:
            raise CaseStoreError(f"Could not read {path.name}: {exc}") from exc

    def _write(self, case_id: str, doc: Document) -> None:
        path = self._path(case_id)
        tmp = path.with_suffix(".json.tmp")
        try:
            self.collection_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(_encode(doc), f, indent=2, ensure_ascii=False)
            os.replace(tmp, path)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            raise CaseStoreError(f"Could not write case {case_id}: {exc}") from exc

    # -- operations --

    def add(self, fields: Document) -> str:
        """Create a new document and return its assigned id."""
        case_id = new_document_id()
        while self._path(case_id).exists():
            case_id = new_document_id()
        self._write(case_id, self._resolve(fields))
        logger.info("Created case %s in %s", case_id, self.app_id)
        self._notify()
        return case_id

    def get(self, case_id: str) -> Document | None:
        """Return the document with its ``id`` key, or None if absent."""
        path = self._path(case_id)
        if not path.exists():
            return None
        doc = self._read(path)
        doc["id"] = case_id
        return doc

    def update(self, case_id: str, fields: Document) -> Document:
        """Merge *fields* into an existing document and return the result."""
        path = self._path(case_id)
        if not path.exists():
            raise CaseNotFoundError(f"Case not found: {case_id}")
        doc = self._read(path)
        doc.pop("id", None)
        doc.update(self._resolve(fields))
        self._write(case_id, doc)
        logger.info("Updated case %s (%s)", case_id, ", ".join(sorted(fields)))
        self._notify()
        doc["id"] = case_id
        return doc

    def list_documents(self, status: str | None = None) -> list[Document]:
        """Return every document, optionally only those with ``status == status``."""
        if not self.collection_dir.exists():
            return []
        docs = []
        for path in sorted(self.collection_dir.glob("*.json")):
            doc = self._read(path)
            doc["id"] = path.stem
            if status is None or doc.get("status") == status:
                docs.append(doc)
        return docs

    def is_empty(self) -> bool:
        return not self.collection_dir.exists() or not any(
            self.collection_dir.glob("*.json")
        )

    # -- live subscription --

    def subscribe(
        self,
        on_snapshot: SnapshotCallback,
        status: str | None = None,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        """Register a listener and deliver the current snapshot to it."""
        sub = Subscription(self, on_snapshot, status=status, on_error=on_error)
        self._listeners.append(sub)
        self._deliver(sub)
        return sub

    def _remove_listener(self, sub: Subscription) -> None:
        if sub in self._listeners:
            self._listeners.remove(sub)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _deliver(self, sub: Subscription) -> None:
        on_snapshot = sub.on_snapshot
        if on_snapshot is None:
            sub.unsubscribe()
            return
        try:
            snapshot = self.list_documents(status=sub.status)
        except CaseStoreError as exc:
            logger.error("Snapshot read failed: %s", exc)
            on_error = sub.on_error
            if on_error is not None:
                on_error(exc)
            return
        try:
            on_snapshot(snapshot)
        except Exception:
            logger.exception("Snapshot listener raised; continuing")

    def _notify(self) -> None:
        for sub in list(self._listeners):
            self._deliver(sub)
