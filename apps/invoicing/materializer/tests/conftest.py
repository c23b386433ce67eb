from __future__ import annotations

import importlib
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import pytest
from google.api_core import exceptions as gexc


@dataclass
class _Snap:
    id: str
    _data: Optional[Dict[str, Any]]

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._data or {})


class _DocRef:
    def __init__(self, col: "_Collection", doc_id: str):
        self._col = col
        self.id = doc_id

    def get(self, transaction=None):
        _ = transaction
        return _Snap(self.id, self._col._docs.get(self.id))

    def set(self, data: Dict[str, Any], merge: bool = False):
        self._col._db.writes.append(("set", self._col.name, self.id))
        if not merge or self.id not in self._col._docs:
            self._col._docs[self.id] = dict(data)
            return
        merged = dict(self._col._docs[self.id])
        merged.update(dict(data))
        self._col._docs[self.id] = merged

    def update(self, data: Dict[str, Any]):
        if self.id not in self._col._docs:
            raise AssertionError(f"update on missing doc {self._col.name}/{self.id}")
        self._col._db.writes.append(("update", self._col.name, self.id))
        merged = dict(self._col._docs[self.id])
        merged.update(dict(data))
        self._col._docs[self.id] = merged


class _Collection:
    def __init__(self, db: "_FakeDB", name: str, docs: Dict[str, Dict[str, Any]]):
        self._db = db
        self.name = name
        self._docs = docs
        self._limit: Optional[int] = None

    def document(self, doc_id: Optional[str] = None) -> _DocRef:
        if doc_id is None:
            doc_id = uuid.uuid4().hex[:20]
        return _DocRef(self, doc_id)

    def limit(self, n: int) -> "_Collection":
        self._db.scan_limits.append(int(n))
        self._limit = int(n)
        return self

    def stream(self) -> List[_Snap]:
        out = [_Snap(doc_id, dict(data)) for doc_id, data in list(self._docs.items())]
        if self._limit is not None:
            out = out[: self._limit]
        return out


class _Transaction:
    def __init__(self, db: "_FakeDB"):
        self._db = db
        self._ops: List[Tuple[str, _DocRef, Dict[str, Any]]] = []

    def set(self, ref: _DocRef, data: Dict[str, Any], merge: bool = False):
        self._ops.append(("set", ref, dict(data)))

    def update(self, ref: _DocRef, data: Dict[str, Any]):
        self._ops.append(("update", ref, dict(data)))

    def commit(self):
        for op, ref, data in self._ops:
            if op == "set":
                ref.set(data)
            else:
                ref.update(data)


class _FakeDB:
    """In-memory Firestore stand-in whose transactions run one at a time."""

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.lock = threading.Lock()
        self.writes: List[Tuple[str, str, str]] = []
        self.transactions = 0
        self.scan_limits: List[int] = []
        # Number of upcoming transactions that exhaust their commit retries.
        self.fail_commits = 0

    def collection(self, name: str) -> _Collection:
        docs = self._collections.setdefault(name, {})
        return _Collection(self, name, docs)

    def transaction(self) -> _Transaction:
        self.transactions += 1
        return _Transaction(self)

    def docs(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self._collections.setdefault(name, {})


def _serialized_transactional(fn):
    def wrapper(txn: _Transaction, *args, **kwargs):
        # Holding the lock across read and commit gives serializable isolation.
        with txn._db.lock:
            if txn._db.fail_commits > 0:
                txn._db.fail_commits -= 1
                # Same shape as google-cloud-firestore after max_attempts of contention.
                raise ValueError("Failed to commit transaction in 5 attempts.") from gexc.Aborted("Too much contention")
            result = fn(txn, *args, **kwargs)
            txn.commit()
            return result

    return wrapper


@pytest.fixture()
def fake_db(monkeypatch):
    m = importlib.import_module("apps.invoicing.materializer.materializer")
    monkeypatch.setattr(m.firestore, "transactional", _serialized_transactional)
    return _FakeDB()


@pytest.fixture()
def materializer(fake_db):
    from apps.invoicing.materializer import InvoiceMaterializer

    return InvoiceMaterializer(fake_db)

