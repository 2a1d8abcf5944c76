import copy
import types

import pytest

from shared_config import MongoConfig, PipelineConfig, SystemConfig, VerifierConfig


def _matches(doc, query):
    for key, condition in query.items():
        present = key in doc
        value = doc.get(key)
        if isinstance(condition, dict) and any(k.startswith("$") for k in condition):
            if "$exists" in condition and present != condition["$exists"]:
                return False
            if "$ne" in condition and value == condition["$ne"]:
                return False
        elif not present or value != condition:
            return False
    return True


class FakeCursor:
    def __init__(self, docs, projection=None, fail_after=None, error=None):
        self._docs = docs
        self._projection = projection or {}
        self._limit = 0
        self.batch_size_value = None
        self.closed = False
        self._fail_after = fail_after
        self._error = error

    def limit(self, n):
        self._limit = n
        return self

    def batch_size(self, n):
        self.batch_size_value = n
        return self

    def close(self):
        self.closed = True

    def _project(self, doc):
        included = [k for k, v in self._projection.items() if v and k != "_id"]
        if not included:
            return copy.deepcopy(doc)
        out = {k: doc[k] for k in included if k in doc}
        if self._projection.get("_id", 1) and "_id" in doc:
            out["_id"] = doc["_id"]
        return out

    def __iter__(self):
        docs = self._docs[: self._limit] if self._limit else self._docs
        for index, doc in enumerate(docs):
            if self._fail_after is not None and index >= self._fail_after:
                raise self._error
            yield self._project(doc)


class FakeCollection:
    """Minimal in-memory stand-in for a pymongo collection."""

    name = "customers"

    def __init__(self, docs=None):
        self.docs = [dict(d) for d in (docs or [])]
        self.bulk_calls = []
        self.update_calls = []
        self.inserted = []
        self.indexes = []
        self.cursors = []
        self.find_error = None
        self.find_fail_after = None
        self.write_error = None

    def find(self, query=None, projection=None):
        matched = [d for d in self.docs if _matches(d, query or {})]
        cursor = FakeCursor(matched, projection, fail_after=self.find_fail_after, error=self.find_error)
        self.cursors.append(cursor)
        return cursor

    def find_one(self, query):
        for doc in self.docs:
            if _matches(doc, query):
                return doc
        return None

    def _apply(self, query, update):
        doc = self.find_one(query)
        if doc is None:
            return 0, 0
        changes = update.get("$set", {})
        modified = any(doc.get(k) != v for k, v in changes.items())
        doc.update(changes)
        return 1, int(modified)

    def update_one(self, query, update):
        if self.write_error is not None:
            raise self.write_error
        self.update_calls.append((query, update))
        matched, modified = self._apply(query, update)
        return types.SimpleNamespace(matched_count=matched, modified_count=modified)

    def bulk_write(self, ops, ordered=True):
        if self.write_error is not None:
            raise self.write_error
        self.bulk_calls.append((list(ops), ordered))
        matched = modified = 0
        for op in ops:
            m, mod = self._apply(op._filter, op._doc)
            matched += m
            modified += mod
        return types.SimpleNamespace(matched_count=matched, modified_count=modified)

    def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))
        return "_".join(f"{k}_{d}" for k, d in keys)

    def insert_one(self, doc):
        if self.write_error is not None:
            raise self.write_error
        self.inserted.append(doc)
        return types.SimpleNamespace(inserted_id=len(self.inserted))


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, text=""):
        self.status_code = status_code
        self._json = json_data
        self.text = text
        self.content = (text or ("{}" if json_data is not None else "")).encode()

    def json(self):
        if self._json is None:
            raise ValueError("No JSON")
        return self._json


class FakeSession:
    """Replays queued responses/exceptions and records every POST."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        item = self.responses.pop(0) if self.responses else FakeResponse(200, {"ok": True})
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def customers():
    return FakeCollection()


@pytest.fixture
def dead_letters():
    return FakeCollection()


@pytest.fixture
def system_config():
    return SystemConfig(
        verifier=VerifierConfig(
            endpoint="http://verifier.local",
            timeout_seconds=5,
            max_attempts=3,
            backoff_multiplier=0,
            backoff_max_seconds=0,
        ),
        mongo=MongoConfig(),
        pipeline=PipelineConfig(bulk_limit=1000, page_size=100),
    )


@pytest.fixture(autouse=True)
def _clear_feature_env(monkeypatch):
    for key in (
        "FEATURE_VERIFICATION_ENABLED",
        "FEATURE_VERIFICATION_DEAD_LETTERS_ENABLED",
        "FEATURE_SECURITY_MASK_IDENTIFIERS_IN_LOGS",
    ):
        monkeypatch.delenv(key, raising=False)
