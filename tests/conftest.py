"""
Shared fixtures: an in-memory stand-in for FirebaseService and a TestClient
wired to it through dependency overrides.
"""

import copy
import uuid

import pytest
from fastapi.testclient import TestClient

from app.dependencies import get_firebase_service
from app.main import app
from app.services.firebase_service import (
    DocumentExistsError,
    validate_document_id,
    validate_field_path,
)


def _matches(data, field, op, target):
    # Firestore never matches a document that lacks the filtered field
    if field not in data:
        return False
    value = data[field]
    if op == "==":
        return value == target
    if op == "!=":
        return value != target
    if op == "in":
        return value in target
    if op == "array_contains":
        return isinstance(value, list) and target in value
    if op == "array_contains_any":
        return isinstance(value, list) and any(t in value for t in target)
    if type(value) is not type(target):
        return False
    if op == ">=":
        return value >= target
    if op == ">":
        return value > target
    if op == "<=":
        return value <= target
    if op == "<":
        return value < target
    raise ValueError(f"Unsupported operator {op}")


class FakeFirebaseService:
    """Dict-backed implementation of the FirebaseService surface used by the routes."""

    def __init__(self):
        self.collections = {}
        self.queries = []
        self.closed = False

    def _coll(self, name):
        return self.collections.setdefault(name, {})

    def seed(self, collection_name, data, doc_id=None):
        doc_id = doc_id or uuid.uuid4().hex[:20]
        self._coll(collection_name)[doc_id] = copy.deepcopy(data)
        return doc_id

    def docs(self, collection_name):
        return self._coll(collection_name)

    async def ping(self):
        return True

    def close(self):
        self.closed = True

    async def get_document(self, collection_name, doc_id):
        data = self._coll(collection_name).get(validate_document_id(doc_id))
        return copy.deepcopy(data) if data is not None else None

    async def find_document(self, collection_name, field, value):
        docs, _ = await self.query_collection(
            collection_name, filters=[(field, "==", value)], limit=1)
        return docs[0] if docs else None

    async def add_document(self, collection_name, data):
        return self.seed(collection_name, data)

    async def create_document(self, collection_name, doc_id, data):
        coll = self._coll(collection_name)
        if validate_document_id(doc_id) in coll:
            raise DocumentExistsError(collection_name, doc_id)
        coll[doc_id] = copy.deepcopy(data)
        return doc_id

    async def update_document(self, collection_name, doc_id, data):
        for field in data:
            validate_field_path(field)
        doc = self._coll(collection_name).get(validate_document_id(doc_id))
        if doc is None:
            return False
        doc.update(copy.deepcopy(data))
        return True

    async def increment_field(self, collection_name, doc_id, field, amount=1):
        doc = self._coll(collection_name).get(validate_document_id(doc_id))
        if doc is None:
            return False
        doc[field] = doc.get(field, 0) + amount
        return True

    async def delete_document(self, collection_name, doc_id):
        coll = self._coll(collection_name)
        if validate_document_id(doc_id) not in coll:
            return False
        del coll[doc_id]
        return True

    def _filter(self, collection_name, filters):
        items = sorted(self._coll(collection_name).items())
        for field, op, target in filters or []:
            items = [(i, d) for i, d in items if _matches(d, field, op, target)]
        return items

    async def query_collection(
        self,
        collection_name,
        filters=None,
        order_by=None,
        direction="ASCENDING",
        limit=None,
        offset=None,
        get_total_count=False,
    ):
        self.queries.append(
            {
                "collection": collection_name,
                "filters": list(filters or []),
                "order_by": order_by,
                "direction": direction,
                "limit": limit,
                "offset": offset,
            }
        )
        items = self._filter(collection_name, filters)
        total = len(items)
        if order_by:
            items = [(i, d) for i, d in items if order_by in d]
            items.sort(key=lambda item: item[1][order_by],
                       reverse=direction == "DESCENDING")
        if offset:
            items = items[offset:]
        if limit is not None:
            items = items[:limit]
        docs = [(i, copy.deepcopy(d)) for i, d in items]
        return docs, total if get_total_count else 0

    async def count_documents(self, collection_name, filters=None):
        return len(self._filter(collection_name, filters))


@pytest.fixture
def fake_firebase():
    fake = FakeFirebaseService()
    app.dependency_overrides[get_firebase_service] = lambda: fake
    yield fake
    app.dependency_overrides.clear()


@pytest.fixture
def client(fake_firebase):
    return TestClient(app)
