"""
Firebase service for Firestore document operations

All blocking SDK calls are pushed to a worker thread with asyncio.to_thread
so route handlers never stall the event loop.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from app.config import settings

logger = logging.getLogger(__name__)

# Firestore document ID constraints
MAX_DOCUMENT_ID_BYTES = 1500
_RESERVED_ID = re.compile(r"^__.*__$")
# Characters FieldPath.from_string refuses in an unquoted path
_FIELD_PATH_FORBIDDEN = frozenset("~*/[]`")

Filter = Tuple[str, str, Any]


class InvalidStoreInput(ValueError):
    """Client-supplied value the store cannot accept (mapped to 400)."""


class InvalidDocumentId(InvalidStoreInput):
    """Raised when a value cannot be used as a Firestore document ID."""

    def __init__(self, doc_id: Any):
        self.doc_id = doc_id
        super().__init__(f"Invalid document id: {doc_id!r}")


class InvalidFieldPath(InvalidStoreInput):
    """Raised when an update key is not a usable Firestore field path."""

    def __init__(self, field: Any):
        self.field = field
        super().__init__(f"Invalid field name: {field!r}")


class DocumentExistsError(Exception):
    """Raised by create_document when the target document already exists."""

    def __init__(self, collection_name: str, doc_id: str):
        self.collection_name = collection_name
        self.doc_id = doc_id
        super().__init__(f"Document {collection_name}/{doc_id} already exists")


def validate_document_id(doc_id: Any) -> str:
    """Return doc_id unchanged if Firestore accepts it, else raise InvalidDocumentId."""
    if not isinstance(doc_id, str) or not doc_id:
        raise InvalidDocumentId(doc_id)
    if "/" in doc_id or doc_id in (".", ".."):
        raise InvalidDocumentId(doc_id)
    if _RESERVED_ID.match(doc_id):
        raise InvalidDocumentId(doc_id)
    if len(doc_id.encode("utf-8")) > MAX_DOCUMENT_ID_BYTES:
        raise InvalidDocumentId(doc_id)
    return doc_id


def validate_field_path(field: Any) -> str:
    """Return field unchanged if update() can parse it as a dotted field path."""
    if not isinstance(field, str) or not field:
        raise InvalidFieldPath(field)
    if any(ch in field for ch in _FIELD_PATH_FORBIDDEN):
        raise InvalidFieldPath(field)
    if any(not part for part in field.split(".")):
        raise InvalidFieldPath(field)
    return field


def _normalize_filters(filters) -> List[Filter]:
    # Allow a {field: value} dict as shorthand for equality filters
    if not filters:
        return []
    if isinstance(filters, dict):
        return [(k, "==", v) for k, v in filters.items()]
    normalized = []
    for f in filters:
        if len(f) != 3:
            raise ValueError(
                f"Invalid filter format: {f}. Expected (field, op, value)")
        normalized.append(tuple(f))
    return normalized


class FirebaseService:
    """Process-wide handle on the Firestore database."""

    def __init__(self, db=None):
        """
        Args:
            db: An existing Firestore client. When omitted the Firebase Admin
                SDK is initialized from settings and a client is created.
        """
        if db is None:
            app = self._initialize_firebase()
            db = firestore.client(app=app, database_id=settings.FIRESTORE_DATABASE)
        self.db = db

    def _initialize_firebase(self):
        """Initialize Firebase Admin SDK with credentials"""
        try:
            # Check if already initialized
            return firebase_admin.get_app()
        except ValueError:
            pass

        options = {}
        if settings.FIREBASE_PROJECT_ID:
            options["projectId"] = settings.FIREBASE_PROJECT_ID

        if settings.DEV_MODE and settings.FIREBASE_EMULATOR_HOST:
            # Use emulator for development
            os.environ["FIRESTORE_EMULATOR_HOST"] = settings.FIREBASE_EMULATOR_HOST
            app = firebase_admin.initialize_app(options=options or None)
            logger.info(
                "Firebase initialized with emulator: %s", settings.FIREBASE_EMULATOR_HOST)
            return app

        if settings.FIREBASE_CREDENTIALS_JSON:
            try:
                cred = credentials.Certificate(
                    json.loads(settings.FIREBASE_CREDENTIALS_JSON))
            except json.JSONDecodeError:
                logger.error("FIREBASE_CREDENTIALS_JSON is not valid JSON")
                raise
            logger.info(
                "Firebase initialized with credentials from FIREBASE_CREDENTIALS_JSON")
        else:
            cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
            logger.info(
                "Firebase initialized with credentials from %s", settings.FIREBASE_CREDENTIALS_PATH)

        return firebase_admin.initialize_app(cred, options or None)

    async def ping(self) -> bool:
        """Cheap read used as a startup connectivity check."""
        def _probe():
            return list(self.db.collection(settings.USERS_COLLECTION).limit(1).stream())

        try:
            await asyncio.to_thread(_probe)
        except Exception as e:
            logger.warning("Firestore connectivity check failed: %s", e)
            return False
        logger.info("Pinged Firestore. Connected successfully.")
        return True

    def close(self) -> None:
        close = getattr(self.db, "close", None)
        if callable(close):
            close()

    # ============================================
    # Single-document operations
    # ============================================

    async def get_document(self, collection_name: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return the document's data, or None if it does not exist."""
        doc_ref = self.db.collection(collection_name).document(
            validate_document_id(doc_id))
        snapshot = await asyncio.to_thread(doc_ref.get)
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    async def find_document(
        self, collection_name: str, field: str, value: Any
    ) -> Optional[Tuple[str, Dict[str, Any]]]:
        """Return (doc_id, data) for the first document where field == value."""
        docs, _ = await self.query_collection(
            collection_name, filters=[(field, "==", value)], limit=1)
        return docs[0] if docs else None

    async def add_document(self, collection_name: str, data: Dict[str, Any]) -> str:
        """Insert data under an auto-generated ID and return that ID."""
        doc_ref = self.db.collection(collection_name).document()
        await asyncio.to_thread(doc_ref.set, data)
        return doc_ref.id

    async def create_document(self, collection_name: str, doc_id: str, data: Dict[str, Any]) -> str:
        """Insert data under doc_id; raise DocumentExistsError if it is taken."""
        doc_ref = self.db.collection(collection_name).document(
            validate_document_id(doc_id))
        try:
            await asyncio.to_thread(doc_ref.create, data)
        except google_exceptions.AlreadyExists:
            raise DocumentExistsError(collection_name, doc_id) from None
        return doc_id

    async def update_document(self, collection_name: str, doc_id: str, data: Dict[str, Any]) -> bool:
        """Merge data into an existing document. Returns False if it does not exist."""
        for field in data:
            validate_field_path(field)
        doc_ref = self.db.collection(collection_name).document(
            validate_document_id(doc_id))
        try:
            await asyncio.to_thread(doc_ref.update, data)
        except google_exceptions.NotFound:
            return False
        return True

    async def increment_field(
        self, collection_name: str, doc_id: str, field: str, amount: int = 1
    ) -> bool:
        """Atomically add amount to a numeric field. Returns False if the document is missing."""
        return await self.update_document(
            collection_name, doc_id, {field: firestore.Increment(amount)})

    async def delete_document(self, collection_name: str, doc_id: str) -> bool:
        """Delete a document. Returns False if there was nothing to delete."""
        doc_ref = self.db.collection(collection_name).document(
            validate_document_id(doc_id))
        snapshot = await asyncio.to_thread(doc_ref.get)
        if not snapshot.exists:
            return False
        await asyncio.to_thread(doc_ref.delete)
        return True

    # ============================================
    # Queries
    # ============================================

    def _build_query(self, collection_name: str, filters=None):
        query = self.db.collection(collection_name)
        for field, op, value in _normalize_filters(filters):
            query = query.where(filter=FieldFilter(field, op, value))
        return query

    async def query_collection(
        self,
        collection_name: str,
        filters: Optional[Sequence[Filter]] = None,
        order_by: Optional[str] = None,
        direction: str = firestore.Query.ASCENDING,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        get_total_count: bool = False,
    ) -> Tuple[List[Tuple[str, Dict[str, Any]]], int]:
        """
        Queries a Firestore collection with filters, ordering, and pagination.

        Args:
            collection_name: The name of the Firestore collection.
            filters: A list of (field, op, value) tuples,
                     e.g. [("status", "==", "approved"), ("tags", "array_contains_any", ["a"])]
            order_by: The field to order the results by.
            direction: 'ASCENDING' or 'DESCENDING'.
            limit: The maximum number of documents to return.
            offset: The number of documents to skip.
            get_total_count: If True, also count every document matching the filters
                             (ignoring limit/offset).

        Returns:
            A tuple of ([(document_id, document_data), ...], total_count).
            total_count is 0 when get_total_count is False.
        """
        base_query = self._build_query(collection_name, filters)
        query = base_query
        if order_by:
            query = query.order_by(order_by, direction=direction)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        def _get_stream_data(q):
            return [(doc.id, doc.to_dict()) for doc in q.stream()]

        docs = await asyncio.to_thread(_get_stream_data, query)

        total_count = 0
        if get_total_count:
            total_count = await self._count(base_query)
        return docs, total_count

    async def count_documents(self, collection_name: str, filters: Optional[Sequence[Filter]] = None) -> int:
        """Server-side count of documents matching filters."""
        return await self._count(self._build_query(collection_name, filters))

    async def _count(self, query) -> int:
        def _run_count():
            result = query.count(alias="total").get()
            return int(result[0][0].value)

        return await asyncio.to_thread(_run_count)
