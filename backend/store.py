"""
Document store over SQLAlchemy.

Collections of JSON documents keyed by opaque ids, with the operations the
managers rely on:
- get / add / set / partial-merge update / delete of single documents
- queries by equality and array-membership predicates
- batches of writes that are applied all-or-nothing

Single-document writes commit immediately. A batch commits once, after every
write in it has been applied; any failure rolls the whole batch back.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import NotFoundError, RemoteOperationError, TrackerError, ValidationError
from models import Document

logger = logging.getLogger(__name__)

EQ = "=="
ARRAY_CONTAINS = "array_contains"
SUPPORTED_OPERATORS = (EQ, ARRAY_CONTAINS)

Filter = Tuple[str, str, Any]


def new_document_id() -> str:
    return uuid.uuid4().hex


def where(field: str, op: str, value: Any) -> Filter:
    """Build a query predicate, rejecting operators the store cannot evaluate."""
    if op not in SUPPORTED_OPERATORS:
        raise ValidationError(f"Unsupported query operator: {op}")
    return (field, op, value)


def _matches(data: Dict[str, Any], filters: Tuple[Filter, ...]) -> bool:
    for field, op, value in filters:
        if op == EQ:
            if data.get(field) != value:
                return False
        elif op == ARRAY_CONTAINS:
            if value not in (data.get(field) or []):
                return False
    return True


def _snapshot(row: Document) -> Dict[str, Any]:
    return {**(row.data or {}), "id": row.id}


class WriteBatch:
    """Grouped writes submitted with a single commit."""

    def __init__(self, store: "DocumentStore"):
        self._store = store
        self._ops: List[Tuple[str, str, str, Optional[Dict[str, Any]]]] = []

    def __len__(self) -> int:
        return len(self._ops)

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> "WriteBatch":
        self._ops.append(("set", collection, doc_id, dict(data)))
        return self

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> "WriteBatch":
        self._ops.append(("update", collection, doc_id, dict(fields)))
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self._ops.append(("delete", collection, doc_id, None))
        return self

    def commit(self) -> None:
        ops, self._ops = self._ops, []
        logger.debug(f"Committing batch of {len(ops)} writes")
        self._store._write(ops, f"commit batch of {len(ops)} writes")
        logger.info(f"Batch of {len(ops)} writes committed")


class DocumentStore:
    def __init__(self, db: Session):
        self.db = db

    # ============== Reads ==============

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Fetch one document, or None if it does not exist."""
        logger.debug(f"Reading {collection}/{doc_id}")
        try:
            row = self.db.get(Document, (collection, doc_id))
        except SQLAlchemyError as e:
            logger.error(f"Failed to read {collection}/{doc_id}: {e}")
            raise RemoteOperationError(f"Failed to read {collection}/{doc_id}") from e
        return _snapshot(row) if row is not None else None

    def query(self, collection: str, *filters: Filter) -> List[Dict[str, Any]]:
        """
        Return every document in the collection matching all predicates.

        String equality is evaluated by the database; the remaining predicates
        are checked on the rows it returns. Results are ordered by the
        document's own created_at timestamp.
        """
        logger.debug(f"Querying {collection} with {filters}")
        rows_query = self.db.query(Document).filter(Document.collection == collection)
        for field, op, value in filters:
            if op == EQ and isinstance(value, str):
                rows_query = rows_query.filter(Document.data[field].as_string() == value)
        try:
            rows = rows_query.order_by(
                Document.data["created_at"].as_string(),
                Document.created_at,
                Document.id,
            ).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to query {collection}: {e}")
            raise RemoteOperationError(f"Failed to query {collection}") from e

        results = [_snapshot(row) for row in rows if _matches(row.data or {}, filters)]
        logger.debug(f"Query on {collection} matched {len(results)} documents")
        return results

    # ============== Single-document writes ==============

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        """Create a document under a fresh id and return the id."""
        doc_id = new_document_id()
        self._write([("set", collection, doc_id, dict(data))], f"add to {collection}")
        logger.info(f"Created {collection}/{doc_id}")
        return doc_id

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self._write([("set", collection, doc_id, dict(data))], f"write {collection}/{doc_id}")

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        """Merge fields into an existing document. Fails if the document is missing."""
        self._write([("update", collection, doc_id, dict(fields))], f"update {collection}/{doc_id}")

    def delete(self, collection: str, doc_id: str) -> None:
        self._write([("delete", collection, doc_id, None)], f"delete {collection}/{doc_id}")

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    # ============== Internals ==============

    def _apply(self, kind: str, collection: str, doc_id: str, payload: Optional[Dict[str, Any]]) -> None:
        row = self.db.get(Document, (collection, doc_id))

        if kind == "set":
            data = {k: v for k, v in payload.items() if k != "id"}
            if row is None:
                self.db.add(Document(collection=collection, id=doc_id, data=data))
            else:
                row.data = data
        elif kind == "update":
            if row is None:
                raise NotFoundError(f"Document {collection}/{doc_id} not found")
            fields = {k: v for k, v in payload.items() if k != "id"}
            # Assign a new dict so SQLAlchemy sees the JSON column change
            row.data = {**(row.data or {}), **fields}
        elif kind == "delete":
            if row is not None:
                self.db.delete(row)
        else:
            raise ValueError(f"Unknown write kind: {kind}")

        self.db.flush()

    def _write(self, ops, description: str) -> None:
        try:
            for op in ops:
                self._apply(*op)
            self.db.commit()
        except TrackerError:
            self.db.rollback()
            logger.info(f"Rolled back: could not {description}")
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {description}: {e}")
            raise RemoteOperationError(f"Failed to {description}") from e
