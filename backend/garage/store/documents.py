"""
Durable storage boundary for the in-memory application state.

Every state mutation is mirrored through a DocumentStore:
  upsert(collection, record_id, payload)
  delete(collection, record_id)
  list(collection) -> [payload, …]

NullDocumentStore keeps nothing (memory-only sessions).
SqlDocumentStore writes JSON payloads into the ``documents`` table via
SQLModel; writes are last-write-wins keyed by (collection, record_id).
"""
from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from garage.core.database import create_db_and_tables
from garage.models.document import StoredDocument


class DocumentStore:
    """Interface the state store calls after each mutation."""

    def upsert(self, collection: str, record_id: str, payload: dict[str, Any]) -> None:
        raise NotImplementedError

    def delete(self, collection: str, record_id: str) -> None:
        raise NotImplementedError

    def list(self, collection: str) -> list[dict[str, Any]]:
        raise NotImplementedError


class NullDocumentStore(DocumentStore):
    """Discards writes; state lives only as long as the process."""

    def upsert(self, collection: str, record_id: str, payload: dict[str, Any]) -> None:
        pass

    def delete(self, collection: str, record_id: str) -> None:
        pass

    def list(self, collection: str) -> list[dict[str, Any]]:
        return []


class SqlDocumentStore(DocumentStore):
    def __init__(self, engine: Engine):
        self.engine = engine
        create_db_and_tables(engine)

    def _find(self, session: Session, collection: str, record_id: str):
        stmt = select(StoredDocument).where(
            StoredDocument.collection == collection,
            StoredDocument.record_id == record_id,
        )
        return session.exec(stmt).first()

    def upsert(self, collection: str, record_id: str, payload: dict[str, Any]) -> None:
        text = json.dumps(payload, ensure_ascii=False)
        try:
            with Session(self.engine) as session:
                existing = self._find(session, collection, record_id)
                if existing:
                    existing.payload = text
                    existing.updated_at = datetime.utcnow()
                    session.add(existing)
                else:
                    session.add(
                        StoredDocument(collection=collection, record_id=record_id, payload=text)
                    )
                session.commit()
        except SQLAlchemyError as exc:
            logger.error(f"documents: failed to upsert {collection}/{record_id}: {exc}")
            raise

    def delete(self, collection: str, record_id: str) -> None:
        try:
            with Session(self.engine) as session:
                existing = self._find(session, collection, record_id)
                if existing:
                    session.delete(existing)
                    session.commit()
        except SQLAlchemyError as exc:
            logger.error(f"documents: failed to delete {collection}/{record_id}: {exc}")
            raise

    def list(self, collection: str) -> list[dict[str, Any]]:
        try:
            with Session(self.engine) as session:
                rows = session.exec(
                    select(StoredDocument)
                    .where(StoredDocument.collection == collection)
                    .order_by(StoredDocument.id)
                ).all()
        except SQLAlchemyError as exc:
            logger.error(f"documents: failed to list {collection}: {exc}")
            raise
        return [json.loads(r.payload) for r in rows]
