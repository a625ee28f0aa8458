"""
Document repository - Data access layer for the Document model.
Handles all database queries against the shared documents table.
"""
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session

from habitsync.constants import CREATED_AT_FIELD
from habitsync.models import Document


class DocumentRepository:
    """Repository for Document data access"""

    @staticmethod
    def get_by_id(db: Session, collection: str, doc_id: str) -> Optional[Document]:
        """Get a document of a collection by ID"""
        return db.query(Document).filter(
            Document.collection == collection,
            Document.id == doc_id
        ).first()

    @staticmethod
    def get_records(db: Session, collection: str) -> List[Dict[str, Any]]:
        """Get every document of a collection as wire records"""
        documents = db.query(Document).filter(
            Document.collection == collection
        ).order_by(Document.created_at).all()
        return [d.to_record() for d in documents]

    @staticmethod
    def create(db: Session, collection: str, doc_id: str, data: Dict[str, Any]) -> Document:
        """Create new document"""
        document = Document(
            id=doc_id,
            collection=collection,
            data=dict(data),
            created_at=data.get(CREATED_AT_FIELD)
        )
        db.add(document)
        db.commit()
        db.refresh(document)
        return document

    @staticmethod
    def merge(db: Session, document: Document, fields: Dict[str, Any]) -> Document:
        """
        Shallow-merge fields into an existing document.

        The JSON column is reassigned so SQLAlchemy sees the change.
        """
        data = dict(document.data or {})
        data.update(fields)
        data.pop("id", None)
        document.data = data
        if CREATED_AT_FIELD in fields:
            document.created_at = fields[CREATED_AT_FIELD]
        db.commit()
        db.refresh(document)
        return document

    @staticmethod
    def delete(db: Session, document: Document) -> None:
        """Delete document"""
        db.delete(document)
        db.commit()
