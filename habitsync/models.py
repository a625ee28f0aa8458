from sqlalchemy import Column, Integer, String, DateTime, JSON
from datetime import datetime
from habitsync.database import Base


class Document(Base):
    __tablename__ = "documents"

    id = Column(String, primary_key=True, index=True)  # uuid4 hex, assigned on insert
    collection = Column(String, nullable=False, index=True)  # "habits", "backups"
    data = Column(JSON, nullable=False, default=dict)  # Wire fields, shallow-merged on update

    # Mirrors data["createdAt"] (epoch millis) for inspection and indexing
    created_at = Column(Integer, nullable=True, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_record(self) -> dict:
        """Wire representation: the stored fields plus the document id"""
        record = dict(self.data or {})
        record["id"] = self.id
        return record
