# storefront/data/models/document.py
from sqlalchemy import Column, DateTime, Index, JSON, String

from storefront.data.database import Base


class DocumentModel(Base):
    __tablename__ = "documents"

    # ids are only unique inside a collection
    collection = Column(String(64), primary_key=True)
    id = Column(String(128), primary_key=True)
    data = Column(JSON, nullable=False)

    date_created = Column(DateTime(timezone=True), nullable=False)
    date_modified = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("ix_documents_collection_created", "collection", "date_created"),)
