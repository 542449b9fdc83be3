"""Contractor and contractor document models"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from .base import Base, generate_id, utcnow


class Contractor(Base):
    __tablename__ = "contractor"

    id = Column(Text, primary_key=True, default=generate_id)
    company_id = Column(Text, ForeignKey("company.id", ondelete="RESTRICT"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    contact_name = Column(Text, nullable=True)
    contact_email = Column(Text, nullable=True)
    contact_phone = Column(Text, nullable=True)
    trade = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    documents = relationship("ContractorDocument", back_populates="contractor")


class ContractorDocument(Base):
    """Uploaded insurance/licence/etc. document.

    The file lives in the storage backend at file_path. Once expires_at has
    passed, the reaper deletes the stored object and then this row.
    """
    __tablename__ = "contractor_document"

    id = Column(Text, primary_key=True, default=generate_id)
    contractor_id = Column(Text, ForeignKey("contractor.id", ondelete="CASCADE"), nullable=False, index=True)
    document_type = Column(Text, nullable=False, default="OTHER")
    file_name = Column(Text, nullable=False)
    file_path = Column(Text, nullable=False)
    file_size = Column(Integer, nullable=False)
    mime_type = Column(Text, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True, index=True)
    uploaded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    contractor = relationship("Contractor", back_populates="documents")
