"""AuditLog SQLAlchemy model"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Text

from .base import Base, PortableJSONB, generate_id, utcnow


class AuditLog(Base):
    """Append-only security and system event log.

    Rows are only ever removed by the retention reaper once older than
    AUDIT_RETENTION_DAYS.
    """
    __tablename__ = "audit_log"
    __table_args__ = (
        Index("ix_audit_log_company_id_created_at", "company_id", "created_at"),
    )

    id = Column(Text, primary_key=True, default=generate_id)
    company_id = Column(Text, ForeignKey("company.id", ondelete="RESTRICT"), nullable=False)
    user_id = Column(Text, nullable=True)
    action = Column(Text, nullable=False)
    entity_type = Column(Text, nullable=True)
    entity_id = Column(Text, nullable=True)
    details = Column(PortableJSONB, nullable=True)
    request_id = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        """Convert audit log entry to dictionary representation"""
        return {
            "id": self.id,
            "company_id": self.company_id,
            "user_id": self.user_id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "details": self.details,
            "request_id": self.request_id,
            "created_at": self.created_at.isoformat(),
        }
