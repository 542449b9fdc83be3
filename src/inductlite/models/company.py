"""Company model - root entity for multi-tenant isolation"""

from sqlalchemy import Column, Integer, Text, DateTime

from .base import Base, generate_id, utcnow

DEFAULT_RETENTION_DAYS = 365


class Company(Base):
    """Tenant. Every other table references company.id.

    retention_days governs how long signed-out sign-in records are kept.
    Zero or negative values fall back to DEFAULT_RETENTION_DAYS.
    """
    __tablename__ = "company"

    id = Column(Text, primary_key=True, default=generate_id)
    name = Column(Text, nullable=False)
    slug = Column(Text, nullable=False, unique=True)
    retention_days = Column(Integer, nullable=False, default=DEFAULT_RETENTION_DAYS)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def effective_retention_days(self) -> int:
        days = self.retention_days or 0
        return days if days > 0 else DEFAULT_RETENTION_DAYS

    def __repr__(self):
        return f"<Company(id={self.id}, slug='{self.slug}')>"
