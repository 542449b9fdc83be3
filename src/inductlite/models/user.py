"""User SQLAlchemy model"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Text, CheckConstraint

from .base import Base, generate_id, utcnow


class User(Base):
    """Admin-side user. Export jobs reference the user who requested them."""
    __tablename__ = "user"

    id = Column(Text, primary_key=True, default=generate_id)
    company_id = Column(Text, ForeignKey("company.id", ondelete="RESTRICT"), nullable=False, index=True)
    email = Column(Text, nullable=False, unique=True)
    name = Column(Text, nullable=False)
    role = Column(Text, nullable=False, default="VIEWER")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint(
            "role IN ('ADMIN', 'SITE_MANAGER', 'VIEWER')",
            name='ck_user_role'
        ),
    )

    def __repr__(self):
        return f"<User(id={self.id}, role={self.role}, active={self.is_active})>"
