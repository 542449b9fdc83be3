"""Site, sign-in and induction models used by export generation and retention"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, generate_id, utcnow


class Site(Base):
    __tablename__ = "site"

    id = Column(Text, primary_key=True, default=generate_id)
    company_id = Column(Text, ForeignKey("company.id", ondelete="RESTRICT"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class SignInRecord(Base):
    """One visitor sign-in at a site.

    sign_out_ts stays NULL while the visitor is on site; such rows are never
    purged by retention.
    """
    __tablename__ = "sign_in_record"
    __table_args__ = (
        Index("ix_sign_in_record_company_id_sign_out_ts", "company_id", "sign_out_ts"),
    )

    id = Column(Text, primary_key=True, default=generate_id)
    company_id = Column(Text, ForeignKey("company.id", ondelete="RESTRICT"), nullable=False)
    site_id = Column(Text, ForeignKey("site.id", ondelete="CASCADE"), nullable=False)
    visitor_name = Column(Text, nullable=False)
    visitor_phone = Column(Text, nullable=False)
    visitor_email = Column(Text, nullable=True)
    employer_name = Column(Text, nullable=True)
    visitor_type = Column(Text, nullable=False, default="CONTRACTOR")
    sign_in_ts = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    sign_out_ts = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)

    site = relationship("Site")
    induction_responses = relationship(
        "InductionResponse",
        back_populates="sign_in_record",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class InductionResponse(Base):
    __tablename__ = "induction_response"

    id = Column(Text, primary_key=True, default=generate_id)
    sign_in_record_id = Column(
        Text, ForeignKey("sign_in_record.id", ondelete="CASCADE"), nullable=False, index=True
    )
    template_id = Column(Text, nullable=False)
    template_version = Column(Integer, nullable=False)
    answers = Column(PortableJSONB, nullable=False, default=dict)
    passed = Column(Boolean, nullable=False, default=True)
    completed_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    sign_in_record = relationship("SignInRecord", back_populates="induction_responses")
