from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# JSONB on Postgres; plain JSON keeps SQLite-backed tests working.
JsonType = JSON().with_variant(JSONB(), "postgresql")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Guideline(Base):
    __tablename__ = "guidelines"
    __table_args__ = (
        Index("ix_guidelines_category_id", "category", "id"),
    )

    # Regulatory corpus entries are read-only from the service's point of view.
    id: Mapped[str] = mapped_column(String, primary_key=True)
    category: Mapped[str] = mapped_column(String)
    subcategory: Mapped[str] = mapped_column(String, default="")
    source_document: Mapped[str] = mapped_column(String)
    section_reference: Mapped[str] = mapped_column(String, default="")
    rule_text: Mapped[str] = mapped_column(Text)
    plain_english_summary: Mapped[str] = mapped_column(Text, default="")
    recommended_action: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )


class ComplianceCheck(Base):
    __tablename__ = "compliance_checks"
    __table_args__ = (
        Index("ix_compliance_checks_user_created", "user_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    # Set client-side with microseconds so newest-first ordering is stable.
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )
    user_id: Mapped[str] = mapped_column(String, index=True)
    content_text: Mapped[str] = mapped_column(Text)
    content_type: Mapped[str] = mapped_column(String)
    platform: Mapped[str] = mapped_column(String)
    overall_status: Mapped[str] = mapped_column(String)
    compliance_score: Mapped[int] = mapped_column(Integer)
    # Full normalized verdict, stored verbatim for retrieval and export.
    result_json: Mapped[dict[str, Any]] = mapped_column(JsonType)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
