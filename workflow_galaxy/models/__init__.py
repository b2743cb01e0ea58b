"""
SQLAlchemy models for the workflow cache.
"""
from __future__ import annotations

from sqlalchemy import JSON, BigInteger, Column, DateTime, Integer, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

JSONType = JSON().with_variant(JSONB(), "postgresql")


class WorkflowCache(Base):
    __tablename__ = "workflows"

    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False, index=True)
    description = Column(Text, default="")
    node_count = Column(Integer, default=0)
    node_types = Column(JSONType, default=list)
    category = Column(Text, nullable=False)
    source_url = Column(Text)
    content_url = Column(Text)
    size = Column(BigInteger, default=0)
    sha = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, index=True)


class AnalyticsEvent(Base):
    __tablename__ = "analytics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    workflow_id = Column(Text, nullable=False, index=True)
    event_type = Column(Text, nullable=False)
    meta = Column("metadata", JSONType, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
