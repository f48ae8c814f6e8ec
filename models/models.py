"""
Database models for the application.
"""
import enum
from sqlalchemy import (
    Column, Integer, String, DateTime, Text, ForeignKey, Enum as SAEnum,
    UniqueConstraint, Index, CheckConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from db_config import Base


# --- ENUM Types ---
class ContentFormatEnum(enum.Enum):
    plain = "plain"
    fountain = "fountain"
    markdown = "markdown"


# --- Model Definitions ---

class ContentItem(Base):
    """A versioned piece of narrative text, e.g. a scene."""
    __tablename__ = "content_item"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    # Always equal to the content of the highest-numbered version
    content = Column(Text, nullable=False, default="", server_default="")
    format = Column(
        SAEnum(ContentFormatEnum, name="content_format_enum"),
        nullable=False,
        default=ContentFormatEnum.plain,
        server_default=ContentFormatEnum.plain.value,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    versions = relationship(
        "ContentVersion",
        back_populates="content_item",
        order_by="ContentVersion.version_number",
        lazy="noload",
    )


class ContentVersion(Base):
    """Immutable snapshot of a content item's text."""
    __tablename__ = "content_version"
    __table_args__ = (
        UniqueConstraint("content_item_id", "version_number", name="uq_content_version_item_number"),
        CheckConstraint("version_number > 0", name="ck_content_version_number_positive"),
        Index("idx_content_version_item", "content_item_id", "version_number"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    content_item_id = Column(Integer, ForeignKey("content_item.id"), nullable=False)
    version_number = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    note = Column(Text, nullable=True)
    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    content_item = relationship("ContentItem", back_populates="versions", lazy="noload")
