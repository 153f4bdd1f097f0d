from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from precast_erp.db.base import Base, JSONType, TimestampMixin, UTCDateTime, UUIDPkMixin

DRAWING_STATUSES = ("draft", "in-review", "approved", "released")
REVISION_STATUSES = ("draft", "in-review", "approved", "rejected")
MARKUP_TYPES = ("comment", "redline", "measurement", "callout")
MARKUP_STATUSES = ("active", "resolved", "archived")
WORKFLOW_STATUSES = ("active", "completed", "cancelled")


class Drawing(UUIDPkMixin, TimestampMixin, Base):
    """Shop or erection drawing."""
    __tablename__ = "drawings"

    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    project_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    drawing_number: Mapped[str] = mapped_column(Text, nullable=False, default="")
    revision_number: Mapped[str] = mapped_column(Text, nullable=False, default="0")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="draft")
    file_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    file_type: Mapped[str] = mapped_column(Text, nullable=False, default="")
    uploaded_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    # "metadata" is reserved on declarative classes
    drawing_metadata: Mapped[dict] = mapped_column("metadata", JSONType, nullable=False, default=dict)


class DrawingRevision(UUIDPkMixin, TimestampMixin, Base):
    """Revision of a drawing."""
    __tablename__ = "drawing_revisions"

    drawing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("drawings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    revision_number: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="draft")
    comments: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    changes: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    approved_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)


class DrawingMarkup(UUIDPkMixin, TimestampMixin, Base):
    """Annotation placed on a drawing (optionally on one revision)."""
    __tablename__ = "drawing_markups"

    drawing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("drawings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    revision_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    type: Mapped[str] = mapped_column(Text, nullable=False, default="comment")
    position: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="active")
    replies: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)


class Workflow(UUIDPkMixin, TimestampMixin, Base):
    """Ordered review/approval steps for drawings of a project."""
    __tablename__ = "drafting_workflows"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    project_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    drawing_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    template_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    created_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="active")
    steps: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    current_step: Mapped[int] = mapped_column(nullable=False, default=0)
    participants: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    completed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)


class WorkflowTemplate(UUIDPkMixin, TimestampMixin, Base):
    """Reusable step list for workflows."""
    __tablename__ = "drafting_workflow_templates"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    steps: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    created_by: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
