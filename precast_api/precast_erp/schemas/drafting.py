from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field

from .common import ORMRead


class DrawingCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    project_id: Optional[UUID] = None
    drawing_number: str = ""
    revision_number: str = "0"
    status: str = Field("draft", description="draft|in-review|approved|released")
    file_url: str = ""
    file_type: str = ""
    uploaded_by: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    drawing_metadata: dict = Field(
        default_factory=dict, validation_alias=AliasChoices("drawing_metadata", "metadata")
    )


class DrawingUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    project_id: Optional[UUID] = None
    drawing_number: Optional[str] = None
    status: Optional[str] = None
    file_url: Optional[str] = None
    file_type: Optional[str] = None
    tags: Optional[list[str]] = None
    drawing_metadata: Optional[dict] = Field(
        None, validation_alias=AliasChoices("drawing_metadata", "metadata")
    )


class DrawingRead(ORMRead):
    title: str
    description: str
    project_id: Optional[UUID] = None
    drawing_number: str
    revision_number: str
    status: str
    file_url: str
    file_type: str
    uploaded_by: Optional[str] = None
    tags: list[str]
    drawing_metadata: dict = Field(default_factory=dict, serialization_alias="metadata")


class RevisionCreate(BaseModel):
    revision_number: Optional[str] = Field(None, description="Defaults to the next number")
    description: str = ""
    created_by: Optional[str] = None
    changes: list[Any] = Field(default_factory=list)
    comments: list[Any] = Field(default_factory=list)


class RevisionRead(ORMRead):
    drawing_id: UUID
    revision_number: str
    description: str
    created_by: Optional[str] = None
    status: str
    comments: list[Any]
    changes: list[Any]
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None


class MarkupCreate(BaseModel):
    revision_id: Optional[UUID] = None
    type: str = Field("comment", description="comment|redline|measurement|callout")
    position: dict = Field(default_factory=dict)
    content: str = ""
    created_by: Optional[str] = None


class MarkupRead(ORMRead):
    drawing_id: UUID
    revision_id: Optional[UUID] = None
    type: str
    position: dict
    content: str
    created_by: Optional[str] = None
    status: str
    replies: list[Any]


class WorkflowStepIn(BaseModel):
    id: Optional[str] = None
    name: str
    assignee: Optional[str] = None


class WorkflowCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    project_id: Optional[UUID] = None
    drawing_id: Optional[UUID] = None
    created_by: Optional[str] = None
    steps: list[WorkflowStepIn] = Field(default_factory=list)
    participants: list[str] = Field(default_factory=list)


class WorkflowUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    participants: Optional[list[str]] = None


class WorkflowRead(ORMRead):
    name: str
    description: str
    project_id: Optional[UUID] = None
    drawing_id: Optional[UUID] = None
    template_id: Optional[UUID] = None
    created_by: Optional[str] = None
    status: str
    steps: list[dict]
    current_step: int
    participants: list[str]
    completed_at: Optional[datetime] = None


class AdvanceWorkflowRequest(BaseModel):
    user_id: str
    comments: str = ""


class AssignStepRequest(BaseModel):
    user_id: str


class TemplateCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    steps: list[WorkflowStepIn] = Field(default_factory=list)
    created_by: Optional[str] = None


class TemplateRead(ORMRead):
    name: str
    description: str
    steps: list[dict]
    created_by: Optional[str] = None


class WorkflowFromTemplate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    project_id: Optional[UUID] = None
    drawing_id: Optional[UUID] = None
    created_by: Optional[str] = None
    assignments: dict[str, str] = Field(default_factory=dict, description="step id -> user id")


class CADImportRequest(BaseModel):
    file_name: str = Field(..., validation_alias=AliasChoices("file_name", "fileName"))


class CADExportRequest(BaseModel):
    format: str
    elements: list[dict] = Field(default_factory=list)


class CADSyncRequest(BaseModel):
    system: str
    elements: list[dict] = Field(default_factory=list)


class CADBomRequest(BaseModel):
    elements: list[dict] = Field(default_factory=list)
