from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WorkflowCategory(str, Enum):
    AI = "ai"
    SEO = "seo"
    HR = "hr"
    LEAD_GEN = "lead-gen"
    MONITORING = "monitoring"
    DATA = "data"
    OTHER = "other"


class NodeDefinition(BaseModel):
    """A single n8n node as stored in a workflow export."""

    id: str | None = None
    name: str | None = None
    type: str
    parameters: dict[str, Any] | None = None


class WorkflowDefinition(BaseModel):
    """Raw n8n workflow export. Connections and settings are not needed here."""

    name: str | None = None
    nodes: list[NodeDefinition]


class RemoteFile(BaseModel):
    """Entry of a GitHub-contents style directory listing."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    path: str = ""
    content_hash: str = Field(alias="sha")
    size: int = 0
    url: str | None = None
    source_url: str | None = Field(default=None, alias="html_url")
    content_url: str | None = Field(default=None, alias="download_url")
    type: str = "file"


class Position(BaseModel):
    x: float
    y: float
    z: float


class WorkflowMetadata(BaseModel):
    """Normalized workflow record served to the dashboard."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    description: str
    node_count: int = Field(ge=0)
    node_types: list[str] = Field(default_factory=list)
    category: WorkflowCategory
    source_url: str | None = None
    content_url: str | None = None
    size: int = 0
    last_updated: datetime
    position: Position | None = None

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AnalyticsEventCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    workflow_id: str = Field(min_length=1)
    event_type: Literal["view", "click", "download"]
    metadata: dict[str, Any] = Field(default_factory=dict)
