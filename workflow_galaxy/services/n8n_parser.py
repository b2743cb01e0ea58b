from __future__ import annotations

import re
from datetime import datetime

from workflow_galaxy.schemas.workflow import (
    RemoteFile,
    WorkflowCategory,
    WorkflowDefinition,
    WorkflowMetadata,
)

STICKY_NOTE_TYPE = "n8n-nodes-base.stickyNote"
STICKY_NOTE_MARKER = "stickyNote"
NODE_TYPE_PREFIXES = ("n8n-nodes-base.", "@n8n/n8n-nodes-langchain.")

# First matching keyword set wins; keep the order.
CATEGORY_KEYWORDS: tuple[tuple[WorkflowCategory, tuple[str, ...]], ...] = (
    (WorkflowCategory.AI, ("ai", "gemini", "claude", "agent")),
    (WorkflowCategory.SEO, ("seo", "keyword")),
    (WorkflowCategory.HR, ("hr", "job", "resume", "helpdesk")),
    (WorkflowCategory.LEAD_GEN, ("lead", "roofing", "scraper")),
    (WorkflowCategory.MONITORING, ("monitor", "sre", "alert")),
    (WorkflowCategory.DATA, ("sql", "data", "tax", "research")),
)

MIN_LINE_LENGTH = 10
MIN_DESCRIPTION_LENGTH = 20
MAX_DESCRIPTION_LENGTH = 200
DESCRIPTION_LINES = 2
SUMMARY_TYPE_LIMIT = 5

_MARKDOWN_MARKERS = re.compile(r"[#*]")


def categorize_workflow(name: str) -> WorkflowCategory:
    """Map a workflow name to a category by substring keyword matching."""
    lowered = (name or "").lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return WorkflowCategory.OTHER


def _short_type(node_type: str) -> str:
    for prefix in NODE_TYPE_PREFIXES:
        node_type = node_type.replace(prefix, "")
    return node_type


def _unique(values) -> list[str]:
    return list(dict.fromkeys(values))


def _sticky_note_text(workflow: WorkflowDefinition) -> str | None:
    for node in workflow.nodes:
        if node.type != STICKY_NOTE_TYPE:
            continue
        content = (node.parameters or {}).get("content")
        if content:
            return str(content)
    return None


def extract_description(workflow: WorkflowDefinition) -> str:
    """
    Describe a workflow from its first sticky note, or summarize its node types
    when no usable note exists.
    """
    content = _sticky_note_text(workflow)
    if content:
        lines = [
            line
            for line in _MARKDOWN_MARKERS.sub("", content).split("\n")
            if len(line.strip()) > MIN_LINE_LENGTH
        ]
        cleaned = " ".join(lines[:DESCRIPTION_LINES]).strip()
        if len(cleaned) > MIN_DESCRIPTION_LENGTH:
            if len(cleaned) > MAX_DESCRIPTION_LENGTH:
                return cleaned[:MAX_DESCRIPTION_LENGTH] + "..."
            return cleaned

    unique_types = [
        short
        for short in _unique(_short_type(node.type) for node in workflow.nodes)
        if short != STICKY_NOTE_MARKER
    ]
    summary = ", ".join(unique_types[:SUMMARY_TYPE_LIMIT])
    return f"Workflow with {len(workflow.nodes)} nodes: {summary}"


def get_node_types(workflow: WorkflowDefinition) -> list[str]:
    """Distinct node types in first-occurrence order, sticky notes excluded."""
    return _unique(node.type for node in workflow.nodes if STICKY_NOTE_MARKER not in node.type)


def strip_extension(file_name: str, extension: str = ".json") -> str:
    if extension and file_name.lower().endswith(extension.lower()):
        return file_name[: -len(extension)]
    return file_name


def build_metadata(
    workflow: WorkflowDefinition,
    file: RemoteFile,
    fetched_at: datetime,
    extension: str = ".json",
) -> WorkflowMetadata:
    return WorkflowMetadata(
        id=file.content_hash,
        name=workflow.name or strip_extension(file.name, extension),
        description=extract_description(workflow),
        node_count=len(workflow.nodes),
        node_types=get_node_types(workflow),
        category=categorize_workflow(workflow.name or file.name),
        source_url=file.source_url,
        content_url=file.content_url,
        size=file.size,
        last_updated=fetched_at,
    )
