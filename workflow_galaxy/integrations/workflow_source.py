from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from workflow_galaxy.config import Settings, settings as default_settings
from workflow_galaxy.core.exceptions import PerFileParseError, RemoteListingError
from workflow_galaxy.schemas.workflow import RemoteFile, WorkflowDefinition, WorkflowMetadata
from workflow_galaxy.services.n8n_parser import build_metadata

logger = logging.getLogger(__name__)


class WorkflowSourceClient:
    """GitHub contents API client for n8n workflow exports."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = config or default_settings
        headers = {"Accept": "application/vnd.github.v3+json"}
        if self.settings.source_token:
            headers["Authorization"] = f"Bearer {self.settings.source_token.get_secret_value()}"
        self.client = client or httpx.AsyncClient(
            base_url=self.settings.source_api_base,
            timeout=self.settings.remote_timeout_seconds,
            follow_redirects=True,
        )
        self.client.headers.update(headers)

    async def list_files(self) -> List[RemoteFile]:
        try:
            response = await self.client.get(self.settings.listing_path)
        except httpx.HTTPError as exc:
            logger.error("Workflow listing request failed: %s", exc)
            raise RemoteListingError(f"Workflow listing request failed: {exc}") from exc

        if not response.is_success:
            logger.error("Workflow listing error: %s %s", response.status_code, response.reason_phrase)
            raise RemoteListingError(
                f"Workflow listing error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            entries: List[Dict[str, Any]] = response.json()
        except json.JSONDecodeError as exc:
            logger.error("Workflow listing is not valid JSON: %s", exc)
            raise RemoteListingError(f"Workflow listing is not valid JSON: {exc}") from exc
        if not isinstance(entries, list):
            logger.error("Workflow listing is not a directory")
            raise RemoteListingError("Workflow listing is not a directory")

        extension = self.settings.workflow_file_extension
        files: List[RemoteFile] = []
        for entry in entries:
            if entry.get("type") != "file" or not str(entry.get("name", "")).lower().endswith(extension):
                continue
            try:
                files.append(RemoteFile.model_validate(entry))
            except ValidationError as exc:
                logger.warning("Skipping malformed listing entry %s: %s", entry.get("name"), exc)
        return files

    async def fetch_definition(self, file: RemoteFile) -> WorkflowDefinition:
        if not file.content_url:
            raise PerFileParseError(file.name, "no download url")
        try:
            response = await self.client.get(file.content_url)
        except httpx.HTTPError as exc:
            raise PerFileParseError(file.name, f"request failed: {exc}") from exc

        if not response.is_success:
            raise PerFileParseError(file.name, f"HTTP {response.status_code} {response.reason_phrase}")

        try:
            return WorkflowDefinition.model_validate_json(response.content)
        except ValidationError as exc:
            raise PerFileParseError(file.name, f"invalid workflow: {exc.error_count()} errors") from exc

    async def _fetch_one(self, file: RemoteFile) -> Optional[WorkflowMetadata]:
        try:
            workflow = await self.fetch_definition(file)
            return build_metadata(
                workflow,
                file,
                fetched_at=datetime.now(timezone.utc),
                extension=self.settings.workflow_file_extension,
            )
        except PerFileParseError as exc:
            logger.warning("Failed to parse workflow %s", exc)
            return None

    async def fetch_all(self) -> List[WorkflowMetadata]:
        files = await self.list_files()
        results = await asyncio.gather(*(self._fetch_one(file) for file in files))
        workflows = [w for w in results if w is not None]
        logger.info("Fetched %s of %s workflow files", len(workflows), len(files))
        return workflows

    async def close(self):
        await self.client.aclose()
