"""
Bilidash Project Service — project documents in, canonical records out.

Records are re-derived from the raw document on every call; nothing
normalized is written back to the store.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from prometheus_client import Counter

from bilidash.core.document_store import DocumentStore, ProjectDocument
from bilidash.services.records.normalizer import VideoRecord, extract_entries, normalize_records

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_NAME = "未命名项目"

RECORDS_NORMALIZED = Counter(
    "bilidash_records_normalized_total",
    "Canonical video records produced from project documents",
)


@dataclass(frozen=True)
class ProjectSummary:
    id: str
    name: str
    create_time: Optional[str]
    video_count: int


@dataclass(frozen=True)
class ProjectRecords:
    id: str
    name: str
    videos: List[VideoRecord] = field(default_factory=list)
    found: bool = True


def _project_name(document: ProjectDocument) -> str:
    name = document.get("name")
    if isinstance(name, str) and name.strip():
        return name
    return DEFAULT_PROJECT_NAME


def _create_time(document: ProjectDocument) -> Optional[str]:
    value = document.get("createTime")
    return str(value) if value is not None else None


def _summarize(document: ProjectDocument) -> ProjectSummary:
    return ProjectSummary(
        id=str(document.get("_id", "")),
        name=_project_name(document),
        create_time=_create_time(document),
        video_count=len(extract_entries(document.get("data"))),
    )


class ProjectService:
    """Reads projects through an injected document store."""

    def __init__(self, store: DocumentStore, cover_base_url: str):
        self.store = store
        self.cover_base_url = cover_base_url

    async def list_projects(self, limit: int = 1000) -> List[ProjectSummary]:
        documents = await self.store.list(limit=limit)
        return [_summarize(document) for document in documents]

    async def get_summary(self, project_id: str) -> Optional[ProjectSummary]:
        """Summary of one project from its raw entry count; no normalization."""
        document = await self.store.get(project_id)
        return _summarize(document) if document is not None else None

    async def load_records(self, project_id: str) -> ProjectRecords:
        """
        Name and normalized records of one project.

        A missing project yields an empty record list with the default name
        and ``found=False``; callers decide whether that is an error.
        """
        document = await self.store.get(project_id)
        if document is None:
            logger.info(f"Project {project_id} not found; returning empty record set")
            return ProjectRecords(id=project_id, name=DEFAULT_PROJECT_NAME, found=False)

        videos = normalize_records(document, cover_base_url=self.cover_base_url)
        RECORDS_NORMALIZED.inc(len(videos))
        return ProjectRecords(id=project_id, name=_project_name(document), videos=videos)

    async def rename(self, project_id: str, name: str) -> bool:
        return await self.store.update_name(project_id, name.strip())

    async def delete(self, project_id: str) -> bool:
        removed = await self.store.remove(project_id)
        if removed:
            logger.info(f"Deleted project {project_id}")
        return removed
