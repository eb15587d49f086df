"""
Bilidash Document Store Layer.

Projects live as one document per project id in a single collection, in
the shape the crawler writes them:

    {"_id": "...", "name": "...", "createTime": "...", "data": [...] | {...}}

Two backends share one interface:
  - MemoryDocumentStore: in-process dict, empty on boot (offline/dev/tests)
  - JsonDirectoryDocumentStore: <data_dir>/<collection>/<project_id>.json

The store is built once in the application lifespan and handed to request
handlers through FastAPI dependencies.
"""
from __future__ import annotations

import asyncio
import copy
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from bilidash.core.config import Settings

logger = logging.getLogger(__name__)

ProjectDocument = Dict[str, Any]


class DocumentStoreError(Exception):
    """Raised when the backing store cannot be read or written."""


class DocumentStore(ABC):
    """Key/value access to raw project documents."""

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    @abstractmethod
    async def get(self, project_id: str) -> Optional[ProjectDocument]:
        ...

    @abstractmethod
    async def list(self, limit: int = 1000) -> List[ProjectDocument]:
        ...

    @abstractmethod
    async def update_name(self, project_id: str, name: str) -> bool:
        ...

    @abstractmethod
    async def remove(self, project_id: str) -> bool:
        ...


class MemoryDocumentStore(DocumentStore):
    """Dict-backed store; callers receive copies, never the stored object."""

    def __init__(self, documents: Optional[List[ProjectDocument]] = None):
        self._documents: Dict[str, ProjectDocument] = {}
        for document in documents or []:
            self.put(document)

    def put(self, document: ProjectDocument) -> None:
        project_id = document.get("_id")
        if not isinstance(project_id, str) or not project_id:
            raise DocumentStoreError("Document is missing a string _id")
        self._documents[project_id] = copy.deepcopy(document)

    async def get(self, project_id: str) -> Optional[ProjectDocument]:
        document = self._documents.get(project_id)
        return copy.deepcopy(document) if document is not None else None

    async def list(self, limit: int = 1000) -> List[ProjectDocument]:
        return [copy.deepcopy(doc) for doc in list(self._documents.values())[:limit]]

    async def update_name(self, project_id: str, name: str) -> bool:
        document = self._documents.get(project_id)
        if document is None:
            return False
        document["name"] = name
        return True

    async def remove(self, project_id: str) -> bool:
        return self._documents.pop(project_id, None) is not None


class JsonDirectoryDocumentStore(DocumentStore):
    """One JSON file per project under ``<root>/<collection>/``."""

    def __init__(self, root: Path, collection: str):
        self.directory = Path(root) / collection

    async def _run(self, func, *args):
        """File I/O runs in the default executor, off the event loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    async def connect(self) -> None:
        await self._run(lambda: self.directory.mkdir(parents=True, exist_ok=True))
        logger.info("JSON document store ready", extra={"directory": str(self.directory)})

    def _path(self, project_id: str) -> Path:
        if not project_id or "/" in project_id or "\\" in project_id or project_id.startswith("."):
            raise DocumentStoreError(f"Invalid project id: {project_id!r}")
        return self.directory / f"{project_id}.json"

    def _read(self, path: Path) -> Optional[ProjectDocument]:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            raise DocumentStoreError(f"Failed to read {path.name}: {e}") from e
        if not isinstance(payload, dict):
            raise DocumentStoreError(f"{path.name} does not hold a JSON object")
        payload.setdefault("_id", path.stem)
        return payload

    def _write(self, path: Path, document: ProjectDocument) -> None:
        try:
            path.write_text(json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as e:
            raise DocumentStoreError(f"Failed to write {path.name}: {e}") from e

    def _list(self, limit: int) -> List[ProjectDocument]:
        documents = []
        for path in sorted(self.directory.glob("*.json"))[:limit]:
            try:
                document = self._read(path)
            except DocumentStoreError as e:
                logger.warning(f"Skipping unreadable project file: {e}")
                continue
            if document is not None:
                documents.append(document)
        return documents

    def _rename(self, path: Path, name: str) -> bool:
        document = self._read(path)
        if document is None:
            return False
        document["name"] = name
        self._write(path, document)
        return True

    def _unlink(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise DocumentStoreError(f"Failed to delete {path.name}: {e}") from e
        return True

    async def get(self, project_id: str) -> Optional[ProjectDocument]:
        return await self._run(self._read, self._path(project_id))

    async def list(self, limit: int = 1000) -> List[ProjectDocument]:
        return await self._run(self._list, limit)

    async def update_name(self, project_id: str, name: str) -> bool:
        return await self._run(self._rename, self._path(project_id), name)

    async def remove(self, project_id: str) -> bool:
        return await self._run(self._unlink, self._path(project_id))


def create_document_store(settings: Settings) -> DocumentStore:
    backend = settings.document_store_backend.lower()
    if backend == "json":
        return JsonDirectoryDocumentStore(Path(settings.data_dir), settings.collection_name)
    if backend == "memory":
        logger.info("Using in-memory document store (no projects until loaded)")
        return MemoryDocumentStore()
    raise DocumentStoreError(f"Unknown document store backend: {settings.document_store_backend}")
