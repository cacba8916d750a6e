"""
Status store — JSON documents scoped per user and per entity.

Local stand-in for the remote status document store. Layout under
the store root:

    user/<collection>/<document_id>.json
    entities/<entity_guid>/<collection>/<document_id>.json

Writes are atomic (write to temp file, then rename) so a reader never
sees a half-written document.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path
from typing import Any

from guided_install.adapters.base import StatusStoreClient
from guided_install.core.errors import StatusStoreError

logger = logging.getLogger(__name__)

USER_SCOPE_DIR = "user"
ENTITY_SCOPE_DIR = "entities"


class FileStatusStoreClient(StatusStoreClient):
    """Status store backed by a directory of JSON files.

    Args:
        root: Store root directory (created on first write).
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    # ── Writes ──────────────────────────────────────────────────

    def write_document_with_user_scope(
        self, collection: str, document_id: str, document: dict[str, Any]
    ) -> None:
        path = self.root / USER_SCOPE_DIR / collection / f"{document_id}.json"
        _write_json(path, document)

    def write_document_with_entity_scope(
        self, entity_guid: str, collection: str, document_id: str, document: dict[str, Any]
    ) -> None:
        if not entity_guid:
            raise StatusStoreError("entity-scoped write requires an entity GUID")
        path = self.root / ENTITY_SCOPE_DIR / entity_guid / collection / f"{document_id}.json"
        _write_json(path, document)

    # ── Reads (status command) ──────────────────────────────────

    def list_user_documents(self, collection: str) -> list[dict[str, Any]]:
        """All user-scoped documents in ``collection``, most recent first."""
        directory = self.root / USER_SCOPE_DIR / collection
        if not directory.is_dir():
            return []

        docs = []
        for path in directory.glob("*.json"):
            doc = _read_json(path)
            if doc is not None:
                docs.append(doc)

        docs.sort(key=lambda d: d.get("timestamp", ""), reverse=True)
        return docs

    def read_entity_document(
        self, entity_guid: str, collection: str, document_id: str
    ) -> dict[str, Any] | None:
        path = self.root / ENTITY_SCOPE_DIR / entity_guid / collection / f"{document_id}.json"
        return _read_json(path)

    def list_entity_guids(self) -> list[str]:
        directory = self.root / ENTITY_SCOPE_DIR
        if not directory.is_dir():
            return []
        return sorted(p.name for p in directory.iterdir() if p.is_dir())


def _write_json(path: Path, document: dict[str, Any]) -> None:
    content = json.dumps(document, indent=2, ensure_ascii=False) + "\n"

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        _fd, tmp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=".status_",
            suffix=".tmp",
        )
        tmp = Path(tmp_path)
        try:
            with open(_fd, "w", encoding="utf-8") as f:
                f.write(content)
            tmp.replace(path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise
    except OSError as e:
        logger.error("Failed to write status document %s: %s", path, e)
        raise StatusStoreError(f"cannot write {path}: {e}") from e

    logger.debug("Status document written to %s", path)


def _read_json(path: Path) -> dict[str, Any] | None:
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Skipping unreadable status document %s: %s", path, e)
        return None
    return data if isinstance(data, dict) else None
