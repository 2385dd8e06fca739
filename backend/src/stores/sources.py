import json
import os
from pathlib import Path
from typing import Iterable, Optional

from models.retrieval import SourceDocument
from .base import BaseSourceStore


class JSONSourceStore(BaseSourceStore):
    """Source registry kept in memory and optionally persisted as JSON."""

    def __init__(self, path: Optional[Path] = None):
        self._path = path
        self._documents: dict[str, SourceDocument] = self._load()

    def _load(self) -> dict[str, SourceDocument]:
        if self._path and self._path.exists():
            with open(self._path, "r") as f:
                raw = json.load(f)
            return {doc_id: SourceDocument(**data) for doc_id, data in raw.items()}
        return {}

    def save(self) -> None:
        if not self._path:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        with open(tmp_path, "w") as f:
            json.dump(
                {doc_id: doc.model_dump() for doc_id, doc in self._documents.items()},
                f,
                indent=2,
            )
        os.replace(tmp_path, self._path)

    def get_many(self, ids: Iterable[str]) -> dict[str, SourceDocument]:
        return {
            doc_id: self._documents[doc_id]
            for doc_id in set(ids)
            if doc_id in self._documents
        }

    def upsert(self, document: SourceDocument) -> None:
        self._documents[document.id] = document
        self.save()

    def delete(self, document_id: str) -> bool:
        if document_id not in self._documents:
            return False
        del self._documents[document_id]
        self.save()
        return True

    def __len__(self) -> int:
        return len(self._documents)
