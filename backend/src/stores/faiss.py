import fcntl
import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any, Optional

import faiss
import numpy as np

from errors import ProviderError, ValidationError
from models.retrieval import StoredChunk, StoredChunkMetadata
from .base import BaseVectorStore

logger = logging.getLogger(__name__)


def _normalize(vectors: np.ndarray) -> np.ndarray:
    """L2-normalize rows so inner products are cosine similarities."""
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return (vectors / norms).astype(np.float32)


class FAISSVectorStore(BaseVectorStore):
    """FAISS-based similarity oracle with persistence.

    Vectors are normalized and kept in an inner-product index, so search
    scores are cosine similarities. Chunk records live in a JSON file whose
    row order matches the index.
    """

    def __init__(
        self,
        dimension: int,
        index_path: Optional[Path] = None,
        metadata_path: Optional[Path] = None,
    ):
        super().__init__(dimension)
        self._index_path = index_path
        self._metadata_path = metadata_path

        self._index: faiss.Index = self._load_index()
        self._records: list[dict[str, Any]] = self._load_records()

    def _load_index(self) -> faiss.Index:
        if self._index_path and self._index_path.exists():
            return faiss.read_index(str(self._index_path))
        return faiss.IndexFlatIP(self.dimension)

    def _load_records(self) -> list[dict[str, Any]]:
        if self._metadata_path and self._metadata_path.exists():
            with open(self._metadata_path, "r") as f:
                return json.load(f)
        return []

    def _on_disk(self) -> bool:
        return bool(
            self._index_path
            and self._metadata_path
            and self._index_path.exists()
            and self._metadata_path.exists()
        )

    def _acquire_lock(self) -> None:
        if self._metadata_path:
            self._metadata_path.parent.mkdir(parents=True, exist_ok=True)
            self._lock_file = open(self._metadata_path.with_suffix(".lock"), "w")
            fcntl.flock(self._lock_file.fileno(), fcntl.LOCK_EX)

    def _release_lock(self) -> None:
        if hasattr(self, "_lock_file"):
            fcntl.flock(self._lock_file.fileno(), fcntl.LOCK_UN)
            self._lock_file.close()
            del self._lock_file

    def _persist(self, index: faiss.Index, records: list[dict[str, Any]]) -> None:
        """Write to temporary files, then move them over the live ones."""
        staged: list[tuple[Path, Path]] = []

        if self._index_path:
            self._index_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_index = self._index_path.with_suffix(self._index_path.suffix + ".tmp")
            faiss.write_index(index, str(tmp_index))
            staged.append((tmp_index, self._index_path))

        if self._metadata_path:
            self._metadata_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_meta = self._metadata_path.with_suffix(self._metadata_path.suffix + ".tmp")
            with open(tmp_meta, "w") as f:
                json.dump(records, f, indent=2)
            staged.append((tmp_meta, self._metadata_path))

        for tmp_path, final_path in staged:
            os.replace(tmp_path, final_path)

    def save(self) -> None:
        self._persist(self._index, self._records)

    def _check_vectors(self, embeddings: list[list[float]]) -> np.ndarray:
        vectors = np.array(embeddings, dtype=np.float32)
        if vectors.ndim != 2 or vectors.shape[1] != self.dimension:
            raise ValidationError(
                f"Expected vectors of dimension {self.dimension}, got shape {vectors.shape}"
            )
        return vectors

    def replace_chunks(
        self,
        document_id: str,
        embeddings: list[list[float]],
        contents: list[str],
        metadata_list: Optional[list[StoredChunkMetadata]] = None,
    ) -> None:
        if metadata_list is None:
            metadata_list = [StoredChunkMetadata() for _ in contents]
        if not (len(embeddings) == len(contents) == len(metadata_list)):
            raise ValidationError(
                "embeddings, contents and metadata_list must have the same length"
            )
        new_vectors = self._check_vectors(embeddings) if embeddings else None

        self._acquire_lock()
        try:
            # Another store on the same files may have written since this one
            # was loaded, so start from what is on disk.
            current_index, current_records = self._index, self._records
            if self._on_disk():
                current_index = self._load_index()
                current_records = self._load_records()

            kept = [
                i
                for i, r in enumerate(current_records)
                if r["document_id"] != document_id
            ]

            # Build the replacement off to the side; the live index and
            # records are swapped only after it has been persisted.
            index = faiss.IndexFlatIP(self.dimension)
            if kept and current_index.ntotal:
                all_vectors = current_index.reconstruct_n(0, current_index.ntotal)
                index.add(np.ascontiguousarray(all_vectors[kept], dtype=np.float32))
            records = [current_records[i] for i in kept]

            if new_vectors is not None:
                index.add(_normalize(new_vectors))
                for chunk_index, (content, meta) in enumerate(
                    zip(contents, metadata_list)
                ):
                    records.append(
                        {
                            "id": str(uuid.uuid4()),
                            "document_id": document_id,
                            "content": content,
                            "chunk_index": chunk_index,
                            "metadata": meta.model_dump(exclude_none=True),
                        }
                    )

            self._persist(index, records)
            self._index = index
            self._records = records
        finally:
            self._release_lock()

        logger.info(
            f"Stored {len(contents)} chunks for {document_id} "
            f"({self._index.ntotal} vectors total)"
        )

    def query(
        self,
        query_embedding: list[float],
        threshold: float,
        limit: int,
    ) -> list[StoredChunk]:
        # replace_chunks swaps both attributes; read one consistent pair.
        index, records = self._index, self._records
        query = _normalize(self._check_vectors([query_embedding]))
        if limit <= 0 or index.ntotal == 0:
            return []

        k = min(limit, index.ntotal)
        try:
            scores, indices = index.search(query, k)
        except RuntimeError as e:
            raise ProviderError(f"FAISS search failed: {e}", "faiss") from e

        results = []
        for score, idx in zip(scores[0], indices[0]):
            if idx < 0 or idx >= len(records) or score <= threshold:
                continue
            record = records[idx]
            results.append(
                StoredChunk(
                    id=record["id"],
                    document_id=record["document_id"],
                    content=record["content"],
                    chunk_index=record["chunk_index"],
                    metadata=StoredChunkMetadata(**record.get("metadata", {})),
                    similarity=float(score),
                )
            )

        return results

    def chunk_count(self, document_id: str) -> int:
        return sum(1 for r in self._records if r["document_id"] == document_id)

    def delete_all(self) -> None:
        self._acquire_lock()
        try:
            index = faiss.IndexFlatIP(self.dimension)
            self._persist(index, [])
            self._index = index
            self._records = []
        finally:
            self._release_lock()

    @property
    def count(self) -> int:
        return self._index.ntotal
