"""Data models for notebook-rag."""

from .chunk import (
    Chunk,
    ChunkMetadata,
    Embedding,
    TranscriptChunk,
    TranscriptChunkMetadata,
)
from .retrieval import (
    Citation,
    ProcessResult,
    RAGResult,
    RetrievedChunk,
    SourceDocument,
    StoredChunk,
    StoredChunkMetadata,
)

__all__ = [
    "Chunk",
    "ChunkMetadata",
    "Citation",
    "Embedding",
    "ProcessResult",
    "RAGResult",
    "RetrievedChunk",
    "SourceDocument",
    "StoredChunk",
    "StoredChunkMetadata",
    "TranscriptChunk",
    "TranscriptChunkMetadata",
]
