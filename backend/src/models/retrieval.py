"""Retrieval-time records: oracle candidates, retrieved chunks and citations."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class StoredChunkMetadata(BaseModel):
    """Metadata persisted next to a stored chunk.

    Known keys are typed; anything else is kept in the model's extras so
    callers can attach their own fields.
    """

    model_config = ConfigDict(extra="allow")

    start_char: Optional[int] = None
    end_char: Optional[int] = None
    word_count: Optional[int] = None
    token_estimate: Optional[int] = None
    timestamp: Optional[str] = None
    speaker: Optional[str] = None


class StoredChunk(BaseModel):
    """A candidate returned by the similarity oracle."""

    id: str
    document_id: str
    content: str
    chunk_index: int
    metadata: StoredChunkMetadata = Field(default_factory=StoredChunkMetadata)
    similarity: float


class SourceDocument(BaseModel):
    """The owning source (document or meeting) of a set of chunks."""

    id: str
    name: str
    tenant_id: Optional[str] = None
    source_type: Literal["document", "meeting"] = "document"


class RetrievedChunk(BaseModel):
    """A stored chunk enriched with its owning document and score.

    Attributes:
        similarity: Cosine similarity, or the fused score after a hybrid rerank.
        vector_similarity: The raw cosine similarity when ``similarity`` holds
            a fused score.
    """

    id: str
    document_id: str
    document_name: str
    content: str
    similarity: float
    chunk_index: int
    metadata: StoredChunkMetadata = Field(default_factory=StoredChunkMetadata)
    vector_similarity: Optional[float] = None


class RAGResult(BaseModel):
    """Outcome of a single retrieval call."""

    chunks: list[RetrievedChunk] = Field(default_factory=list)
    query: str
    total_tokens: int = Field(ge=0)


class Citation(BaseModel):
    """A source citation projected from a retrieved chunk for display."""

    model_config = ConfigDict(frozen=True)

    id: str
    document_id: str
    document_name: str
    excerpt: str
    similarity: float
    chunk_index: int


class ProcessResult(BaseModel):
    """Summary of processing one source into stored chunks."""

    document_id: str
    chunks_created: int = 0
    total_tokens: int = 0
