"""Chunk and embedding records produced during ingestion."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ChunkMetadata(BaseModel):
    """Size metadata attached to every chunk."""

    model_config = ConfigDict(frozen=True)

    word_count: int = Field(ge=0)
    token_estimate: int = Field(ge=0)


class Chunk(BaseModel):
    """A contiguous, offset-tracked slice of normalized source text.

    Attributes:
        content: The trimmed chunk text.
        chunk_index: Position of the chunk within its source.
        start_char: Start offset into the normalized source text.
        end_char: End offset (exclusive) into the normalized source text.
        metadata: Word count and token estimate.
    """

    model_config = ConfigDict(frozen=True)

    content: str
    chunk_index: int = Field(ge=0)
    start_char: int = Field(ge=0)
    end_char: int
    metadata: ChunkMetadata

    @field_validator("content")
    @classmethod
    def _content_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("chunk content must not be empty")
        return value

    @model_validator(mode="after")
    def _offsets_ordered(self) -> "Chunk":
        if self.start_char >= self.end_char:
            raise ValueError(
                f"start_char ({self.start_char}) must be below end_char ({self.end_char})"
            )
        return self


class TranscriptChunkMetadata(BaseModel):
    """Speaker attribution for a transcript chunk (empty for the fallback)."""

    model_config = ConfigDict(frozen=True)

    timestamp: Optional[str] = None
    speaker: Optional[str] = None


class TranscriptChunk(BaseModel):
    """A chunk of a speaker-attributed meeting transcript."""

    model_config = ConfigDict(frozen=True)

    content: str
    chunk_index: int = Field(ge=0)
    metadata: TranscriptChunkMetadata = Field(default_factory=TranscriptChunkMetadata)


class Embedding(BaseModel):
    """A fixed-length vector plus the provider's token accounting."""

    embedding: list[float]
    token_count: int = Field(default=0, ge=0)
