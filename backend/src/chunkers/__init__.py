from .base import BaseTextSplitter
from .recursive import (
    ChunkingOptions,
    RecursiveCharacterSplitter,
    add_document_context,
    chunk_document_with_context,
    chunk_text,
    merge_small_chunks,
    normalize_text,
)
from .tokens import (
    CharacterTokenEstimator,
    TiktokenEstimator,
    TokenEstimator,
    create_token_estimator,
)
from .transcript import TranscriptChunkingOptions, TranscriptSplitter, chunk_transcript

TextSplitter = RecursiveCharacterSplitter

__all__ = [
    "BaseTextSplitter",
    "CharacterTokenEstimator",
    "ChunkingOptions",
    "RecursiveCharacterSplitter",
    "TextSplitter",
    "TiktokenEstimator",
    "TokenEstimator",
    "TranscriptChunkingOptions",
    "TranscriptSplitter",
    "add_document_context",
    "chunk_document_with_context",
    "chunk_text",
    "chunk_transcript",
    "create_token_estimator",
    "merge_small_chunks",
    "normalize_text",
]
