from dataclasses import dataclass, field
from typing import Optional

from errors import ValidationError
from models.chunk import Chunk, ChunkMetadata
from .base import BaseTextSplitter
from .tokens import DEFAULT_ESTIMATOR, TokenEstimator

DEFAULT_CHUNK_SIZE = 1500
DEFAULT_CHUNK_OVERLAP = 200
DEFAULT_SEPARATORS = ("\n\n", "\n", ". ", "! ", "? ", "; ", ", ", " ")
DEFAULT_MIN_CHUNK_SIZE = 200


@dataclass(frozen=True)
class ChunkingOptions:
    """Options for boundary-aware character chunking.

    Attributes:
        chunk_size: Target chunk size in characters.
        chunk_overlap: Characters shared between consecutive chunks. Also the
            width of the window searched for a break point.
        separators: Break points from coarse to fine.
    """

    chunk_size: int = DEFAULT_CHUNK_SIZE
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP
    separators: tuple[str, ...] = field(default=DEFAULT_SEPARATORS)

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValidationError("chunk_size must be a positive integer")
        if self.chunk_overlap < 0:
            raise ValidationError("chunk_overlap must be a non-negative integer")
        if self.chunk_overlap >= self.chunk_size:
            raise ValidationError("chunk_overlap must be smaller than chunk_size")
        if not self.separators or not all(self.separators):
            raise ValidationError("separators must be a non-empty list of non-empty strings")
        # Accept any sequence from callers and config files.
        object.__setattr__(self, "separators", tuple(self.separators))


def normalize_text(text: str) -> str:
    """Normalize line endings and tabs, then trim."""
    return (
        text.replace("\r\n", "\n").replace("\r", "\n").replace("\t", "    ").strip()
    )


def _make_chunk(
    content: str,
    chunk_index: int,
    start_char: int,
    end_char: int,
    estimator: TokenEstimator,
) -> Chunk:
    return Chunk(
        content=content,
        chunk_index=chunk_index,
        start_char=start_char,
        end_char=end_char,
        metadata=ChunkMetadata(
            word_count=len(content.split()),
            token_estimate=estimator.estimate(content),
        ),
    )


def _find_break(text: str, start: int, end: int, options: ChunkingOptions) -> int:
    """Return the boundary to cut at, searching back from ``end``.

    The first separator (in preference order) that occurs anywhere in the
    trailing window wins, at its last occurrence.
    """
    window_start = max(end - options.chunk_overlap, start)
    window = text[window_start:end]
    for separator in options.separators:
        index = window.rfind(separator)
        if index != -1:
            return window_start + index + len(separator)
    return end


def chunk_text(
    text: str,
    options: Optional[ChunkingOptions] = None,
    estimator: TokenEstimator = DEFAULT_ESTIMATOR,
) -> list[Chunk]:
    """Split text into overlapping chunks on natural boundaries.

    Offsets are measured against the normalized text. Chunk content is
    trimmed, so ``content`` may be shorter than ``end_char - start_char``.
    Scanning continues until the next start reaches the end of the text, so
    the last chunk is usually the trailing ``chunk_overlap`` characters.

    Args:
        text: Raw text.
        options: Chunk size, overlap and separators.
        estimator: Token estimator used for ``metadata.token_estimate``.

    Returns:
        Ordered list of chunks, empty for blank input.

    Example:
        >>> chunks = chunk_text(text, ChunkingOptions(chunk_size=1500))
        >>> chunks[1].start_char  # chunks[0].end_char - 200
    """
    options = options or ChunkingOptions()
    cleaned = normalize_text(text)
    if not cleaned:
        return []

    length = len(cleaned)
    if length <= options.chunk_size:
        return [_make_chunk(cleaned, 0, 0, length, estimator)]

    chunks: list[Chunk] = []
    position = 0

    while position < length:
        end = min(position + options.chunk_size, length)
        if end < length:
            end = _find_break(cleaned, position, end, options)

        content = cleaned[position:end].strip()
        if content:
            chunks.append(_make_chunk(content, len(chunks), position, end, estimator))

        next_position = end - options.chunk_overlap
        if next_position <= position:
            next_position = end
        position = next_position

    return chunks


def chunk_document_with_context(
    text: str,
    document_name: str,
    options: Optional[ChunkingOptions] = None,
    estimator: TokenEstimator = DEFAULT_ESTIMATOR,
) -> list[Chunk]:
    """Chunk text and prefix each chunk with its document and position.

    Offsets still refer to the unprefixed normalized text.
    """
    return add_document_context(chunk_text(text, options, estimator), document_name, estimator)


def add_document_context(
    chunks: list[Chunk],
    document_name: str,
    estimator: TokenEstimator = DEFAULT_ESTIMATOR,
) -> list[Chunk]:
    """Prefix chunks with ``[Document: name, Chunk i/N]`` and re-estimate tokens."""
    total = len(chunks)
    prefixed = []
    for position, chunk in enumerate(chunks, start=1):
        content = f"[Document: {document_name}, Chunk {position}/{total}]\n\n{chunk.content}"
        prefixed.append(
            chunk.model_copy(
                update={
                    "content": content,
                    "metadata": chunk.metadata.model_copy(
                        update={"token_estimate": estimator.estimate(content)}
                    ),
                }
            )
        )
    return prefixed


def merge_small_chunks(
    chunks: list[Chunk],
    min_size: int = DEFAULT_MIN_CHUNK_SIZE,
    estimator: TokenEstimator = DEFAULT_ESTIMATOR,
) -> list[Chunk]:
    """Fold chunks shorter than ``min_size`` into their successor.

    The merged sequence is re-indexed from zero.
    """
    if len(chunks) <= 1:
        return list(chunks)

    merged: list[Chunk] = []
    current: Optional[Chunk] = None

    for chunk in chunks:
        if current is None:
            current = chunk
            continue

        if len(current.content) < min_size:
            content = f"{current.content}\n\n{chunk.content}"
            current = current.model_copy(
                update={
                    "content": content,
                    "end_char": chunk.end_char,
                    "metadata": ChunkMetadata(
                        word_count=current.metadata.word_count
                        + chunk.metadata.word_count,
                        token_estimate=estimator.estimate(content),
                    ),
                }
            )
        else:
            merged.append(current)
            current = chunk

    if current is not None:
        merged.append(current)

    return [
        chunk.model_copy(update={"chunk_index": index})
        for index, chunk in enumerate(merged)
    ]


class RecursiveCharacterSplitter(BaseTextSplitter):
    """Character splitter that prefers paragraph, line and sentence breaks."""

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
        separators: tuple[str, ...] = DEFAULT_SEPARATORS,
        min_chunk_size: Optional[int] = None,
        estimator: TokenEstimator = DEFAULT_ESTIMATOR,
    ):
        self.options = ChunkingOptions(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            separators=tuple(separators),
        )
        self.min_chunk_size = min_chunk_size
        self.estimator = estimator

    def split_text(self, text: str) -> list[Chunk]:
        chunks = chunk_text(text, self.options, self.estimator)
        if self.min_chunk_size:
            chunks = merge_small_chunks(chunks, self.min_chunk_size, self.estimator)
        return chunks

    def split_document(self, text: str, document_name: str) -> list[Chunk]:
        """Split text, prefixing each chunk with its document context."""
        return add_document_context(self.split_text(text), document_name, self.estimator)
