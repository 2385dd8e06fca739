import logging
import re
from dataclasses import dataclass
from typing import Optional

from errors import ValidationError
from models.chunk import TranscriptChunk, TranscriptChunkMetadata
from .base import BaseTextSplitter

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHUNK_SIZE = 1000
DEFAULT_OVERLAP_SIZE = 200
CHARS_PER_OVERLAP_WORD = 5

# [00:00] Speaker: text  or  [0:00:00] Speaker: text
SPEAKER_LINE = re.compile(r"^\[(\d+:\d+(?::\d+)?)\]\s*([^:]+):\s*(.*)$")


@dataclass(frozen=True)
class TranscriptChunkingOptions:
    """Size limits for transcript chunking.

    Attributes:
        max_chunk_size: Maximum buffered characters before a flush.
        overlap_size: Approximate overlap in characters, carried over as
            ``overlap_size // 5`` whole words.
    """

    max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE
    overlap_size: int = DEFAULT_OVERLAP_SIZE

    def __post_init__(self) -> None:
        if self.max_chunk_size <= 0:
            raise ValidationError("max_chunk_size must be a positive integer")
        if self.overlap_size < 0:
            raise ValidationError("overlap_size must be a non-negative integer")

    @property
    def overlap_words(self) -> int:
        return self.overlap_size // CHARS_PER_OVERLAP_WORD


def _overlap_seed(buffer: str, overlap_words: int) -> str:
    """Trailing whole words of a flushed buffer, used to seed the next one."""
    if overlap_words <= 0:
        return ""
    words = buffer.split()[-overlap_words:]
    return " ".join(words) + "\n" if words else ""


class _ChunkBuilder:
    """Accumulates emitted chunks with sequential indexes."""

    def __init__(self) -> None:
        self.chunks: list[TranscriptChunk] = []

    def emit(
        self,
        content: str,
        timestamp: Optional[str] = None,
        speaker: Optional[str] = None,
    ) -> None:
        content = content.strip()
        if not content:
            return
        self.chunks.append(
            TranscriptChunk(
                content=content,
                chunk_index=len(self.chunks),
                metadata=TranscriptChunkMetadata(timestamp=timestamp, speaker=speaker),
            )
        )


def _chunk_by_words(
    transcript: str, options: TranscriptChunkingOptions
) -> list[TranscriptChunk]:
    builder = _ChunkBuilder()
    buffer = ""

    for word in transcript.split():
        if len(buffer) + len(word) + 1 > options.max_chunk_size and buffer:
            builder.emit(buffer)
            seed = _overlap_seed(buffer, options.overlap_words)
            buffer = seed.rstrip("\n") + " " if seed else ""
        buffer += word + " "

    builder.emit(buffer)
    return builder.chunks


def chunk_transcript(
    transcript: str,
    options: Optional[TranscriptChunkingOptions] = None,
) -> list[TranscriptChunk]:
    """Split a speaker-attributed transcript into overlapping chunks.

    Each chunk is tagged with the first timestamp and speaker that entered
    its buffer. Lines that don't look like ``[mm:ss] Speaker: text`` are kept
    verbatim but never change attribution. Without any speaker lines the
    whole transcript is chunked word by word, with empty metadata.
    """
    options = options or TranscriptChunkingOptions()
    if not transcript.strip():
        return []

    builder = _ChunkBuilder()
    buffer = ""
    timestamp: Optional[str] = None
    speaker: Optional[str] = None
    matched_any = False

    for line in transcript.replace("\r\n", "\n").split("\n"):
        match = SPEAKER_LINE.match(line)
        if match:
            matched_any = True
            line_timestamp, line_speaker, text = match.groups()
            line_speaker = line_speaker.strip()

            if len(buffer) + len(text) > options.max_chunk_size and buffer:
                builder.emit(buffer, timestamp, speaker)
                buffer = _overlap_seed(buffer, options.overlap_words)
                timestamp, speaker = None, None

            if timestamp is None:
                timestamp, speaker = line_timestamp, line_speaker

            buffer += f"{line_speaker}: {text}\n"
        elif line.strip():
            buffer += line + "\n"

    if not matched_any:
        logger.debug("No speaker lines found, falling back to word chunking")
        return _chunk_by_words(transcript, options)

    builder.emit(buffer, timestamp, speaker)
    return builder.chunks


class TranscriptSplitter(BaseTextSplitter):
    """Splitter for meeting transcripts grouped by speaker turn."""

    def __init__(
        self,
        max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
        overlap_size: int = DEFAULT_OVERLAP_SIZE,
    ):
        self.options = TranscriptChunkingOptions(
            max_chunk_size=max_chunk_size, overlap_size=overlap_size
        )

    def split_text(self, text: str) -> list[TranscriptChunk]:
        return chunk_transcript(text, self.options)
