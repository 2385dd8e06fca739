import logging
from pathlib import Path
from typing import Any, Optional

from adapters import EmbeddingBatcher
from chunkers import RecursiveCharacterSplitter, TranscriptSplitter
from chunkers.recursive import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE
from chunkers.tokens import DEFAULT_ESTIMATOR, TokenEstimator
from chunkers.transcript import DEFAULT_MAX_CHUNK_SIZE, DEFAULT_OVERLAP_SIZE
from config import get_config_value, load_config
from errors import EmptyDocumentError
from models import ProcessResult, SourceDocument, StoredChunkMetadata
from stores import BaseSourceStore, BaseVectorStore
from .base import (
    create_batcher_from_config,
    create_stores_from_config,
    create_token_estimator_from_config,
)

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Pipeline for turning documents and transcripts into stored chunks.

    Supports dependency injection for flexible composition. Each source's
    chunk set is replaced as a whole, so re-processing never leaves a mix
    of old and new chunks behind.
    """

    def __init__(
        self,
        batcher: EmbeddingBatcher,
        vector_store: BaseVectorStore,
        source_store: BaseSourceStore,
        splitter: Optional[RecursiveCharacterSplitter] = None,
        transcript_splitter: Optional[TranscriptSplitter] = None,
        token_estimator: TokenEstimator = DEFAULT_ESTIMATOR,
        with_document_context: bool = False,
        config: dict[str, Any] | None = None,
        config_path: Path | None = None,
    ):
        self.batcher = batcher
        self.vector_store = vector_store
        self.source_store = source_store
        self.token_estimator = token_estimator
        self.splitter = splitter or RecursiveCharacterSplitter(estimator=token_estimator)
        self.transcript_splitter = transcript_splitter or TranscriptSplitter()
        self.with_document_context = with_document_context
        self.config = config or {}
        self.config_path = config_path

    @classmethod
    def from_config(
        cls, config: dict[str, Any], config_path: Path
    ) -> "IngestionPipeline":
        """Create pipeline from configuration dictionary."""
        batcher = create_batcher_from_config(config)
        vector_store, source_store = create_stores_from_config(
            config, config_path, batcher.embedder
        )
        token_estimator = create_token_estimator_from_config(config)

        splitter = RecursiveCharacterSplitter(
            chunk_size=get_config_value(
                config, "chunking.chunk_size", DEFAULT_CHUNK_SIZE
            ),
            chunk_overlap=get_config_value(
                config, "chunking.chunk_overlap", DEFAULT_CHUNK_OVERLAP
            ),
            min_chunk_size=get_config_value(config, "chunking.min_chunk_size"),
            estimator=token_estimator,
        )
        transcript_splitter = TranscriptSplitter(
            max_chunk_size=get_config_value(
                config, "transcript.max_chunk_size", DEFAULT_MAX_CHUNK_SIZE
            ),
            overlap_size=get_config_value(
                config, "transcript.overlap_size", DEFAULT_OVERLAP_SIZE
            ),
        )

        return cls(
            batcher=batcher,
            vector_store=vector_store,
            source_store=source_store,
            splitter=splitter,
            transcript_splitter=transcript_splitter,
            token_estimator=token_estimator,
            with_document_context=get_config_value(
                config, "chunking.with_document_context", False
            ),
            config=config,
            config_path=config_path,
        )

    def _embed_and_replace(
        self,
        source_id: str,
        contents: list[str],
        metadata_list: list[StoredChunkMetadata],
    ) -> int:
        """Embed contents and swap them in as the source's chunk set.

        Returns the summed provider token count.
        """
        embeddings = self.batcher.embed_texts(contents)
        self.vector_store.replace_chunks(
            source_id,
            [e.embedding for e in embeddings],
            contents,
            metadata_list,
        )
        return sum(e.token_count for e in embeddings)

    def process_document(
        self,
        document_id: str,
        text: str,
        name: str,
        tenant_id: Optional[str] = None,
    ) -> ProcessResult:
        """Chunk, embed and store a text document.

        Raises:
            EmptyDocumentError: If the text produced no chunks. Any chunks
                stored earlier for the document are left untouched.
            ProviderError: If embedding fails; prior chunks are left untouched.
        """
        if self.with_document_context:
            chunks = self.splitter.split_document(text, name)
        else:
            chunks = self.splitter.split_text(text)

        if not chunks:
            raise EmptyDocumentError(f"Document {document_id} produced no text chunks")

        logger.info(f"Split {name} into {len(chunks)} chunks")
        self.source_store.upsert(
            SourceDocument(id=document_id, name=name, tenant_id=tenant_id)
        )

        metadata_list = [
            StoredChunkMetadata(
                start_char=chunk.start_char,
                end_char=chunk.end_char,
                word_count=chunk.metadata.word_count,
                token_estimate=chunk.metadata.token_estimate,
            )
            for chunk in chunks
        ]
        total_tokens = self._embed_and_replace(
            document_id, [c.content for c in chunks], metadata_list
        )

        return ProcessResult(
            document_id=document_id,
            chunks_created=len(chunks),
            total_tokens=total_tokens,
        )

    def process_transcript(
        self,
        meeting_id: str,
        transcript: str,
        title: str,
        tenant_id: Optional[str] = None,
    ) -> ProcessResult:
        """Chunk, embed and store a meeting transcript.

        A transcript with no content clears the meeting's chunk set.
        """
        self.source_store.upsert(
            SourceDocument(
                id=meeting_id, name=title, tenant_id=tenant_id, source_type="meeting"
            )
        )

        chunks = self.transcript_splitter.split_text(transcript)
        if not chunks:
            logger.info(f"Transcript {meeting_id} is empty, clearing its chunks")
            self.vector_store.replace_chunks(meeting_id, [], [], [])
            return ProcessResult(document_id=meeting_id)

        logger.info(f"Split transcript {title} into {len(chunks)} chunks")
        metadata_list = [
            StoredChunkMetadata(
                timestamp=chunk.metadata.timestamp,
                speaker=chunk.metadata.speaker,
                word_count=len(chunk.content.split()),
                token_estimate=self.token_estimator.estimate(chunk.content),
            )
            for chunk in chunks
        ]
        total_tokens = self._embed_and_replace(
            meeting_id, [c.content for c in chunks], metadata_list
        )

        return ProcessResult(
            document_id=meeting_id,
            chunks_created=len(chunks),
            total_tokens=total_tokens,
        )

    def remove_source(self, source_id: str) -> bool:
        """Delete a source's chunks and registry entry.

        Returns:
            True if the source was registered.
        """
        self.vector_store.replace_chunks(source_id, [], [], [])
        removed = self.source_store.delete(source_id)
        logger.info(f"Removed source {source_id}")
        return removed


def run_ingestion(
    source_id: str,
    text: str,
    name: str,
    config_path: Path = Path("config.toml"),
    tenant_id: Optional[str] = None,
    transcript: bool = False,
) -> ProcessResult:
    """Process one document or transcript using the pipeline from config.

    Args:
        source_id: Id the chunks are stored under.
        text: Document text or transcript.
        name: Document name or meeting title.
        config_path: Path to configuration file.
        tenant_id: Optional owning tenant.
        transcript: If True, use transcript chunking.

    Returns:
        ProcessResult for the source.
    """
    config = load_config(config_path)
    pipeline = IngestionPipeline.from_config(config, config_path)

    if transcript:
        return pipeline.process_transcript(source_id, text, name, tenant_id)
    return pipeline.process_document(source_id, text, name, tenant_id)
