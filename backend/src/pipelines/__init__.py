from .base import (
    create_batcher_from_config,
    create_embedder_from_config,
    create_stores_from_config,
    create_token_estimator_from_config,
    get_vector_store_paths,
)
from .context import format_chunks_for_context, format_source_citations
from .ingestion import IngestionPipeline, run_ingestion
from .retrieval import (
    RetrievalOptions,
    RetrievalPipeline,
    extract_keywords,
    get_retrieval_pipeline,
    keyword_score,
    rerank_by_keywords,
)

__all__ = [
    "IngestionPipeline",
    "run_ingestion",
    "RetrievalOptions",
    "RetrievalPipeline",
    "get_retrieval_pipeline",
    "extract_keywords",
    "keyword_score",
    "rerank_by_keywords",
    "format_chunks_for_context",
    "format_source_citations",
    "create_batcher_from_config",
    "create_embedder_from_config",
    "create_stores_from_config",
    "create_token_estimator_from_config",
    "get_vector_store_paths",
]
