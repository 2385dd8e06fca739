from pathlib import Path
from typing import Any

from adapters import BaseEmbedder, EmbeddingBatcher, create_embedder
from adapters.batcher import DEFAULT_BATCH_SIZE
from chunkers.tokens import TokenEstimator, create_token_estimator
from config import get_config_value, get_section, get_storage_dir
from stores import BaseSourceStore, BaseVectorStore, create_source_store, create_vector_store

DEFAULT_EMBEDDING = {"provider": "openai", "model": "text-embedding-3-small"}
ADAPTER_RESERVED_KEYS = ("provider", "model", "batch_size")


def create_embedder_from_config(config: dict[str, Any]) -> BaseEmbedder:
    """Create an embedder instance from the [embedding] section."""
    section = get_section(config, "embedding")
    provider = section.get("provider", DEFAULT_EMBEDDING["provider"])
    model = section.get("model", DEFAULT_EMBEDDING["model"])

    extra_kwargs = {
        k: v for k, v in section.items() if k not in ADAPTER_RESERVED_KEYS
    }
    return create_embedder(provider, model=model, **extra_kwargs)


def create_batcher_from_config(config: dict[str, Any]) -> EmbeddingBatcher:
    embedder = create_embedder_from_config(config)
    batch_size = get_config_value(config, "embedding.batch_size", DEFAULT_BATCH_SIZE)
    return EmbeddingBatcher(embedder, batch_size=batch_size)


def create_token_estimator_from_config(config: dict[str, Any]) -> TokenEstimator:
    """Create the token estimator named in [tokens] (default: chars)."""
    section = dict(get_section(config, "tokens"))
    name = section.pop("estimator", "chars")
    return create_token_estimator(name, **section)


def get_vector_store_paths(
    config: dict[str, Any], config_path: Path, embedder_model: str
) -> tuple[Path, Path]:
    """Get index and metadata paths for the vector store."""
    storage_dir = get_storage_dir(config, config_path)
    embedding_id = embedder_model.replace("/", "_").replace("-", "_")
    return (
        storage_dir / f"faiss_{embedding_id}.index",
        storage_dir / f"faiss_{embedding_id}.json",
    )


def create_stores_from_config(
    config: dict[str, Any], config_path: Path, embedder: BaseEmbedder
) -> tuple[BaseVectorStore, BaseSourceStore]:
    """Create the vector store and source registry under the storage directory."""
    index_path, metadata_path = get_vector_store_paths(
        config, config_path, embedder.model
    )
    vector_store = create_vector_store(
        get_config_value(config, "storage.provider", "faiss"),
        dimension=embedder.dimension,
        index_path=index_path,
        metadata_path=metadata_path,
    )
    source_store = create_source_store(
        get_storage_dir(config, config_path) / "sources.json"
    )
    return vector_store, source_store
