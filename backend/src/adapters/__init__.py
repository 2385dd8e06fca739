from typing import Any, Type

from adapters.base import BaseEmbedder

_EMBEDDER_REGISTRY: dict[str, Type[BaseEmbedder]] = {}


def register_embedder(provider: str, cls: Type[BaseEmbedder]) -> None:
    """Make an embedder class available under ``[embedding] provider``."""
    _EMBEDDER_REGISTRY[provider] = cls


def create_embedder(provider: str, **kwargs: Any) -> BaseEmbedder:
    """Instantiate the embedder registered as ``provider``.

    Keyword arguments (model, api_key, base_url, timeout, dimensions...) are
    passed straight to the provider class.

    Raises:
        ValueError: If no embedder is registered under that name.
    """
    try:
        cls = _EMBEDDER_REGISTRY[provider]
    except KeyError:
        raise ValueError(
            f"Unknown embedder provider: {provider}. "
            f"Available: {list_embedder_providers()}"
        ) from None
    return cls(**kwargs)


def list_embedder_providers() -> list[str]:
    return sorted(_EMBEDDER_REGISTRY)


from adapters.batcher import EmbeddingBatcher
from adapters.embedding import OllamaEmbedder, OpenAIEmbedder

register_embedder("openai", OpenAIEmbedder)
register_embedder("ollama", OllamaEmbedder)

__all__ = [
    "BaseEmbedder",
    "EmbeddingBatcher",
    "OllamaEmbedder",
    "OpenAIEmbedder",
    "create_embedder",
    "list_embedder_providers",
    "register_embedder",
]
