from abc import ABC, abstractmethod
from typing import Any

from models.chunk import Embedding


class BaseEmbedder(ABC):
    """Abstract base class for embedding providers.

    Implementations return one ``Embedding`` per input, in input order, and
    raise ``ProviderError`` when the provider call fails.
    """

    def __init__(self, model: str, **kwargs: Any):
        self.model = model
        self.kwargs = kwargs

    @abstractmethod
    def embed(self, text: str) -> Embedding:
        """Embed one text, typically a query."""

    @abstractmethod
    def embed_batch(self, texts: list[str]) -> list[Embedding]:
        """Embed several texts in a single provider request."""

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Length of every vector this embedder returns."""
