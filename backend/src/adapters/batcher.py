import logging

from adapters.base import BaseEmbedder
from errors import ProviderError, ValidationError
from models.chunk import Embedding

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


class EmbeddingBatcher:
    """Turns chunk texts into embeddings through bounded-size batches.

    Batches are sent one after another, so a single document never has more
    than one request in flight against the provider.
    """

    def __init__(self, embedder: BaseEmbedder, batch_size: int = DEFAULT_BATCH_SIZE):
        if batch_size <= 0:
            raise ValidationError("batch_size must be a positive integer")
        self.embedder = embedder
        self.batch_size = batch_size

    @property
    def dimension(self) -> int:
        return self.embedder.dimension

    def embed_query(self, text: str) -> Embedding:
        """Embed a single query with one unbatched provider call."""
        return self.embedder.embed(text)

    def embed_texts(self, texts: list[str]) -> list[Embedding]:
        """Embed many texts, preserving input order.

        Raises:
            ProviderError: If a provider call fails or returns the wrong
                number of embeddings.
        """
        results: list[Embedding] = []

        for i in range(0, len(texts), self.batch_size):
            batch = texts[i : i + self.batch_size]
            batch_num = i // self.batch_size + 1

            embeddings = self.embedder.embed_batch(batch)
            if len(embeddings) != len(batch):
                raise ProviderError(
                    f"Embedding batch {batch_num} returned {len(embeddings)} "
                    f"embeddings for {len(batch)} texts",
                    self.embedder.model,
                )

            results.extend(embeddings)
            logger.debug(f"Embedded batch {batch_num}: {len(batch)} texts")

        return results
