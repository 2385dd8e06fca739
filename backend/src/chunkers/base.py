from abc import ABC, abstractmethod
from typing import Any


class BaseTextSplitter(ABC):
    """Abstract base class for text splitters."""

    @abstractmethod
    def split_text(self, text: str) -> list[Any]:
        """Split raw text into ordered chunks."""
        pass

    def split_contents(self, text: str) -> list[str]:
        """Split raw text and return only the chunk contents."""
        return [chunk.content for chunk in self.split_text(text)]
