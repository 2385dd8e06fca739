"""Token estimators used for chunk metadata and retrieval budgets."""

import math
from typing import Any, Protocol

import tiktoken

DEFAULT_CHARS_PER_TOKEN = 4
ENCODING_CACHE: dict[str, tiktoken.Encoding] = {}


class TokenEstimator(Protocol):
    """Anything that can put a token count on a piece of text."""

    def estimate(self, text: str) -> int: ...


class CharacterTokenEstimator:
    """Deterministic ``ceil(len / chars_per_token)`` heuristic.

    Not a real tokenizer. It needs no I/O and gives the same answer on every
    run, which keeps chunking reproducible.
    """

    def __init__(self, chars_per_token: int = DEFAULT_CHARS_PER_TOKEN):
        if chars_per_token <= 0:
            raise ValueError("chars_per_token must be positive")
        self.chars_per_token = chars_per_token

    def estimate(self, text: str) -> int:
        return math.ceil(len(text) / self.chars_per_token)


def get_tokenizer(model: str) -> tiktoken.Encoding:
    if model not in ENCODING_CACHE:
        try:
            ENCODING_CACHE[model] = tiktoken.encoding_for_model(model)
        except KeyError:
            ENCODING_CACHE[model] = tiktoken.get_encoding("cl100k_base")
    return ENCODING_CACHE[model]


class TiktokenEstimator:
    """Exact token counts from a tiktoken encoding."""

    def __init__(self, model: str = "text-embedding-3-small"):
        self.model = model

    def estimate(self, text: str) -> int:
        return len(get_tokenizer(self.model).encode(text))


def create_token_estimator(name: str = "chars", **kwargs: Any) -> TokenEstimator:
    """Create a token estimator by name ("chars" or "tiktoken")."""
    if name == "chars":
        return CharacterTokenEstimator(**kwargs)
    elif name == "tiktoken":
        return TiktokenEstimator(**kwargs)
    else:
        raise ValueError(f"Unknown token estimator: {name}")


DEFAULT_ESTIMATOR = CharacterTokenEstimator()
