"""Error taxonomy for the retrieval pipeline."""


class RAGError(Exception):
    """Base class for all pipeline errors."""


class ValidationError(RAGError, ValueError):
    """Malformed options or inputs, raised before any I/O happens."""


class EmptyDocumentError(ValidationError):
    """A document produced no text chunks."""


class ProviderError(RAGError):
    """An embedding provider or similarity oracle call failed.

    The underlying exception is chained as ``__cause__``. Nothing in the core
    retries; retry policy belongs to the caller.
    """

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.provider = provider
