"""HTTP plumbing shared by embedding providers."""

import requests

OLLAMA_POOL_CONNECTIONS = 10
OLLAMA_POOL_MAXSIZE = 20


def create_session_with_pooling(
    pool_connections: int = OLLAMA_POOL_CONNECTIONS,
    pool_maxsize: int = OLLAMA_POOL_MAXSIZE,
    max_retries: int = 0,
) -> requests.Session:
    """Session whose HTTP(S) adapter keeps connections alive between batches.

    ``max_retries`` is zero so a failed embedding request reaches the caller
    as-is; any retry policy lives above the pipeline.
    """
    adapter = requests.adapters.HTTPAdapter(
        pool_connections=pool_connections,
        pool_maxsize=pool_maxsize,
        max_retries=max_retries,
    )
    session = requests.Session()
    for prefix in ("http://", "https://"):
        session.mount(prefix, adapter)
    return session
