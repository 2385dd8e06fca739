"""Assembles retrieved chunks into prompt context and display citations."""

from models.retrieval import Citation, RetrievedChunk

NO_RELEVANT_DOCUMENTS = "No relevant documents found."
EXCERPT_LENGTH = 200

CONTEXT_HEADER = "Here is the relevant information from the uploaded documents:"
CONTEXT_FOOTER = (
    "Use the above sources to answer the question. "
    "Always cite which source you're referencing."
)


def format_chunks_for_context(chunks: list[RetrievedChunk]) -> str:
    """Render chunks as one context block with ``[Source i: ...]`` markers.

    An empty list yields ``NO_RELEVANT_DOCUMENTS``, which is a valid context
    rather than an error.
    """
    if not chunks:
        return NO_RELEVANT_DOCUMENTS

    parts = [
        f"[Source {i}: {chunk.document_name} (Chunk {chunk.chunk_index + 1})]\n"
        f"{chunk.content}\n"
        "---"
        for i, chunk in enumerate(chunks, start=1)
    ]
    return f"{CONTEXT_HEADER}\n\n" + "\n\n".join(parts) + f"\n\n{CONTEXT_FOOTER}"


def make_excerpt(content: str, length: int = EXCERPT_LENGTH) -> str:
    if len(content) <= length:
        return content
    return content[:length] + "..."


def format_source_citations(
    chunks: list[RetrievedChunk], excerpt_length: int = EXCERPT_LENGTH
) -> list[Citation]:
    """Project retrieved chunks onto citations for display."""
    return [
        Citation(
            id=chunk.id,
            document_id=chunk.document_id,
            document_name=chunk.document_name,
            excerpt=make_excerpt(chunk.content, excerpt_length),
            similarity=chunk.similarity,
            chunk_index=chunk.chunk_index,
        )
        for chunk in chunks
    ]
