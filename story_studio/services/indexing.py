"""Split-and-embed indexing step consumed by the page before extraction."""

from __future__ import annotations

from typing import List

from flask import current_app

from ..models import NodeWithEmbedding
from .chunking import split_document
from .generator import get_text_generator as _get_text_generator


class IndexingError(RuntimeError):
    """Raised when a document cannot be split or embedded."""


def split_and_embed(document: str, chunk_size: int, chunk_overlap: int) -> List[NodeWithEmbedding]:
    """Split ``document`` into overlapping windows and embed each one."""

    if not isinstance(document, str) or not document.strip():
        raise IndexingError("A document with content is required to build the index.")

    try:
        chunks = split_document(document, chunk_size, chunk_overlap)
    except ValueError as exc:
        raise IndexingError(str(exc)) from exc

    generator = _get_text_generator()
    vectors = generator.embed_texts(chunks)

    current_app.logger.info(
        "Indexed %d node(s) (chunk_size=%d, chunk_overlap=%d)",
        len(chunks),
        chunk_size,
        chunk_overlap,
    )
    return [NodeWithEmbedding(text=chunk, embedding=vector) for chunk, vector in zip(chunks, vectors)]
