"""
Character-count chunkers.

Token budgets are converted with a fixed ratio of 4 characters per token; no
tokenizer is involved, so chunks can end mid-sentence or mid-word.
"""
from typing import List

CHARS_PER_TOKEN = 4


def chunk_text(text: str, max_tokens: int) -> List[str]:
    """Split ``text`` into consecutive, non-overlapping pieces.

    Every piece holds at most ``max_tokens * 4`` characters and joining the
    pieces gives back ``text`` unchanged.
    """
    chars_per_chunk = max_tokens * CHARS_PER_TOKEN
    if chars_per_chunk <= 0:
        raise ValueError("max_tokens must be a positive integer")

    chunks = []
    for start in range(0, len(text), chars_per_chunk):
        chunks.append(text[start:start + chars_per_chunk])
    return chunks


def split_document(document: str, chunk_size: int, chunk_overlap: int) -> List[str]:
    """Overlapping windows used when building the vector index.

    ``chunk_size`` and ``chunk_overlap`` are token counts. Windows made only of
    whitespace are dropped.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be a positive integer")
    if chunk_overlap < 0 or chunk_overlap >= chunk_size:
        raise ValueError("chunk_overlap must be between 0 and chunk_size - 1")

    window = chunk_size * CHARS_PER_TOKEN
    stride = (chunk_size - chunk_overlap) * CHARS_PER_TOKEN
    chunks = []
    start = 0
    length = len(document)
    while start < length:
        end = min(start + window, length)
        chunk = document[start:end]
        if chunk.strip():
            chunks.append(chunk)
        if end == length:
            break
        start += stride
    return chunks
