"""Character extraction: chunk the text, analyse every chunk, merge the results."""

from __future__ import annotations

import json
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence

from flask import current_app

from ..models import NOT_SPECIFIED, Character
from ..prompts import CHARACTER_EXTRACTION_KEY
from .chunking import chunk_text
from .generator import (
    get_text_generator as _get_text_generator,
    load_prompt_entry as _load_prompt_entry,
    resolve_decoding_parameters as _resolve_decoding_parameters,
)


class CharacterExtractionError(RuntimeError):
    """Raised when the extraction pipeline cannot run at all."""


@dataclass
class CharacterExtractionResult:
    characters: List[Character]
    chunk_count: int
    discarded_chunks: int


def extract_characters(
    texts: Sequence[str],
    *,
    temperature: Optional[float] = None,
    top_p: Optional[float] = None,
) -> CharacterExtractionResult:
    """Extract and merge the characters mentioned across ``texts``.

    The texts are joined with a single space and re-chunked by the
    ``EXTRACTION_MAX_TOKENS`` budget. Every chunk is analysed concurrently;
    if any call fails the whole extraction fails with that error.
    """

    full_text = " ".join(texts)
    max_tokens = current_app.config.get("EXTRACTION_MAX_TOKENS") or 12000
    try:
        chunks = chunk_text(full_text, int(max_tokens))
    except ValueError as exc:
        raise CharacterExtractionError(f"Invalid EXTRACTION_MAX_TOKENS setting: {exc}") from exc

    if not chunks:
        return CharacterExtractionResult(characters=[], chunk_count=0, discarded_chunks=0)

    config_entry = _load_prompt_entry(CHARACTER_EXTRACTION_KEY)
    generation_kwargs = _resolve_decoding_parameters(config_entry, temperature=temperature, top_p=top_p)
    generator = _get_text_generator()

    max_workers = current_app.config.get("EXTRACTION_MAX_WORKERS") or len(chunks)
    current_app.logger.info(
        "Analysing %d chunk(s) of %d characters with %d worker(s)",
        len(chunks),
        len(full_text),
        min(max_workers, len(chunks)),
    )

    def _analyze(chunk: str) -> Optional[str]:
        return analyze_chunk(
            chunk,
            generator=generator,
            prompt_template=config_entry["prompt_template"],
            generation_kwargs=generation_kwargs,
        )

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        raw_results = list(executor.map(_analyze, chunks))

    per_chunk: List[List[Character]] = []
    discarded = 0
    for index, raw in enumerate(raw_results):
        characters = parse_chunk_result(raw)
        if characters is None:
            current_app.logger.warning("Discarding unparsable result for chunk %d", index)
            discarded += 1
            characters = []
        per_chunk.append(characters)

    merged = merge_characters(per_chunk)
    return CharacterExtractionResult(
        characters=merged,
        chunk_count=len(chunks),
        discarded_chunks=discarded,
    )


def analyze_chunk(
    chunk: str,
    *,
    generator: Any,
    prompt_template: str,
    generation_kwargs: Dict[str, Any],
) -> Optional[str]:
    """Ask the model for the characters in ``chunk``; returns the raw reply.

    Runs on executor threads, so it must not touch the application context.
    """
    prompt = prompt_template.format(chunk=chunk)
    return generator.generate_response(prompt, **generation_kwargs)


def parse_chunk_result(raw_text: Optional[str]) -> Optional[List[Character]]:
    """Validate one model reply.

    Returns ``[]`` when the model produced no content and ``None`` when the
    content is not a ``{"characters": [...]}`` payload.
    """
    if raw_text is None:
        return []

    text = raw_text.strip()
    if not text:
        return []

    fence_match = re.search(r"```(?:json)?\s*(.*?)```", text, re.DOTALL)
    if fence_match:
        text = fence_match.group(1).strip()

    try:
        parsed: Any = json.loads(text)
    except json.JSONDecodeError:
        current_app.logger.warning("Unable to parse character extraction output as JSON: %s", text[:500])
        return None

    if isinstance(parsed, dict):
        items = parsed.get("characters")
        if items is None:
            return []
        if not isinstance(items, list):
            current_app.logger.warning("Character extraction JSON has a non-list 'characters' value: %s", parsed)
            return None
    elif isinstance(parsed, list):
        items = parsed
    else:
        current_app.logger.warning("Character extraction returned an unexpected payload: %s", parsed)
        return None

    characters: List[Character] = []
    for entry in items:
        if not isinstance(entry, dict):
            continue
        name = entry.get("name")
        if not isinstance(name, str) or not name.strip():
            continue
        characters.append(
            Character(
                name=name,
                description=_clean_field(entry.get("description")),
                personality=_clean_field(entry.get("personality")),
            )
        )
    return characters


def merge_characters(character_lists: Iterable[Iterable[Character]]) -> List[Character]:
    """Fold per-chunk lists into one list keyed by exact name.

    The first occurrence of a name seeds the entry. Later occurrences replace
    ``description`` and ``personality`` independently, but never with the
    "Not specified" placeholder. Output keeps first-seen order.
    """
    merged: Dict[str, Character] = {}
    for characters in character_lists:
        for character in characters:
            existing = merged.get(character.name)
            if existing is None:
                merged[character.name] = character
                continue
            merged[character.name] = replace(
                existing,
                description=(
                    character.description
                    if character.description != NOT_SPECIFIED
                    else existing.description
                ),
                personality=(
                    character.personality
                    if character.personality != NOT_SPECIFIED
                    else existing.personality
                ),
            )
    return list(merged.values())


def _clean_field(value: object) -> str:
    if isinstance(value, list):
        value = ", ".join(str(item).strip() for item in value if isinstance(item, str) and item.strip())
    if not isinstance(value, str):
        return NOT_SPECIFIED
    cleaned = value.strip()
    return cleaned or NOT_SPECIFIED
