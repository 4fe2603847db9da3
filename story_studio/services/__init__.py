"""Service layer for the extraction and storytelling pipeline."""

from __future__ import annotations

from .character_extraction import (  # noqa: F401
    CharacterExtractionError,
    CharacterExtractionResult,
    extract_characters,
    merge_characters,
)
from .generator import GeneratorConfigurationError  # noqa: F401
from .indexing import IndexingError, split_and_embed  # noqa: F401
from .story_generation import StoryGenerationError, StoryGenerationResult, generate_story  # noqa: F401

__all__ = [
    "CharacterExtractionError",
    "CharacterExtractionResult",
    "GeneratorConfigurationError",
    "IndexingError",
    "StoryGenerationError",
    "StoryGenerationResult",
    "extract_characters",
    "generate_story",
    "merge_characters",
    "split_and_embed",
]
