from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from flask import current_app

from ..models import Character
from ..prompts import STORY_GENERATION_KEY
from .generator import (
    get_text_generator as _get_text_generator,
    load_prompt_entry as _load_prompt_entry,
    resolve_decoding_parameters as _resolve_decoding_parameters,
)

DEFAULT_CHARACTER_TEMPLATE = "- {name}:\n   Description: {description}\n   Personality: {personality}"


class StoryGenerationError(RuntimeError):
    """Raised when a story cannot be generated."""


@dataclass
class StoryGenerationResult:
    story: str
    prompt: str


def build_story_prompt(
    characters: Sequence[Character],
    prompt_template: str,
    *,
    character_template: str = DEFAULT_CHARACTER_TEMPLATE,
) -> str:
    """Render the story prompt with one block per character."""

    blocks = [
        character_template.format(
            name=character.name,
            description=character.description,
            personality=character.personality,
        )
        for character in characters
    ]
    return prompt_template.format(characters="\n\n".join(blocks))


def generate_story(
    characters: Sequence[Character],
    *,
    temperature: Optional[float] = None,
    top_p: Optional[float] = None,
) -> StoryGenerationResult:
    """Write a short story featuring ``characters``.

    An empty roster is not rejected; the model is still asked for a story.
    """

    config_entry = _load_prompt_entry(STORY_GENERATION_KEY)
    final_prompt = build_story_prompt(
        characters,
        config_entry["prompt_template"],
        character_template=config_entry.get("character_template") or DEFAULT_CHARACTER_TEMPLATE,
    )

    generation_kwargs = _resolve_decoding_parameters(config_entry, temperature=temperature, top_p=top_p)
    generator = _get_text_generator()

    current_app.logger.info("Generating story for %d character(s)", len(characters))
    story = generator.generate_response(final_prompt, **generation_kwargs)
    if not story:
        raise StoryGenerationError("No story generated")

    return StoryGenerationResult(story=story, prompt=final_prompt)
