"""Prompt templates and default generation parameters for the model calls.

Each entry mirrors the shape accepted in ``PROMPT_CONFIG_PATH`` overrides: a
``prompt_template`` formatted with :meth:`str.format` and a ``parameters``
mapping of generation defaults.
"""

from __future__ import annotations

CHARACTER_EXTRACTION_KEY = "character_extraction"
STORY_GENERATION_KEY = "story_generation"

PROMPTS = {
    CHARACTER_EXTRACTION_KEY: {
        "prompt_template": (
            "Analyze the following text and extract information about all characters mentioned.\n"
            "For each character, provide:\n"
            "1. Name\n"
            "2. Physical description and/or role (if available)\n"
            "3. Personality traits and characteristics (if available)\n\n"
            "Format the output as a JSON object with the following structure:\n"
            "{{\n"
            '  "characters": [\n'
            "    {{\n"
            '      "name": "character name",\n'
            '      "description": "physical description or role",\n'
            '      "personality": "personality traits"\n'
            "    }}\n"
            "  ]\n"
            "}}\n\n"
            'If any field is not available in the text, use "Not specified" as the value.\n'
            "Only include characters that are actually mentioned in the text.\n\n"
            "Text to analyze:\n"
            "{chunk}\n"
        ),
        "parameters": {
            "temperature": 0.1,
            "top_p": 1,
            "response_format": "json_object",
        },
    },
    STORY_GENERATION_KEY: {
        "prompt_template": (
            "Create an engaging short story using the following characters. Make sure to\n"
            "incorporate their descriptions and personalities naturally into the narrative.\n\n"
            "Characters:\n"
            "{characters}\n\n"
            "Please write a creative story (around 500 words) that:\n"
            "1. Introduces the characters naturally\n"
            "2. Creates interesting interactions between them\n"
            "3. Builds a coherent plot with a beginning, middle, and end\n"
            "4. Stays true to each character's described personality\n"
            "5. Includes some dialogue to show character dynamics\n\n"
            "Story:\n"
        ),
        "character_template": (
            "- {name}:\n"
            "   Description: {description}\n"
            "   Personality: {personality}"
        ),
        "parameters": {
            # Higher temperature for more creative stories.
            "temperature": 0.7,
            "top_p": 1,
            "max_new_tokens": 1000,
        },
    },
}
