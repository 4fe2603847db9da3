"""Shared access to the model client, prompt entries and decoding parameters."""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional

from flask import current_app

from ..prompts import PROMPTS

PROMPT_CACHE_KEY = "_PROMPT_CONFIG_CACHE"
GENERATOR_CACHE_KEY = "_TEXT_GENERATOR_INSTANCE"


class GeneratorConfigurationError(RuntimeError):
    """Raised when the model client or its prompts are misconfigured."""


def load_prompt_entry(key: str) -> Dict[str, Any]:
    config = _load_prompt_config()
    try:
        entry = config[key]
    except KeyError as exc:
        raise GeneratorConfigurationError(f"Prompt configuration is missing the '{key}' entry.") from exc
    if not isinstance(entry, dict):
        raise GeneratorConfigurationError(f"Prompt configuration entry '{key}' must be a dictionary.")
    if not entry.get("prompt_template"):
        raise GeneratorConfigurationError(f"Prompt configuration entry '{key}' is missing the template text.")
    return entry


def _load_prompt_config() -> Dict[str, Any]:
    app = current_app
    cached = app.config.get(PROMPT_CACHE_KEY)
    if isinstance(cached, dict):
        return cached

    data: Dict[str, Any] = copy.deepcopy(PROMPTS)

    config_path = app.config.get("PROMPT_CONFIG_PATH")
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise GeneratorConfigurationError(f"Prompt configuration file not found at: {path}")

        with path.open("r", encoding="utf-8") as fh:
            try:
                overrides = json.load(fh)
            except json.JSONDecodeError as exc:
                raise GeneratorConfigurationError(f"Unable to parse prompt configuration: {exc.msg}") from exc

        if not isinstance(overrides, dict):
            raise GeneratorConfigurationError("Prompt configuration must be a JSON object.")

        for key, override in overrides.items():
            base = data.get(key)
            if isinstance(base, dict) and isinstance(override, dict):
                merged = {**base, **override}
                merged["parameters"] = {
                    **(base.get("parameters") or {}),
                    **(override.get("parameters") or {}),
                }
                data[key] = merged
            else:
                data[key] = override
        app.logger.info("Loaded prompt overrides for %s from %s", sorted(overrides), path)

    app.config[PROMPT_CACHE_KEY] = data
    return data


_GENERATION_PARAMETER_KEYS = {
    "max_new_tokens",
    "temperature",
    "top_p",
    "response_format",
}


def extract_generation_parameters(parameters: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Filter a raw parameters dictionary to generation kwargs supported by the client."""

    if not isinstance(parameters, dict):
        return {}

    kwargs: Dict[str, Any] = {}
    for key in _GENERATION_PARAMETER_KEYS:
        if key in parameters and parameters[key] is not None:
            kwargs[key] = parameters[key]
    return kwargs


def resolve_decoding_parameters(
    config_entry: Dict[str, Any],
    *,
    temperature: Optional[float] = None,
    top_p: Optional[float] = None,
) -> Dict[str, Any]:
    """Merge request-level decoding parameters over the entry defaults.

    A falsy request value (``None`` or ``0``) keeps the configured default.
    """

    kwargs = extract_generation_parameters(config_entry.get("parameters"))
    if temperature:
        kwargs["temperature"] = temperature
    if top_p:
        kwargs["top_p"] = top_p
    return kwargs


def get_text_generator() -> Any:
    app = current_app
    cached = app.config.get(GENERATOR_CACHE_KEY)
    if cached is not None:
        return cached

    api_key = app.config.get("OPENAI_API_KEY")
    if not api_key:
        raise GeneratorConfigurationError("OPENAI_API_KEY is not configured.")

    from api_handler import OpenAIChatGenerator

    generator = OpenAIChatGenerator(
        app.config.get("OPENAI_MODEL") or "gpt-3.5-turbo",
        api_key,
        embedding_model=app.config.get("OPENAI_EMBEDDING_MODEL") or "text-embedding-ada-002",
        timeout=app.config.get("OPENAI_TIMEOUT"),
    )
    model_name, redacted_key = generator.signature()
    app.logger.info("Initialised OpenAI client for model %s (key %s)", model_name, redacted_key)
    app.config[GENERATOR_CACHE_KEY] = generator
    return generator
