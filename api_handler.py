# api_handler.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import openai

LOGGER = logging.getLogger(__name__)


class OpenAIChatGenerator:
    """
    Thin wrapper over the OpenAI client used by every pipeline stage.

    - Chat Completions for character extraction (JSON mode) and story writing
    - Embeddings for the split-and-embed indexing step

    Compatible with OpenAI Python SDK >= 1.0.
    """

    def __init__(
        self,
        model_name: str,
        api_key: str,
        *,
        embedding_model: str = "text-embedding-ada-002",
        default_max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.model_name = (model_name or "").strip()
        self.api_key = (api_key or "").strip()
        self.embedding_model = (embedding_model or "").strip()
        self.default_max_tokens = default_max_tokens
        if not self.model_name:
            raise ValueError("model_name must be a non-empty string.")
        if not self.api_key:
            raise ValueError("An OpenAI API key is required.")

        client_kwargs: Dict[str, Any] = {"api_key": self.api_key}
        if timeout is not None:
            client_kwargs["timeout"] = float(timeout)
        self._client = openai.OpenAI(**client_kwargs)

    # ---------------- public API ----------------
    def generate_response(
        self,
        prompt: str,
        *,
        max_new_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        response_format: Optional[str] = None,
    ) -> Optional[str]:
        """Send ``prompt`` as a single user message.

        Returns the message content, or ``None`` when the service answered
        without any text.
        """
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValueError("prompt must be a non-empty string.")

        max_tokens = max_new_tokens if max_new_tokens is not None else self.default_max_tokens
        if max_tokens is not None and int(max_tokens) <= 0:
            raise ValueError("max_new_tokens must be positive.")

        kwargs: Dict[str, Any] = {
            "model": self.model_name,
            "messages": [{"role": "user", "content": prompt}],
        }
        if max_tokens is not None:
            kwargs["max_tokens"] = int(max_tokens)
        if temperature is not None:
            kwargs["temperature"] = float(temperature)
        if top_p is not None:
            kwargs["top_p"] = float(top_p)
        if response_format:
            kwargs["response_format"] = {"type": response_format}

        LOGGER.debug(
            "Chat completion request: model=%s prompt_chars=%d max_tokens=%s format=%s",
            self.model_name,
            len(prompt),
            max_tokens,
            response_format or "text",
        )
        resp = self._client.chat.completions.create(**kwargs)
        text = self._extract_text_from_chat(resp)
        if not text:
            LOGGER.debug("Chat completion returned no text: %s", self._shorten_debug(str(resp)))
            return None
        return text

    def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        """Embed ``texts`` in one request, preserving input order."""
        items = list(texts)
        if not items:
            return []
        if not self.embedding_model:
            raise RuntimeError("No embedding model configured.")

        resp = self._client.embeddings.create(model=self.embedding_model, input=items)
        data = sorted(getattr(resp, "data", []) or [], key=lambda item: getattr(item, "index", 0))
        vectors = [list(getattr(item, "embedding", []) or []) for item in data]
        if len(vectors) != len(items):
            snippet = self._shorten_debug(str(resp))
            raise RuntimeError(
                f"Embedding response had {len(vectors)} vectors for {len(items)} inputs. "
                f"Raw response (truncated): {snippet}"
            )
        return vectors

    def signature(self) -> Tuple[str, str]:
        # Never return raw secrets
        redacted = (self.api_key[:4] + "…" + self.api_key[-4:]) if self.api_key else ""
        return (self.model_name, redacted)

    # ---------------- extractors ----------------
    def _extract_text_from_chat(self, resp: Any) -> str:
        choices = getattr(resp, "choices", []) or []
        if not choices:
            return ""
        first = choices[0]
        msg = getattr(first, "message", None)
        if isinstance(msg, dict):
            content = msg.get("content")
        else:
            content = getattr(msg, "content", None)
        if isinstance(content, list):
            parts: List[str] = []
            for p in content:
                if isinstance(p, dict) and p.get("type") == "text":
                    parts.append(str(p.get("text") or ""))
            return "\n".join([p for p in parts if p])
        return str(content or "")

    @staticmethod
    def _shorten_debug(s: str, limit: int = 1200) -> str:
        s = s.replace("\n", " ")
        return (s[:limit] + "…") if len(s) > limit else s
