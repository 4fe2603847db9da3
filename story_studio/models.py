"""Request-scoped data types shared by the pipeline stages."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

NOT_SPECIFIED = "Not specified"


@dataclass(frozen=True)
class Character:
    """A character mentioned in the source text.

    ``name`` is the identity and is compared as-is: no trimming and no case
    folding, so "Bob" and "bob" are two different characters.
    """

    name: str
    description: str = NOT_SPECIFIED
    personality: str = NOT_SPECIFIED

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "Character":
        return cls(
            name=_text_or_placeholder(data.get("name")),
            description=_text_or_placeholder(data.get("description")),
            personality=_text_or_placeholder(data.get("personality")),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "description": self.description,
            "personality": self.personality,
        }


@dataclass
class NodeWithEmbedding:
    text: str
    embedding: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "embedding": list(self.embedding)}


def _text_or_placeholder(value: Any) -> str:
    if isinstance(value, str) and value:
        return value
    return NOT_SPECIFIED
