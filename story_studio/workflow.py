"""State machine behind the single-page upload → index → extract → story flow.

The page keeps no server-side session. The state travels with the form as a
hidden JSON blob and is rebuilt on every request with
:meth:`PipelineWorkflow.from_state`.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from .models import Character

DEFAULT_CHUNK_SIZE = 1024
DEFAULT_CHUNK_OVERLAP = 20
DEFAULT_TEMPERATURE = 0.1
DEFAULT_TOP_P = 1.0


class WorkflowStage(str, Enum):
    IDLE = "idle"
    INDEX_BUILDING = "index_building"
    INDEX_READY = "index_ready"
    EXTRACTING = "extracting"
    EXTRACTED = "extracted"
    STORY_GENERATING = "story_generating"
    DONE = "done"


# Where a request lands if the state it receives claims a step was running.
_RESUME_STAGES = {
    WorkflowStage.INDEX_BUILDING: WorkflowStage.IDLE,
    WorkflowStage.EXTRACTING: WorkflowStage.INDEX_READY,
    WorkflowStage.STORY_GENERATING: WorkflowStage.EXTRACTED,
}
_BUSY_STAGES = set(_RESUME_STAGES)


class WorkflowError(RuntimeError):
    """Raised when a step is requested out of order."""


IndexBuilder = Callable[[str, int, int], Sequence[Dict[str, Any]]]
CharacterExtractor = Callable[[List[Dict[str, Any]]], Sequence[Character]]
StoryWriter = Callable[[List[Character]], str]


@dataclass
class PipelineWorkflow:
    document: str = ""
    chunk_size: int = DEFAULT_CHUNK_SIZE
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP
    nodes: List[Dict[str, Any]] = field(default_factory=list)
    indexed_signature: Optional[str] = None
    characters: List[Character] = field(default_factory=list)
    story: Optional[str] = None
    stage: WorkflowStage = WorkflowStage.IDLE

    @property
    def signature(self) -> str:
        digest = hashlib.sha256()
        digest.update(f"{self.chunk_size}:{self.chunk_overlap}:".encode("utf-8"))
        digest.update(self.document.encode("utf-8"))
        return digest.hexdigest()

    @property
    def needs_new_index(self) -> bool:
        return self.indexed_signature != self.signature

    @property
    def busy(self) -> bool:
        return self.stage in _BUSY_STAGES

    @property
    def can_build_index(self) -> bool:
        return self.needs_new_index and not self.busy

    @property
    def can_extract(self) -> bool:
        return not self.needs_new_index and not self.busy

    @property
    def show_story_option(self) -> bool:
        return not self.needs_new_index and self.stage in (WorkflowStage.EXTRACTED, WorkflowStage.DONE)

    def load_source(self, document: str) -> None:
        """Replace the source text and drop the index, even for identical text."""
        if self.busy:
            raise WorkflowError("Another step is still running.")
        self.document = document
        self.nodes = []
        self.indexed_signature = None
        self.characters = []
        self.story = None
        self.stage = WorkflowStage.IDLE

    def build_index(self, builder: IndexBuilder) -> None:
        if self.busy:
            raise WorkflowError("Another step is still running.")
        if not self.needs_new_index:
            raise WorkflowError("The index is already up to date.")

        previous = self.stage
        self.stage = WorkflowStage.INDEX_BUILDING
        self.characters = []
        self.story = None
        try:
            nodes = builder(self.document, self.chunk_size, self.chunk_overlap)
        except Exception:
            self.stage = previous
            raise
        self.nodes = [dict(node) for node in nodes]
        self.indexed_signature = self.signature
        self.stage = WorkflowStage.INDEX_READY

    def extract(self, extractor: CharacterExtractor) -> None:
        if self.busy:
            raise WorkflowError("Another step is still running.")
        if self.needs_new_index:
            raise WorkflowError("Build the index before extracting characters.")

        previous = self.stage
        self.stage = WorkflowStage.EXTRACTING
        try:
            characters = extractor(list(self.nodes))
        except Exception:
            self.stage = previous
            raise
        self.characters = list(characters)
        self.story = None
        self.stage = WorkflowStage.EXTRACTED

    def write_story(self, writer: StoryWriter) -> None:
        if self.busy:
            raise WorkflowError("Another step is still running.")
        if not self.show_story_option:
            raise WorkflowError("Extract characters before generating a story.")

        previous = self.stage
        self.stage = WorkflowStage.STORY_GENERATING
        try:
            story = writer(list(self.characters))
        except Exception:
            self.stage = previous
            raise
        self.story = story
        self.stage = WorkflowStage.DONE

    def _invalidate_if_stale(self) -> None:
        if self.needs_new_index and not self.busy:
            self.stage = WorkflowStage.IDLE

    # ---------------- serialisation ----------------
    def to_state(self) -> str:
        return json.dumps(
            {
                "nodes": [{"text": node.get("text", "")} for node in self.nodes],
                "indexed_signature": self.indexed_signature,
                "characters": [character.to_dict() for character in self.characters],
                "stage": self.stage.value,
            }
        )

    @classmethod
    def from_state(
        cls,
        raw_state: Optional[str],
        *,
        document: str = "",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
    ) -> "PipelineWorkflow":
        """Rebuild a workflow from :meth:`to_state` output.

        Anything unreadable yields a fresh workflow for ``document``.
        """
        workflow = cls(document=document, chunk_size=chunk_size, chunk_overlap=chunk_overlap)
        try:
            data = json.loads(raw_state) if raw_state else {}
        except (TypeError, ValueError):
            data = {}
        if not isinstance(data, dict):
            data = {}

        nodes = data.get("nodes")
        if isinstance(nodes, list):
            workflow.nodes = [node for node in nodes if isinstance(node, dict)]
        signature = data.get("indexed_signature")
        if isinstance(signature, str):
            workflow.indexed_signature = signature
        characters = data.get("characters")
        if isinstance(characters, list):
            workflow.characters = [Character.from_payload(item) for item in characters if isinstance(item, dict)]
        try:
            stage = WorkflowStage(data.get("stage", WorkflowStage.IDLE.value))
        except ValueError:
            stage = WorkflowStage.IDLE
        workflow.stage = _RESUME_STAGES.get(stage, stage)
        workflow._invalidate_if_stale()
        return workflow


def format_characters_as_table(characters: Sequence[Character]) -> str:
    """Render ``characters`` as a Markdown table."""
    if not characters:
        return "No characters found"

    headers = ["Name", "Description", "Personality"]
    rows = [
        f"| {character.name or 'N/A'} | {character.description or 'N/A'} | {character.personality or 'N/A'} |"
        for character in characters
    ]
    header_row = f"| {' | '.join(headers)} |"
    divider = f"| {' | '.join('---' for _ in headers)} |"
    return "\n".join([header_row, divider, *rows])
