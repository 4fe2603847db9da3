import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from story_studio.models import Character
from story_studio.workflow import (
    PipelineWorkflow,
    WorkflowError,
    WorkflowStage,
    format_characters_as_table,
)


def _builder(document, chunk_size, chunk_overlap):
    return [{"text": document}]


def _indexed_workflow(document="Alice is brave. Bob is cunning."):
    workflow = PipelineWorkflow()
    workflow.load_source(document)
    workflow.build_index(_builder)
    return workflow


def test_full_happy_path_passes_through_every_stage():
    workflow = PipelineWorkflow()
    seen = []

    assert workflow.stage is WorkflowStage.IDLE
    workflow.load_source("Alice is brave.")
    assert workflow.needs_new_index

    def builder(document, chunk_size, chunk_overlap):
        seen.append(workflow.stage)
        return [{"text": document}]

    def extractor(nodes):
        seen.append(workflow.stage)
        return [Character(name="Alice", personality="Brave")]

    def writer(characters):
        seen.append(workflow.stage)
        return "Alice flew home."

    workflow.build_index(builder)
    assert workflow.stage is WorkflowStage.INDEX_READY
    assert not workflow.needs_new_index
    assert not workflow.show_story_option

    workflow.extract(extractor)
    assert workflow.stage is WorkflowStage.EXTRACTED
    assert workflow.show_story_option

    workflow.write_story(writer)
    assert workflow.stage is WorkflowStage.DONE
    assert workflow.story == "Alice flew home."
    assert seen == [
        WorkflowStage.INDEX_BUILDING,
        WorkflowStage.EXTRACTING,
        WorkflowStage.STORY_GENERATING,
    ]


def test_extraction_requires_a_fresh_index():
    workflow = PipelineWorkflow()
    workflow.load_source("Alice is brave.")

    with pytest.raises(WorkflowError):
        workflow.extract(lambda nodes: [])


def test_new_upload_forces_rebuild():
    workflow = _indexed_workflow()
    workflow.extract(lambda nodes: [Character(name="Alice")])

    workflow.load_source("A different text.")

    assert workflow.needs_new_index
    assert workflow.stage is WorkflowStage.IDLE
    assert not workflow.show_story_option
    assert workflow.characters == []
    with pytest.raises(WorkflowError):
        workflow.extract(lambda nodes: [])


def test_reupload_of_same_text_hides_story_option():
    workflow = _indexed_workflow()
    workflow.extract(lambda nodes: [Character(name="Alice")])
    workflow.write_story(lambda characters: "Alice flew home.")
    received = []

    workflow.load_source(workflow.document)

    assert workflow.stage is WorkflowStage.IDLE
    assert workflow.needs_new_index
    assert not workflow.show_story_option
    assert workflow.nodes == []
    assert workflow.story is None
    with pytest.raises(WorkflowError):
        workflow.write_story(received.append)
    assert received == []


def test_chunk_setting_edit_forces_rebuild():
    workflow = _indexed_workflow()

    restored = PipelineWorkflow.from_state(
        workflow.to_state(),
        document=workflow.document,
        chunk_size=workflow.chunk_size + 1,
        chunk_overlap=workflow.chunk_overlap,
    )

    assert restored.needs_new_index
    assert restored.can_build_index
    assert not restored.can_extract


def test_unchanged_settings_keep_the_index():
    workflow = _indexed_workflow()

    restored = PipelineWorkflow.from_state(
        workflow.to_state(),
        document=workflow.document,
        chunk_size=workflow.chunk_size,
        chunk_overlap=workflow.chunk_overlap,
    )

    assert not restored.needs_new_index
    assert restored.stage is WorkflowStage.INDEX_READY


def test_build_index_rejected_when_up_to_date():
    workflow = _indexed_workflow()

    with pytest.raises(WorkflowError):
        workflow.build_index(_builder)


def test_story_requires_extraction():
    workflow = _indexed_workflow()

    with pytest.raises(WorkflowError):
        workflow.write_story(lambda characters: "story")


def test_failed_step_rolls_back_stage():
    workflow = _indexed_workflow()

    def failing_extractor(nodes):
        raise RuntimeError("upstream failure")

    with pytest.raises(RuntimeError):
        workflow.extract(failing_extractor)

    assert workflow.stage is WorkflowStage.INDEX_READY
    assert workflow.can_extract


def test_failed_index_build_keeps_index_stale():
    workflow = PipelineWorkflow()
    workflow.load_source("Alice is brave.")

    def failing_builder(document, chunk_size, chunk_overlap):
        raise RuntimeError("embedding service down")

    with pytest.raises(RuntimeError):
        workflow.build_index(failing_builder)

    assert workflow.stage is WorkflowStage.IDLE
    assert workflow.needs_new_index


def test_state_round_trip():
    workflow = _indexed_workflow()
    workflow.extract(lambda nodes: [Character(name="Alice", personality="Brave")])

    restored = PipelineWorkflow.from_state(workflow.to_state(), document=workflow.document)

    assert restored.stage is WorkflowStage.EXTRACTED
    assert restored.nodes == [{"text": workflow.document}]
    assert restored.characters == workflow.characters
    assert restored.show_story_option


def test_state_with_changed_document_is_stale():
    workflow = _indexed_workflow()

    restored = PipelineWorkflow.from_state(workflow.to_state(), document="edited text")

    assert restored.needs_new_index
    assert restored.stage is WorkflowStage.IDLE


@pytest.mark.parametrize("raw", [None, "", "not json", "[1, 2]", '{"stage": "bogus"}'])
def test_unreadable_state_starts_fresh(raw):
    workflow = PipelineWorkflow.from_state(raw, document="Alice")

    assert workflow.stage is WorkflowStage.IDLE
    assert workflow.needs_new_index
    assert workflow.characters == []


def test_busy_stage_is_not_resumed():
    workflow = _indexed_workflow()
    state = workflow.to_state().replace('"index_ready"', '"extracting"')

    restored = PipelineWorkflow.from_state(state, document=workflow.document)

    assert restored.stage is WorkflowStage.INDEX_READY
    assert not restored.busy


def test_format_characters_as_table():
    table = format_characters_as_table(
        [
            Character(name="Alice", description="A pilot", personality="Brave"),
            Character(name="", description="", personality="Quiet"),
        ]
    )

    assert table.splitlines() == [
        "| Name | Description | Personality |",
        "| --- | --- | --- |",
        "| Alice | A pilot | Brave |",
        "| N/A | N/A | Quiet |",
    ]


def test_format_characters_as_table_when_empty():
    assert format_characters_as_table([]) == "No characters found"
