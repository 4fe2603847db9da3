from __future__ import annotations

from pathlib import Path
from typing import Optional

from flask import current_app, flash, render_template

from ..services.character_extraction import extract_characters
from ..services.indexing import split_and_embed
from ..services.story_generation import generate_story
from ..workflow import (
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_SIZE,
    PipelineWorkflow,
    WorkflowError,
    format_characters_as_table,
)
from . import bp
from .forms import PipelineForm


@bp.route("/", methods=["GET", "POST"])
def index():
    form = PipelineForm(prefix="pipeline")
    output = ""

    if form.is_submitted():
        workflow = PipelineWorkflow.from_state(
            form.state.data,
            document=form.document.data or "",
            chunk_size=form.chunk_size.data or DEFAULT_CHUNK_SIZE,
            chunk_overlap=form.chunk_overlap.data or DEFAULT_CHUNK_OVERLAP,
        )
    else:
        workflow = PipelineWorkflow(document=_sample_document())

    if form.validate_on_submit():
        temperature = form.temperature.data
        top_p = form.top_p.data
        try:
            if form.upload.data:
                document = _read_upload(form)
                if document is not None:
                    workflow.load_source(document)
            elif form.build_index.data:
                workflow.build_index(
                    lambda text, size, overlap: [
                        {"text": node.text} for node in split_and_embed(text, size, overlap)
                    ]
                )
                output = "Index built!"
            elif form.extract.data:
                workflow.extract(
                    lambda nodes: extract_characters(
                        [node.get("text", "") for node in nodes],
                        temperature=temperature,
                        top_p=top_p,
                    ).characters
                )
                output = format_characters_as_table(workflow.characters)
            elif form.generate_story.data:
                workflow.write_story(
                    lambda characters: generate_story(
                        characters,
                        temperature=temperature,
                        top_p=top_p,
                    ).story
                )
                output = workflow.story or ""
        except WorkflowError as exc:
            flash(str(exc), "warning")
        except Exception as exc:
            current_app.logger.exception("Pipeline step failed")
            output = str(exc) or "An unknown error occurred"
    elif form.is_submitted():
        for field_errors in form.errors.values():
            for error in field_errors:
                flash(error, "danger")

    form.document.data = workflow.document
    form.state.data = workflow.to_state()
    return render_template("main/index.html", form=form, workflow=workflow, output=output)


def _sample_document() -> str:
    """Text shown before anything is uploaded; empty when no sample is configured."""
    path = current_app.config.get("SAMPLE_DOCUMENT_PATH")
    if not path:
        return ""
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError:
        current_app.logger.warning("Sample document %s could not be read", path)
        return ""


def _read_upload(form: PipelineForm) -> Optional[str]:
    upload = form.source_file.data
    if upload is None or not getattr(upload, "filename", ""):
        flash("Choose a .txt file to upload.", "warning")
        return None
    if upload.mimetype != "text/plain":
        current_app.logger.info("Rejected upload %s of type %s", upload.filename, upload.mimetype)
        flash(f"{upload.mimetype} parsing not implemented", "danger")
        return None
    return upload.read().decode("utf-8", errors="replace")
