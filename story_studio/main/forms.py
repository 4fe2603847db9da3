from flask_wtf import FlaskForm
from flask_wtf.file import FileAllowed, FileField
from wtforms import FloatField, HiddenField, IntegerField, SubmitField, TextAreaField
from wtforms.validators import InputRequired, NumberRange

from ..workflow import DEFAULT_CHUNK_OVERLAP, DEFAULT_CHUNK_SIZE, DEFAULT_TEMPERATURE, DEFAULT_TOP_P


class PipelineForm(FlaskForm):
    source_file = FileField(
        "Upload source text file",
        validators=[FileAllowed(["txt"], "Only .txt files can be uploaded.")],
    )
    document = TextAreaField("Source text", render_kw={"readonly": True, "rows": 12})
    chunk_size = IntegerField(
        "Chunk Size",
        default=DEFAULT_CHUNK_SIZE,
        validators=[InputRequired(), NumberRange(min=1, max=3000)],
        description=(
            "The maximum size of the chunks we are searching over, in tokens. The bigger the chunk, "
            "the more likely that the information you are looking for is in the chunk, but also the "
            "more likely that the chunk will contain irrelevant information."
        ),
    )
    chunk_overlap = IntegerField(
        "Chunk Overlap",
        default=DEFAULT_CHUNK_OVERLAP,
        validators=[InputRequired(), NumberRange(min=1, max=600)],
        description=(
            "The maximum amount of overlap between chunks, in tokens. Overlap helps ensure that "
            "sufficient contextual information is retained."
        ),
    )
    temperature = FloatField(
        "Temperature",
        default=DEFAULT_TEMPERATURE,
        validators=[InputRequired(), NumberRange(min=0, max=1)],
    )
    top_p = FloatField(
        "Top P",
        default=DEFAULT_TOP_P,
        validators=[InputRequired(), NumberRange(min=0, max=1)],
    )
    state = HiddenField()

    upload = SubmitField("Upload")
    build_index = SubmitField("Build index")
    extract = SubmitField("Extract Characters")
    generate_story = SubmitField("Generate Story")
