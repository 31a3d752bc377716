from flask_wtf import FlaskForm
from wtforms import SelectField, StringField, SubmitField, TextAreaField
from wtforms.validators import DataRequired, Length, Optional

from ..models import POST_DESCRIPTION_MAX_LENGTH, POST_TITLE_MAX_LENGTH


class PostForm(FlaskForm):
    title = StringField(
        "Title",
        validators=[DataRequired(message="can't be blank"), Length(max=POST_TITLE_MAX_LENGTH)],
        render_kw={"placeholder": "Post title"},
    )
    description = TextAreaField(
        "Description",
        validators=[DataRequired(message="can't be blank"), Length(max=POST_DESCRIPTION_MAX_LENGTH)],
        render_kw={"placeholder": "What is this post about?", "rows": 6},
    )
    tag_names = StringField(
        "Tags",
        validators=[Optional(), Length(max=1000)],
        render_kw={"placeholder": "Comma-separated tags, e.g. Ruby, Rails"},
    )
    submit = SubmitField("Save")

    def add_errors(self, errors):
        """Attach service-level validation messages to the matching fields."""
        for field_name, messages in errors.items():
            field = getattr(self, field_name, None)
            if field is None:
                self.form_errors.extend(messages)
                continue
            field.errors = list(field.errors) + list(messages)


class PostSearchForm(FlaskForm):
    class Meta:
        csrf = False          # GET form, no mutation

    q = StringField("Keyword")
    tag = SelectField("Tag", choices=[("", "All Tags")], coerce=str, validate_choice=False)
