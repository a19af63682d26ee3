"""Forms for the game blueprint.

The API takes JSON bodies; routes pass them in through ``json_formdata``.
"""

from flask_wtf import FlaskForm  # type: ignore
from wtforms import BooleanField, IntegerField, SelectField, StringField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional

from matchpoint.core.constants import GAME_STATUSES


class ApiForm(FlaskForm):
    """Base form for token-authenticated JSON endpoints."""

    class Meta:
        csrf = False


class RegistrationForm(ApiForm):
    """Form for registering for a game."""

    userId = StringField("User", validators=[Optional()])
    isGuest = BooleanField("Guest", default=False)


class CapacityForm(ApiForm):
    """Form for changing a game's cap; 0 means unlimited."""

    maxParticipants = IntegerField(
        "Max Participants",
        validators=[
            InputRequired(),
            NumberRange(min=0, message="Cannot be negative."),
        ],
    )


class GameForm(ApiForm):
    """Form for creating a one-off game."""

    groupId = StringField("Group", validators=[DataRequired()])
    title = StringField("Title", validators=[DataRequired(), Length(max=100)])
    description = StringField("Description", validators=[Optional()])
    location = StringField("Location", validators=[Optional()])
    scheduledTime = StringField("Scheduled Time", validators=[DataRequired()])
    maxParticipants = IntegerField(
        "Max Participants",
        validators=[Optional(), NumberRange(min=0, message="Cannot be negative.")],
    )


class GameStatusForm(ApiForm):
    """Form for moving a game to another status."""

    status = SelectField(
        "Status",
        choices=[(s, s.replace("_", " ").title()) for s in GAME_STATUSES],
        validators=[DataRequired()],
    )
