"""Forms for the recurring series blueprint."""

from wtforms import (
    DateField,
    IntegerField,
    SelectField,
    StringField,
    ValidationError,
)
from wtforms.validators import DataRequired, NumberRange, Optional, Regexp

from matchpoint.core.constants import FREQUENCIES
from matchpoint.game.forms import ApiForm

from .models import TIME_OF_DAY_PATTERN


class SeriesForm(ApiForm):
    """Form for creating a recurring series."""

    groupId = StringField("Group", validators=[DataRequired()])
    frequency = SelectField(
        "Frequency",
        choices=[(f, f.capitalize()) for f in FREQUENCIES],
        validators=[DataRequired()],
    )
    dayOfWeek = IntegerField(
        "Day of Week",
        validators=[Optional(), NumberRange(min=0, max=6)],
    )
    startDate = DateField("Start Date", validators=[DataRequired()])
    endDate = DateField("End Date", validators=[Optional()])
    timeOfDay = StringField(
        "Time of Day",
        validators=[
            DataRequired(),
            Regexp(TIME_OF_DAY_PATTERN, message="Use HH:MM."),
        ],
    )
    timezone = StringField("Timezone", validators=[Optional()])

    def validate_endDate(self, field):  # noqa: N802
        """End date cannot be before the start date."""
        if field.data and self.startDate.data and field.data < self.startDate.data:
            raise ValidationError("End date cannot be before the start date.")


class GenerateInstancesForm(ApiForm):
    """Form for materializing the games of a series over a date range."""

    startDate = DateField("Start Date", validators=[DataRequired()])
    endDate = DateField("End Date", validators=[DataRequired()])

    def validate_endDate(self, field):  # noqa: N802
        """End date cannot be before the start date."""
        if field.data and self.startDate.data and field.data < self.startDate.data:
            raise ValidationError("Start date cannot be after the end date.")
