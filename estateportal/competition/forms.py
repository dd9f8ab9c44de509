"""Forms for the competition blueprint."""

from flask_wtf import FlaskForm
from wtforms import (
    BooleanField,
    DateField,
    IntegerField,
    SelectField,
    StringField,
    TextAreaField,
)
from wtforms.validators import DataRequired, NumberRange, Optional

from estateportal.core.constants import (
    COMPETITION_FORMATS,
    COMPETITION_STATUSES,
    MATCH_STATUSES,
    MATCH_TYPES,
    PARTICIPANT_TYPES,
)


def _choices(values):
    return [(v, v.replace("_", " ").title()) for v in values]


class CompetitionForm(FlaskForm):
    """Form for creating a competition."""

    event_id = StringField("Event", validators=[Optional()])
    sport_name = StringField("Sport", validators=[DataRequired()])
    format = SelectField(
        "Format", choices=_choices(COMPETITION_FORMATS), validators=[DataRequired()]
    )
    match_type = SelectField(
        "Match Type", choices=[(v, v) for v in MATCH_TYPES], validators=[DataRequired()]
    )
    participant_type = SelectField(
        "Participants",
        choices=_choices(PARTICIPANT_TYPES),
        validators=[DataRequired()],
    )
    rules = TextAreaField("Rules", validators=[Optional()])
    max_participants = IntegerField(
        "Maximum Participants", validators=[Optional(), NumberRange(min=2)]
    )
    registration_deadline = DateField("Registration Deadline", validators=[Optional()])


class StatusForm(FlaskForm):
    """Form for moving a competition to another status."""

    status = SelectField(
        "Status", choices=_choices(COMPETITION_STATUSES), validators=[DataRequired()]
    )


class TeamForm(FlaskForm):
    """Form for registering a team."""

    name = StringField("Team Name", validators=[DataRequired()])
    house_id = StringField("House", validators=[Optional()])
    logo_url = StringField("Logo URL", validators=[Optional()])
    seed_number = IntegerField("Seed", validators=[Optional(), NumberRange(min=1)])


class TeamMemberForm(FlaskForm):
    """Form for adding a resident to a team."""

    user_id = StringField("Resident", validators=[DataRequired()])
    is_captain = BooleanField("Captain")


class RefereeForm(FlaskForm):
    """Form for assigning a referee."""

    user_id = StringField("Resident", validators=[DataRequired()])


class MatchForm(FlaskForm):
    """Form for scheduling a match by hand."""

    round_number = IntegerField("Round", validators=[DataRequired(), NumberRange(min=1)])
    match_number = IntegerField(
        "Match Number", validators=[DataRequired(), NumberRange(min=1)]
    )
    group_name = StringField("Group", validators=[Optional()])
    team1_id = StringField("Team 1", validators=[Optional()])
    team2_id = StringField("Team 2", validators=[Optional()])
    match_datetime = StringField("Date & Time", validators=[Optional()])
    location = StringField("Location", validators=[Optional()])


class MatchResultForm(FlaskForm):
    """Form for recording a match result."""

    score1 = StringField("Score 1", validators=[Optional()])
    score2 = StringField("Score 2", validators=[Optional()])
    winner_id = StringField("Winner", validators=[Optional()])
    status = SelectField(
        "Status", choices=_choices(MATCH_STATUSES), validators=[DataRequired()]
    )
    match_datetime = StringField("Date & Time", validators=[Optional()])
    location = StringField("Location", validators=[Optional()])
    notes = TextAreaField("Notes", validators=[Optional()])
