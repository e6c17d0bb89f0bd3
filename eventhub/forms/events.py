"""Event create/edit forms."""

from __future__ import annotations

from flask_wtf import FlaskForm
from wtforms import BooleanField, DateField, DecimalField, SelectField, StringField, TelField
from wtforms.validators import DataRequired, InputRequired, Length, NumberRange, Optional, Regexp, ValidationError

from eventhub.services.events import PHONE_PATTERN


class EventForm(FlaskForm):
    """Form for creating or editing an event."""

    event_name = StringField(
        "Event Name",
        validators=[Optional(), Length(max=255)],
        render_kw={"placeholder": "Spring Formal"}
    )

    event_date = DateField(
        "Event Date",
        validators=[DataRequired(message="Event date is required.")],
    )

    budget = DecimalField(
        "Production Budget",
        places=2,
        validators=[
            InputRequired(message="Production budget must be a number."),
            NumberRange(min=0, message="Production budget must be a positive number."),
        ],
        render_kw={"placeholder": "5000"}
    )

    contact_phone = TelField(
        "Contact Phone",
        validators=[
            DataRequired(message="Invalid phone number format."),
            Regexp(PHONE_PATTERN, message="Invalid phone number format."),
        ],
        render_kw={"placeholder": "+15551234567"}
    )

    hiring_artist = BooleanField("Hiring an artist?")

    artist_name = StringField(
        "Artist Name",
        validators=[Length(max=255)],
    )

    chapter_id = SelectField("Chapter", choices=[], validators=[Optional()], validate_choice=False)

    def validate_artist_name(self, field):
        if self.hiring_artist.data and not (field.data or '').strip():
            raise ValidationError("Artist name is required if you are hiring an artist.")

    def to_fields(self) -> dict:
        """Field values in the shape the event service accepts."""
        return {
            'event_name': self.event_name.data,
            'event_date': self.event_date.data,
            'budget': float(self.budget.data) if self.budget.data is not None else None,
            'contact_phone': self.contact_phone.data,
            'hiring_artist': bool(self.hiring_artist.data),
            'artist_name': self.artist_name.data,
        }
