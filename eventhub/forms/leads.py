"""Lead capture form."""

from __future__ import annotations

from flask_wtf import FlaskForm
from flask_wtf.file import FileAllowed, FileField, FileRequired
from wtforms import SelectField, StringField, TelField
from wtforms.validators import DataRequired, Length, Optional, Regexp

from eventhub.services.leads import DEFAULT_LEAD_STATUS, LEAD_PHONE_PATTERN, LEAD_STATUSES


class LeadForm(FlaskForm):
    school = StringField("School", validators=[DataRequired(), Length(max=255)])
    fraternity = StringField("Fraternity", validators=[DataRequired(), Length(max=255)])
    contact_phone = TelField(
        "Contact Phone",
        validators=[DataRequired(), Regexp(LEAD_PHONE_PATTERN, message="Invalid phone number format.")],
        render_kw={"placeholder": "(123) 456-7890"}
    )
    instagram_handle = StringField("Instagram", validators=[Optional(), Length(max=255)])
    contact_name = StringField("Contact Name", validators=[Optional(), Length(max=255)])
    status = SelectField(
        "Status",
        choices=[(status, status.replace('_', ' ').title()) for status in LEAD_STATUSES],
        default=DEFAULT_LEAD_STATUS,
    )


class LeadStatusForm(FlaskForm):
    status = SelectField(
        "Status",
        choices=[(status, status.replace('_', ' ').title()) for status in LEAD_STATUSES],
    )


class ImportLeadsForm(FlaskForm):
    file = FileField(
        "CSV File",
        validators=[FileRequired(), FileAllowed(['csv'], 'CSV files only!')],
    )
