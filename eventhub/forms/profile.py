"""Profile self-service form."""

from __future__ import annotations

from flask_wtf import FlaskForm
from flask_wtf.file import FileAllowed, FileField
from wtforms import StringField
from wtforms.validators import Length, Optional

from eventhub.services.profiles import AVATAR_EXTENSIONS


class ProfileForm(FlaskForm):
    first_name = StringField("First Name", validators=[Optional(), Length(max=120)])
    last_name = StringField("Last Name", validators=[Optional(), Length(max=120)])
    school = StringField("School", validators=[Optional(), Length(max=255)])
    fraternity = StringField("Fraternity", validators=[Optional(), Length(max=255)])
    avatar = FileField(
        "Avatar",
        validators=[Optional(), FileAllowed(sorted(AVATAR_EXTENSIONS), 'Images only!')],
    )
