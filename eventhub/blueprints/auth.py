"""Authentication blueprint: sign-in and sign-out."""

from __future__ import annotations

from datetime import datetime, timezone

from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_user, logout_user
from flask_wtf import FlaskForm
from sqlalchemy import func
from wtforms import BooleanField, PasswordField, StringField
from wtforms.validators import DataRequired, Email

from eventhub.extensions import db, limiter
from eventhub.models import User
from eventhub.services.audit import log_security_event


class LoginForm(FlaskForm):
    email = StringField("Email", validators=[DataRequired(), Email()])
    password = PasswordField("Password", validators=[DataRequired()])
    remember_me = BooleanField("Remember me")


auth_bp = Blueprint("auth", __name__)


def _safe_next(target: str | None) -> str | None:
    if target and target.startswith('/') and not target.startswith('//'):
        return target
    return None


@auth_bp.route("/login", methods=["GET", "POST"])
@limiter.limit("5 per minute", methods=["POST"])
def login():
    if current_user.is_authenticated:
        return redirect(_safe_next(request.args.get("next")) or url_for("client.dashboard"))

    form = LoginForm()
    if form.validate_on_submit():
        email = form.email.data.strip().lower()
        user = db.session.execute(
            db.select(User).where(func.lower(User.email) == email)
        ).scalar_one_or_none()

        if user and not user.is_active:
            flash("Account is inactive. Contact your administrator.", "error")
            return render_template("login.html", form=form)

        if user and user.check_password(form.password.data):
            user.last_login_at = datetime.now(timezone.utc)
            user.last_login_ip = request.remote_addr
            db.session.commit()

            log_security_event(user, "login_success", "User logged in successfully")
            login_user(user, remember=form.remember_me.data)
            return redirect(_safe_next(request.args.get("next")) or url_for("client.dashboard"))

        if user:
            log_security_event(user, "login_failed", "Invalid password")
        current_app.logger.info(f"Failed sign-in for {email}")
        flash("Invalid email or password", "error")

    return render_template("login.html", form=form)


@auth_bp.route("/logout")
def logout():
    if current_user.is_authenticated:
        log_security_event(current_user._get_current_object(), "logout")
    logout_user()
    flash("Signed out successfully!", "success")
    return redirect(url_for("auth.login"))
