"""Client-facing pages: dashboard, event detail, documents, media, profile."""

from __future__ import annotations

import io
from datetime import date

from flask import Blueprint, abort, flash, redirect, render_template, request, send_file, url_for
from flask_login import current_user

from eventhub.auth import login_required_with_message
from eventhub.errors import EventHubError, RemoteError
from eventhub.extensions import db
from eventhub.forms.events import EventForm
from eventhub.forms.profile import ProfileForm
from eventhub.models import DocumentSlot, Event, Media
from eventhub.services.documents import (
    delete_document,
    document_cards,
    document_download_url,
    upload_document,
)
from eventhub.services.events import create_event, event_checklist, get_event, list_events, update_event
from eventhub.services.media_library import delete_media, download_media, list_media, upload_media
from eventhub.services.profiles import get_profile, update_profile, upload_avatar
from eventhub.services.session import get_session_context

client_bp = Blueprint('client', __name__)


def _back(default: str) -> str:
    target = request.form.get('next') or request.args.get('next')
    if target and target.startswith('/') and not target.startswith('//'):
        return target
    return default


def _load_event(event_id: str) -> Event:
    ctx = get_session_context()
    try:
        return get_event(event_id, ctx.identity_id, ctx.capability)
    except RemoteError as e:
        if e.status_code == 404:
            abort(404)
        raise
    except EventHubError as e:
        if e.status_code == 403:
            abort(403)
        raise


def _flash_form_errors(form) -> None:
    for errors in form.errors.values():
        for error in errors:
            flash(error, 'error')


@client_bp.route('/')
def index():
    if current_user.is_authenticated:
        return redirect(url_for('client.dashboard'))
    return redirect(url_for('auth.login'))


@client_bp.route('/dashboard')
@login_required_with_message
def dashboard():
    """Upcoming and past events for the signed-in client."""
    ctx = get_session_context()
    try:
        partition = list_events(ctx.identity_id, date.today())
    except EventHubError as e:
        flash(f"Failed to load events: {e.message}", 'error')
        partition = None
    return render_template('dashboard.html', partition=partition, form=EventForm())


@client_bp.route('/events', methods=['POST'])
@login_required_with_message
def create():
    ctx = get_session_context()
    form = EventForm()
    if not form.validate_on_submit():
        _flash_form_errors(form)
        return redirect(url_for('client.dashboard'))

    try:
        event = create_event(ctx.identity_id, **form.to_fields())
    except EventHubError as e:
        flash(f"Failed to create event: {e.message}", 'error')
        return redirect(url_for('client.dashboard'))

    flash('Event created successfully!', 'success')
    return redirect(url_for('client.event_detail', event_id=event.id))


@client_bp.route('/events/<event_id>')
@login_required_with_message
def event_detail(event_id):
    ctx = get_session_context()
    event = _load_event(event_id)

    form = EventForm(obj=event)
    form.hiring_artist.data = bool(event.artist_name)
    return render_template(
        'event_detail.html',
        event=event,
        checklist=event_checklist(event),
        cards=document_cards(event, ctx.identity_id, ctx.capability),
        form=form,
        can_edit=event.user_id == ctx.identity_id or ctx.is_admin,
    )


@client_bp.route('/events/<event_id>/edit', methods=['POST'])
@login_required_with_message
def edit(event_id):
    ctx = get_session_context()
    event = _load_event(event_id)
    form = EventForm()
    if not form.validate_on_submit():
        _flash_form_errors(form)
        return redirect(url_for('client.event_detail', event_id=event.id))

    try:
        if event.user_id == ctx.identity_id:
            update_event(event.id, form.to_fields(), owner_id=ctx.identity_id)
        else:
            update_event(event.id, form.to_fields(), as_admin=ctx.is_admin)
    except EventHubError as e:
        flash(f"Failed to update event: {e.message}", 'error')
    else:
        flash('Event updated successfully!', 'success')
    return redirect(url_for('client.event_detail', event_id=event.id))


@client_bp.route('/events/<event_id>/documents/<slot>', methods=['POST'])
@login_required_with_message
def document_upload(event_id, slot):
    ctx = get_session_context()
    event = _load_event(event_id)
    try:
        upload_document(event, slot, request.files.get('file'), ctx.identity_id, ctx.capability)
    except EventHubError as e:
        flash(f"Failed to upload document: {e.message}", 'error')
    else:
        flash(f"{DocumentSlot(slot).label} uploaded successfully!", 'success')
    return redirect(_back(url_for('client.event_detail', event_id=event.id)))


@client_bp.route('/events/<event_id>/documents/<slot>/delete', methods=['POST'])
@login_required_with_message
def document_delete(event_id, slot):
    ctx = get_session_context()
    event = _load_event(event_id)
    try:
        delete_document(event, slot, ctx.identity_id, ctx.capability)
    except EventHubError as e:
        flash(f"Failed to delete document: {e.message}", 'error')
    else:
        flash(f"{DocumentSlot(slot).label} deleted successfully!", 'success')
    return redirect(_back(url_for('client.event_detail', event_id=event.id)))


@client_bp.route('/events/<event_id>/documents/<slot>/download')
@login_required_with_message
def document_download(event_id, slot):
    event = _load_event(event_id)
    try:
        return redirect(document_download_url(event, slot))
    except EventHubError as e:
        flash(e.message, 'error')
        return redirect(url_for('client.event_detail', event_id=event.id))


@client_bp.route('/events/<event_id>/media', methods=['GET', 'POST'])
@login_required_with_message
def event_media(event_id):
    ctx = get_session_context()
    event = _load_event(event_id)

    if request.method == 'POST':
        try:
            upload_media(event, request.files.get('file'), ctx.identity_id, ctx.capability)
        except EventHubError as e:
            flash(f"Failed to upload media: {e.message}", 'error')
        else:
            flash('Media uploaded successfully!', 'success')
        return redirect(url_for('client.event_media', event_id=event.id))

    return render_template('event_media.html', event=event, items=list_media(event))


def _load_media(media_id: str) -> Media:
    item = db.session.get(Media, media_id)
    if item is None:
        abort(404)
    _load_event(item.event_id)
    return item


@client_bp.route('/media/<media_id>/delete', methods=['POST'])
@login_required_with_message
def media_delete(media_id):
    ctx = get_session_context()
    item = _load_media(media_id)
    event_id = item.event_id
    try:
        delete_media(item, ctx.identity_id, ctx.capability)
    except EventHubError as e:
        flash(f"Failed to delete media: {e.message}", 'error')
    else:
        flash('Media deleted successfully!', 'success')
    return redirect(url_for('client.event_media', event_id=event_id))


@client_bp.route('/media/<media_id>/download')
@login_required_with_message
def media_download(media_id):
    ctx = get_session_context()
    item = _load_media(media_id)
    try:
        data, filename = download_media(item, ctx.identity_id, ctx.capability)
    except EventHubError as e:
        flash(f"Failed to download media: {e.message}", 'error')
        return redirect(url_for('client.event_media', event_id=item.event_id))
    return send_file(
        io.BytesIO(data),
        mimetype=item.mime_type or 'application/octet-stream',
        as_attachment=True,
        download_name=filename,
    )


@client_bp.route('/events/<event_id>/stage')
@login_required_with_message
def stage_builder(event_id):
    event = _load_event(event_id)
    return render_template('stage.html', event=event)


@client_bp.route('/profile', methods=['GET', 'POST'])
@login_required_with_message
def profile():
    ctx = get_session_context()
    try:
        current = get_profile(ctx.identity_id)
    except EventHubError as e:
        flash(f"Failed to load profile: {e.message}", 'error')
        return redirect(url_for('client.dashboard'))

    form = ProfileForm(obj=current)
    if form.validate_on_submit():
        try:
            update_profile(
                ctx.identity_id,
                first_name=form.first_name.data,
                last_name=form.last_name.data,
                school=form.school.data,
                fraternity=form.fraternity.data,
            )
            if form.avatar.data:
                upload_avatar(ctx.identity_id, form.avatar.data)
        except EventHubError as e:
            flash(f"Failed to update profile: {e.message}", 'error')
        else:
            flash('Profile updated successfully!', 'success')
        return redirect(url_for('client.profile'))
    _flash_form_errors(form)

    return render_template('profile.html', profile=current, form=form, email=current_user.email)
