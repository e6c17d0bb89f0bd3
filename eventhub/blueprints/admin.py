"""Administrator pages: events, clients, chapters, analytics, leads."""

from __future__ import annotations

from datetime import date

from flask import Blueprint, abort, current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user

from eventhub.auth import admin_required
from eventhub.errors import EventHubError, RemoteError
from eventhub.extensions import db
from eventhub.forms.leads import ImportLeadsForm, LeadForm, LeadStatusForm
from eventhub.models import DocumentSlot, Event, Profile
from eventhub.services.admin_functions import (
    get_all_chapters,
    get_all_user_profiles,
    get_chapter_analytics,
    import_leads,
    update_user_chapter,
    update_user_role,
)
from eventhub.services.analytics import (
    client_document_progress,
    dashboard_analytics,
    event_dates,
    events_on_date,
)
from eventhub.services.documents import document_cards
from eventhub.services.events import admin_list_events, all_events
from eventhub.services.leads import create_lead, list_leads, search_leads, update_lead_status
from eventhub.services.session import get_session_context

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


def _actor():
    return current_user._get_current_object()


@admin_bp.route('/')
@admin_required
def dashboard():
    """All events across clients, newest first."""
    events = all_events()
    owners = {
        profile.id: profile
        for profile in db.session.execute(db.select(Profile)).scalars().all()
    }
    return render_template(
        'admin/dashboard.html',
        events=events,
        owners=owners,
        progress={event.id: client_document_progress(event) for event in events},
    )


@admin_bp.route('/analytics')
@admin_required
def analytics():
    return render_template('admin/analytics.html', stats=dashboard_analytics())


@admin_bp.route('/calendar')
@admin_required
def calendar():
    selected = date.today()
    raw = request.args.get('date')
    if raw:
        try:
            selected = date.fromisoformat(raw)
        except ValueError:
            flash(f"Invalid date: {raw}", 'error')
    return render_template(
        'admin/calendar.html',
        selected=selected,
        marked=sorted(event_dates()),
        events=events_on_date(selected),
    )


@admin_bp.route('/clients')
@admin_required
def clients():
    try:
        profiles = get_all_user_profiles()
    except EventHubError as e:
        flash(f"Failed to load clients: {e.message}", 'error')
        profiles = []
    return render_template('admin/clients.html', profiles=profiles)


@admin_bp.route('/clients/<user_id>')
@admin_required
def client_profile(user_id):
    profile = db.session.get(Profile, user_id)
    if profile is None:
        abort(404)
    return render_template(
        'admin/client_profile.html',
        profile=profile,
        email=profile.user.email if profile.user else 'N/A',
        partition=admin_list_events(user_id, date.today()),
        chapters=get_all_chapters(),
    )


@admin_bp.route('/clients/<user_id>/role', methods=['POST'])
@admin_required
def client_role(user_id):
    try:
        result = update_user_role(user_id, request.form.get('role'), _actor())
    except EventHubError as e:
        flash(f"Failed to update role: {e.message}", 'error')
    else:
        flash(result['message'], 'success')
    return redirect(url_for('admin.client_profile', user_id=user_id))


@admin_bp.route('/clients/<user_id>/chapter', methods=['POST'])
@admin_required
def client_chapter(user_id):
    chapter_id = request.form.get('chapter_id') or None
    try:
        result = update_user_chapter(user_id, chapter_id, _actor())
    except EventHubError as e:
        flash(f"Failed to update chapter: {e.message}", 'error')
    else:
        flash(result['message'], 'success')
    return redirect(url_for('admin.client_profile', user_id=user_id))


@admin_bp.route('/chapters/<chapter_id>')
@admin_required
def chapter_profile(chapter_id):
    try:
        stats = get_chapter_analytics(chapter_id)
    except RemoteError as e:
        if e.status_code == 404:
            abort(404)
        flash(f"Failed to load chapter analytics: {e.message}", 'error')
        return redirect(url_for('admin.clients'))

    members = db.session.execute(
        db.select(Profile).where(Profile.chapter_id == chapter_id)
    ).scalars().all()
    return render_template('admin/chapter_profile.html', stats=stats, members=members)


@admin_bp.route('/event-documents')
@admin_required
def event_documents():
    """Document manager; the signed contract is always read-only here."""
    ctx = get_session_context()
    events = db.session.execute(
        db.select(Event).order_by(Event.event_date.asc())
    ).scalars().all()
    rows = [
        (event, document_cards(event, ctx.identity_id, ctx.capability,
                               read_only={DocumentSlot.SIGNED_CONTRACT}))
        for event in events
    ]
    return render_template('admin/event_documents.html', rows=rows)


@admin_bp.route('/leads', methods=['GET', 'POST'])
@admin_required
def leads():
    form = LeadForm()
    if form.validate_on_submit():
        try:
            create_lead(form.data, _actor())
        except EventHubError as e:
            flash(f"Failed to add lead: {e.message}", 'error')
        else:
            flash('Lead added successfully!', 'success')
            return redirect(url_for('admin.leads'))
    elif request.method == 'POST':
        for errors in form.errors.values():
            for error in errors:
                flash(error, 'error')

    query = request.args.get('q', '')
    try:
        items = search_leads(list_leads(), query)
    except EventHubError as e:
        flash(f"Failed to load leads: {e.message}", 'error')
        items = []
    return render_template(
        'admin/leads.html',
        leads=items,
        query=query,
        form=form,
        status_form=LeadStatusForm(),
        import_form=ImportLeadsForm(),
    )


@admin_bp.route('/leads/<lead_id>/status', methods=['POST'])
@admin_required
def lead_status(lead_id):
    form = LeadStatusForm()
    if not form.validate_on_submit():
        flash('Invalid lead status.', 'error')
        return redirect(url_for('admin.leads'))
    try:
        update_lead_status(lead_id, form.status.data, _actor())
    except EventHubError as e:
        flash(f"Failed to update lead status: {e.message}", 'error')
    else:
        flash('Lead status updated!', 'success')
    return redirect(url_for('admin.leads'))


@admin_bp.route('/leads/import', methods=['POST'])
@admin_required
def lead_import():
    """Forward the uploaded CSV to the import function and report each rejected row."""
    form = ImportLeadsForm()
    if not form.validate_on_submit():
        flash('Please select a CSV file to import.', 'error')
        return redirect(url_for('admin.leads'))

    content = form.file.data.read().decode('utf-8-sig', errors='replace')
    try:
        payload, status = import_leads(content, _actor())
    except EventHubError as e:
        current_app.logger.error(f"Lead import failed: {e.message}")
        flash(f"Failed to import leads: {e.message}", 'error')
        return redirect(url_for('admin.leads'))

    flash(payload['message'], 'success' if status == 200 else 'error')
    for error in payload.get('errors', []):
        record = error.get('record', {})
        label = f"{record.get('school') or '?'} {record.get('fraternity') or ''}".strip()
        flash(f"{label}: {error['message']}", 'warning')
    return redirect(url_for('admin.leads'))
