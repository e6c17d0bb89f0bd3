"""JSON API blueprint."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from eventhub.auth import api_admin_required, api_login_required
from eventhub.errors import EventHubError, RemoteError
from eventhub.extensions import db
from eventhub.models import Media
from eventhub.services.documents import delete_document, document_cards, upload_document
from eventhub.services.events import (
    create_event,
    event_checklist,
    get_event,
    list_events,
    serialize_event,
    update_event,
)
from eventhub.services.leads import create_lead, list_leads, search_leads, serialize_lead, update_lead_status
from eventhub.services.media_library import (
    delete_media,
    list_media,
    serialize_media,
    serialize_media_collection,
    upload_media,
)
from eventhub.services.notifications import drain_notifications
from eventhub.services.profiles import PROFILE_FIELDS, get_profile, serialize_profile, update_profile
from eventhub.services.session import get_session_context

api_bp = Blueprint('api', __name__)


@api_bp.errorhandler(EventHubError)
def handle_eventhub_error(error: EventHubError):
    if error.status_code >= 500:
        current_app.logger.error(f"API error on {request.path}: {error.message}")
    body = {'error': error.message}
    field_errors = getattr(error, 'field_errors', None)
    if field_errors:
        body['fields'] = field_errors
    return jsonify(body), error.status_code


def _payload() -> dict:
    return request.get_json(silent=True) or {}


def _event(event_id: str):
    ctx = get_session_context()
    return get_event(event_id, ctx.identity_id, ctx.capability)


@api_bp.route('/events', methods=['GET'])
@api_login_required
def events_list():
    partition = list_events(get_session_context().identity_id)
    return jsonify({
        'upcoming': [serialize_event(e) for e in partition.upcoming],
        'past': [serialize_event(e) for e in partition.past],
    })


@api_bp.route('/events', methods=['POST'])
@api_login_required
def events_create():
    data = _payload()
    event = create_event(
        get_session_context().identity_id,
        event_date=data.get('event_date'),
        budget=data.get('budget'),
        contact_phone=data.get('contact_phone'),
        event_name=data.get('event_name'),
        hiring_artist=bool(data.get('hiring_artist')),
        artist_name=data.get('artist_name'),
        chapter_id=data.get('chapter_id'),
    )
    return jsonify(serialize_event(event)), 201


@api_bp.route('/events/<event_id>', methods=['GET'])
@api_login_required
def events_detail(event_id):
    ctx = get_session_context()
    event = _event(event_id)
    data = serialize_event(event)
    data['checklist'] = event_checklist(event)
    data['documents'] = document_cards(event, ctx.identity_id, ctx.capability)
    return jsonify(data)


@api_bp.route('/events/<event_id>', methods=['PATCH'])
@api_login_required
def events_update(event_id):
    ctx = get_session_context()
    event = _event(event_id)
    if event.user_id == ctx.identity_id:
        event = update_event(event.id, _payload(), owner_id=ctx.identity_id)
    else:
        event = update_event(event.id, _payload(), as_admin=ctx.is_admin)
    return jsonify(serialize_event(event))


@api_bp.route('/events/<event_id>/documents/<slot>', methods=['POST'])
@api_login_required
def documents_upload(event_id, slot):
    ctx = get_session_context()
    event = upload_document(_event(event_id), slot, request.files.get('file'), ctx.identity_id, ctx.capability)
    return jsonify(serialize_event(event))


@api_bp.route('/events/<event_id>/documents/<slot>', methods=['DELETE'])
@api_login_required
def documents_delete(event_id, slot):
    ctx = get_session_context()
    event = delete_document(_event(event_id), slot, ctx.identity_id, ctx.capability)
    return jsonify(serialize_event(event))


@api_bp.route('/events/<event_id>/media', methods=['GET'])
@api_login_required
def media_list(event_id):
    return jsonify({'items': serialize_media_collection(list_media(_event(event_id)))})


@api_bp.route('/events/<event_id>/media', methods=['POST'])
@api_login_required
def media_upload(event_id):
    ctx = get_session_context()
    item = upload_media(_event(event_id), request.files.get('file'), ctx.identity_id, ctx.capability)
    return jsonify(serialize_media(item)), 201


@api_bp.route('/media/<media_id>', methods=['DELETE'])
@api_login_required
def media_delete(media_id):
    ctx = get_session_context()
    item = db.session.get(Media, media_id)
    if item is None:
        raise RemoteError('Media not found', status_code=404)
    delete_media(item, ctx.identity_id, ctx.capability)
    return jsonify({'message': 'Media deleted successfully.'})


@api_bp.route('/leads', methods=['GET'])
@api_admin_required
def leads_list():
    leads = search_leads(list_leads(), request.args.get('q'))
    return jsonify({'items': [serialize_lead(lead) for lead in leads]})


@api_bp.route('/leads', methods=['POST'])
@api_admin_required
def leads_create():
    lead = create_lead(_payload(), current_user._get_current_object())
    return jsonify(serialize_lead(lead)), 201


@api_bp.route('/leads/<lead_id>', methods=['PATCH'])
@api_admin_required
def leads_update(lead_id):
    lead = update_lead_status(lead_id, _payload().get('status'), current_user._get_current_object())
    return jsonify(serialize_lead(lead))


@api_bp.route('/notifications', methods=['GET'])
@api_login_required
def notifications():
    """Messages queued for the caller since the last drain."""
    return jsonify({'items': drain_notifications(get_session_context().identity_id)})


@api_bp.route('/profile', methods=['GET'])
@api_login_required
def profile_detail():
    return jsonify(serialize_profile(get_profile(get_session_context().identity_id)))


@api_bp.route('/profile', methods=['PATCH'])
@api_login_required
def profile_update():
    data = _payload()
    fields = {name: data[name] for name in PROFILE_FIELDS if name in data}
    return jsonify(serialize_profile(update_profile(get_session_context().identity_id, **fields)))
