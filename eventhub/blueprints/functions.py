"""Admin functions exposed at ``/functions/v1/<name>``.

Every response carries CORS headers. Admin status is re-checked against the
stored profile on each call rather than trusted from the session.
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, make_response, request
from flask_login import current_user

from eventhub.errors import EventHubError
from eventhub.extensions import csrf
from eventhub.services.admin_functions import (
    get_all_chapters,
    get_all_user_profiles,
    get_chapter_analytics,
    import_leads,
    update_user_chapter,
    update_user_role,
)
from eventhub.services.roles import check_is_admin

functions_bp = Blueprint('functions', __name__)
csrf.exempt(functions_bp)

CORS_ALLOW_HEADERS = 'authorization, x-client-info, apikey, content-type'


@functions_bp.after_request
def add_cors_headers(response):
    response.headers['Access-Control-Allow-Origin'] = current_app.config.get('FUNCTIONS_ALLOWED_ORIGIN', '*')
    response.headers['Access-Control-Allow-Headers'] = CORS_ALLOW_HEADERS
    response.headers['Access-Control-Allow-Methods'] = 'POST, GET, OPTIONS'
    return response


def _forbidden(message: str):
    return jsonify({'error': message}), 403


def _is_admin() -> bool:
    if not current_user.is_authenticated:
        return False
    try:
        return check_is_admin(current_user.get_id())
    except Exception as e:
        current_app.logger.error(f"Admin check failed: {e}")
        return False


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError('Request body must be a JSON object.')
    return data


def _run(name: str, handler):
    """Map service errors onto the 400/404/500 response contract."""
    try:
        return handler()
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except EventHubError as e:
        if e.status_code >= 500:
            current_app.logger.error(f"Function {name} failed: {e.message}")
        return jsonify({'error': e.message}), e.status_code
    except Exception as e:
        current_app.logger.error(f"Function {name} error: {e}")
        return jsonify({'error': 'Internal server error.'}), 500


def _preflight():
    return make_response('', 200)


@functions_bp.route('/get-all-user-profiles', methods=['GET', 'POST', 'OPTIONS'])
def all_user_profiles():
    if request.method == 'OPTIONS':
        return _preflight()
    if not _is_admin():
        return _forbidden('Forbidden: Only administrators can access this resource.')
    return _run('get-all-user-profiles', lambda: jsonify(get_all_user_profiles()))


@functions_bp.route('/get-all-chapters', methods=['GET', 'POST', 'OPTIONS'])
def all_chapters():
    if request.method == 'OPTIONS':
        return _preflight()
    if not _is_admin():
        return _forbidden('Forbidden: Only administrators can access this resource.')
    return _run('get-all-chapters', lambda: jsonify(get_all_chapters()))


@functions_bp.route('/get-chapter-analytics', methods=['POST', 'OPTIONS'])
def chapter_analytics():
    if request.method == 'OPTIONS':
        return _preflight()
    if not _is_admin():
        return _forbidden('Forbidden: Only administrators can access this resource.')

    def handler():
        chapter_id = _json_body().get('chapterId')
        if not chapter_id:
            raise ValueError('Chapter ID is required.')
        return jsonify(get_chapter_analytics(chapter_id))

    return _run('get-chapter-analytics', handler)


@functions_bp.route('/update-user-chapter', methods=['POST', 'OPTIONS'])
def user_chapter():
    if request.method == 'OPTIONS':
        return _preflight()
    if not _is_admin():
        return _forbidden('Forbidden: Only administrators can perform this action.')

    def handler():
        data = _json_body()
        if not data.get('userId'):
            raise ValueError('User ID is required.')
        return jsonify(update_user_chapter(data['userId'], data.get('chapterId'), current_user._get_current_object()))

    return _run('update-user-chapter', handler)


@functions_bp.route('/update-user-role', methods=['POST', 'OPTIONS'])
def user_role():
    if request.method == 'OPTIONS':
        return _preflight()
    if not _is_admin():
        return _forbidden('Forbidden: Only administrators can perform this action.')

    def handler():
        data = _json_body()
        if not data.get('userId') or not data.get('newRole'):
            raise ValueError('User ID and new role are required.')
        return jsonify(update_user_role(data['userId'], data['newRole'], current_user._get_current_object()))

    return _run('update-user-role', handler)


@functions_bp.route('/import-leads', methods=['POST', 'OPTIONS'])
def leads_import():
    if request.method == 'OPTIONS':
        return _preflight()
    if not _is_admin():
        return _forbidden('Forbidden: Only administrators can import leads.')

    def handler():
        upload = request.files.get('file')
        if upload is None or not upload.filename:
            raise ValueError('No CSV file provided.')
        content = upload.read().decode('utf-8-sig', errors='replace')
        payload, status = import_leads(content, current_user._get_current_object())
        return jsonify(payload), status

    return _run('import-leads', handler)
