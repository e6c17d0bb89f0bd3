"""Serves public bucket objects."""

from __future__ import annotations

from flask import Blueprint, abort, send_file

from eventhub.errors import PathResolutionError
from eventhub.services.storage import BUCKETS, PUBLIC_PREFIX, get_bucket

storage_bp = Blueprint('storage', __name__, url_prefix=PUBLIC_PREFIX)


@storage_bp.route('/<bucket>/<path:key>')
def public_object(bucket, key):
    if bucket not in BUCKETS:
        abort(404)
    try:
        path = get_bucket(bucket).local_path(key)
    except PathResolutionError:
        abort(404)
    if not path.is_file():
        abort(404)
    return send_file(path.resolve())
