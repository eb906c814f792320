import ipaddress

from flask import Blueprint, current_app, jsonify, redirect, request, url_for

from voteboard.services.votes.admission import (
    ACCEPTED,
    COOLDOWN,
    INVALID_CATEGORY,
    RELAY_FAILED,
    STORE_ERROR,
)

main = Blueprint('main', __name__)

_STATUS_CODES = {
    ACCEPTED: 201,
    RELAY_FAILED: 502,
    STORE_ERROR: 500,
}


def _vote_service():
    return current_app.extensions['vote_service']


def _normalize_ip(value) -> str:
    """Canonical text form of an address, or '' if it is not one."""
    if not value:
        return ''
    try:
        addr = ipaddress.ip_address(value.strip())
    except ValueError:
        return ''
    if addr.version == 6 and addr.scope_id:
        return ''
    if addr.version == 6 and addr.ipv4_mapped is not None:
        addr = addr.ipv4_mapped
    if addr.is_loopback:
        return '127.0.0.1'
    return str(addr)


def get_client_ip(req) -> str:
    """Best guess at the voter's address, honouring reverse proxy headers.

    Header values that are not IP addresses are ignored.
    """
    forwarded = req.headers.get('X-Forwarded-For')
    if forwarded:
        ip = _normalize_ip(forwarded.split(',')[0])
        if ip:
            return ip

    ip = _normalize_ip(req.headers.get('X-Real-IP'))
    if ip:
        return ip

    return _normalize_ip(req.remote_addr)


def _site_info():
    cfg = current_app.config
    return {
        'name': cfg['SERVER_NAME_TAG'],
        'adistra_url': cfg.get('ADISTRA_URL', ''),
        'adistra_redirect': cfg.get('ADISTRA_REDIRECT', ''),
    }


@main.route('/')
def index():
    payload = _site_info()
    payload['categories'] = list(_vote_service().categories)
    return jsonify(payload)


@main.route('/vote/<string:category>', methods=['GET'])
def vote_page(category):
    if not _vote_service().is_category(category):
        return redirect(url_for('main.index'))
    payload = _site_info()
    payload['category'] = category
    return jsonify(payload)


@main.route('/vote/<string:category>', methods=['POST'])
def submit_vote(category):
    service = _vote_service()
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = request.form
    username = data.get('username')
    ip = get_client_ip(request)

    outcome = service.submit(category, username, ip)
    payload = outcome.to_dict()
    payload['category'] = category

    if outcome.reason == INVALID_CATEGORY:
        return jsonify(payload), 404
    if outcome.reason == COOLDOWN:
        return jsonify(payload), 429
    return jsonify(payload), _STATUS_CODES.get(outcome.status, 400)


@main.route('/leaderboard', methods=['GET', 'POST'])
def leaderboard():
    max_limit = int(current_app.config.get('LEADERBOARD_MAX_LIMIT', 100))
    try:
        limit = int(request.args.get('limit', 10))
    except (TypeError, ValueError):
        return jsonify({'error': 'limit must be an integer'}), 400
    limit = max(0, min(limit, max_limit))
    entries = _vote_service().top_leaderboard(limit)
    return jsonify([{'username': name, 'totalvotes': total} for name, total in entries])
