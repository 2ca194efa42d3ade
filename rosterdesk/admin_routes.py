"""
Admin routes: officials and teams management plus the players spreadsheet.
All routes require the admin HTTP Basic credentials.
"""

from flask import Blueprint, request, jsonify, send_file, current_app
from io import BytesIO

from .auth import admin_required
from .errors import DuplicateRecordError
from .reports import build_players_workbook
from .routes import get_storage, get_fetcher, error_response

admin_bp = Blueprint('admin', __name__)

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
EXPORT_FILENAME = 'players_export.xlsx'


def _json_body() -> dict:
    return request.get_json(silent=True) or request.form.to_dict()


def _clean(value):
    return value.strip() if isinstance(value, str) else value


@admin_bp.route('/api/admin/session')
@admin_required
def admin_session():
    """Credential check used by the admin panel login"""
    return jsonify({'success': True, 'role': 'admin'})


@admin_bp.route('/api/users/export')
@admin_required
def export_players():
    """Spreadsheet of all players (optionally one team) with their photos"""
    storage = get_storage()
    players = storage.get_all_players()
    team = _clean(request.args.get('team'))
    if team:
        players = [p for p in players if p.team == team]

    try:
        xlsx_bytes = build_players_workbook(players, fetcher=get_fetcher())
    except Exception as e:
        current_app.logger.error(f"Spreadsheet export failed: {e}", exc_info=True)
        return error_response('Error exporting players', 500)

    current_app.logger.info(f"Exported {len(players)} players")
    response = send_file(
        BytesIO(xlsx_bytes),
        as_attachment=True,
        download_name=EXPORT_FILENAME,
        mimetype=XLSX_MIMETYPE
    )
    response.headers['Cache-Control'] = 'no-store'
    return response


# Officials

@admin_bp.route('/api/admin/officials')
@admin_required
def list_officials():
    return jsonify([o.public_dict() for o in get_storage().get_all_officials()])


@admin_bp.route('/api/admin/officials', methods=['POST'])
@admin_required
def create_official():
    """Create an official and create or link the team it manages"""
    data = _json_body()
    username = _clean(data.get('username'))
    password = data.get('password')
    team_name = _clean(data.get('team_name'))
    if not username or not password or not team_name:
        return error_response('Username, password and team name are required')

    storage = get_storage()
    try:
        official = storage.create_official(username, password, team_name)
        storage.link_team_to_official(team_name, official.id)
    except DuplicateRecordError as e:
        return error_response(e.message, 409, field=e.field)

    current_app.logger.info(f"Created official {official.username} for team {team_name}")
    return jsonify({'success': True, 'message': 'Official created', 'official': official.public_dict()})


@admin_bp.route('/api/admin/officials/<official_id>', methods=['PUT'])
@admin_required
def update_official(official_id):
    data = _json_body()
    team_name = _clean(data.get('team_name'))
    storage = get_storage()
    try:
        official = storage.update_official(
            official_id,
            username=_clean(data.get('username')),
            password=data.get('password'),
            team_name=team_name
        )
        if not official:
            return error_response('Official not found', 404)
        storage.link_team_to_official(official.team_name, official.id)
    except DuplicateRecordError as e:
        return error_response(e.message, 409, field=e.field)

    return jsonify({'success': True, 'message': 'Official updated', 'official': official.public_dict()})


@admin_bp.route('/api/admin/officials/<official_id>', methods=['DELETE'])
@admin_required
def delete_official(official_id):
    """Delete an official; its teams are kept but unlinked"""
    official = get_storage().delete_official(official_id)
    if not official:
        return error_response('Official not found', 404)
    current_app.logger.info(f"Deleted official {official.username}")
    return jsonify({'success': True, 'message': 'Official deleted'})


# Teams

@admin_bp.route('/api/admin/teams')
@admin_required
def list_teams():
    storage = get_storage()
    officials = {o.id: o for o in storage.get_all_officials()}
    result = []
    for team in storage.get_all_teams():
        official = officials.get(team.official_id)
        result.append({
            'id': team.id,
            'name': team.name,
            'code': team.code,
            'official': {'id': official.id, 'username': official.username} if official else None,
        })
    return jsonify(result)


@admin_bp.route('/api/admin/teams', methods=['POST'])
@admin_required
def assign_team_code():
    """Give a registration code to a team that has none"""
    data = _json_body()
    team_id = data.get('team_id')
    code = _clean(data.get('code'))
    if not team_id or not code:
        return error_response('Team and code are required')

    storage = get_storage()
    team = storage.get_team(team_id)
    if not team:
        return error_response('Team not found', 404)
    if team.code:
        return error_response('This team already has a code')

    team.code = code
    try:
        storage.save_team(team)
    except DuplicateRecordError as e:
        return error_response(e.message, 409, field=e.field)
    return jsonify({'success': True, 'message': 'Code assigned'})


@admin_bp.route('/api/admin/teams/<team_id>', methods=['PUT'])
@admin_required
def update_team(team_id):
    """Rename a team and/or change its code (an empty code clears it)"""
    data = _json_body()
    storage = get_storage()
    team = storage.get_team(team_id)
    if not team:
        return error_response('Team not found', 404)

    name = _clean(data.get('name'))
    if name:
        team.name = name
    if 'code' in data:
        team.code = _clean(data.get('code')) or None

    try:
        storage.save_team(team)
    except DuplicateRecordError as e:
        return error_response(e.message, 409, field=e.field)
    return jsonify({'success': True, 'message': 'Team updated'})


@admin_bp.route('/api/admin/teams/<team_id>', methods=['DELETE'])
@admin_required
def delete_team(team_id):
    if not get_storage().delete_team(team_id):
        return error_response('Team not found', 404)
    return jsonify({'success': True, 'message': 'Team deleted'})
