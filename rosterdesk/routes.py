from flask import Blueprint, request, jsonify, send_file, current_app
from io import BytesIO
import time
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from . import config
from .auth import is_admin_credentials
from .errors import DuplicateRecordError, NotFoundError, UploadError, ValidationError
from .extensions import limiter
from .models import Player
from .reports import render_roster_pdf, build_roster_document
from .utils import (
    validate_registration_data, parse_birth_date, calculate_age, requires_authorization,
    parse_jersey_number, is_valid_name, is_valid_identification, generate_report_filename
)

# Create blueprint
bp = Blueprint('main', __name__)

PDF_MIMETYPE = 'application/pdf'
DOCX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'

# Upload field -> (player attribute, public id prefix)
IMAGE_FIELDS = {
    'id_image': ('id_image_url', 'id_front'),
    'id_back_image': ('id_back_image_url', 'id_back'),
    'selfie_image': ('selfie_image_url', 'selfie'),
}
AUTHORIZATION_FIELD = 'authorization'


def get_storage():
    return current_app.extensions['storage']


def get_fetcher():
    return current_app.extensions['image_fetcher']


def get_uploader():
    return current_app.extensions['uploader']


def get_official_or_404(official_id: str):
    official = get_storage().find_official_by_id(official_id)
    if not official:
        raise NotFoundError('Official not found')
    return official


def error_response(message, status: int = 400, **extra):
    errors = message if isinstance(message, list) else [message]
    payload = {'success': False, 'errors': errors}
    payload.update(extra)
    return jsonify(payload), status


def read_upload(field: str, allow_pdf: bool = False) -> Optional[Tuple[bytes, str, str]]:
    """Read an uploaded file and check its type.

    Returns (content, filename, mimetype), or None if the field was not sent.
    Raises ValidationError for a non-image (or non-PDF where allowed) file.
    """
    file = request.files.get(field)
    if file is None or file.filename == '':
        return None

    content = file.read()
    mimetype = file.mimetype or ''
    if allow_pdf and mimetype == 'application/pdf':
        if not content.startswith(b'%PDF'):
            raise ValidationError(f'The "{field}" file is not a valid PDF')
        return content, file.filename, mimetype

    if not mimetype.startswith('image/'):
        if allow_pdf:
            raise ValidationError(f'The "{field}" field only accepts an image or a PDF')
        raise ValidationError(f'The "{field}" field only accepts images')

    # Security: Validate image can be opened and verified
    try:
        img = Image.open(BytesIO(content))
        img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise ValidationError(f'The "{field}" file is not a valid image')

    return content, file.filename, mimetype


def upload_file(upload: Tuple[bytes, str, str], prefix: str, identification: str) -> str:
    content, filename, mimetype = upload
    public_id = f"{prefix}_{identification}_{int(time.time() * 1000)}"
    return get_uploader().upload(content, public_id, filename=filename, content_type=mimetype)


def send_attachment(data: bytes, mimetype: str, filename: str):
    response = send_file(
        BytesIO(data),
        as_attachment=True,
        download_name=filename,
        mimetype=mimetype
    )
    response.headers['Cache-Control'] = 'no-store'
    return response


@bp.route('/api/teams/validate/<code>')
def validate_team_code(code):
    """Resolve a registration code to its team (public)"""
    team = get_storage().find_team_by_code(code)
    if not team:
        return error_response('Invalid code', 404)
    return jsonify({'name': team.name, 'code': team.code, 'official_id': team.official_id})


@bp.route('/api/users', methods=['POST'])
def register_player():
    """Register a player with ID photos, selfie and (for minors) an authorization"""
    storage = get_storage()
    try:
        data = request.form.to_dict()
        team_code = (data.get('team_code') or '').strip()
        if not team_code:
            return error_response('Team code is required')

        team = storage.find_team_by_code(team_code)
        if not team:
            return error_response('Invalid code')

        errors = validate_registration_data(data)
        if errors:
            return error_response(errors)

        number = parse_jersey_number(data['number'])
        identification = data['identification'].strip()

        if storage.count_players_by_team(team.name) >= config.MAX_PLAYERS_PER_TEAM:
            return error_response(f'This team already has {config.MAX_PLAYERS_PER_TEAM} registered players')

        if storage.find_player_by_number(team.name, number):
            return error_response(f'Number {number} is already registered in {team.name}')

        birth_date = parse_birth_date(data['dob'])
        if not birth_date:
            return error_response('Invalid date')
        age = calculate_age(birth_date)
        if age < config.MIN_PLAYER_AGE:
            return error_response(f'Players under {config.MIN_PLAYER_AGE} cannot be registered')

        images = {field: read_upload(field) for field in IMAGE_FIELDS}
        if any(upload is None for upload in images.values()):
            return error_response('ID photos (front and back) and selfie are all required')

        authorization = read_upload(AUTHORIZATION_FIELD, allow_pdf=True)
        needs_authorization = requires_authorization(age)
        if needs_authorization and authorization is None:
            return error_response(
                f'Authorization required ({config.MIN_PLAYER_AGE}-{config.AUTHORIZATION_REQUIRED_UNDER - 1} years)'
            )

        if storage.find_player_by_identification(identification):
            return error_response('Identification already registered', 409, field='identification')

        urls = {}
        for field, (attribute, prefix) in IMAGE_FIELDS.items():
            urls[attribute] = upload_file(images[field], prefix, identification)
        if needs_authorization:
            urls['authorization_url'] = upload_file(authorization, 'aut', identification)

        player = Player(
            team_code=team_code,
            team=team.name,
            first_name=data['first_name'].strip(),
            last_name=data['last_name'].strip(),
            dob=birth_date.isoformat(),
            age=age,
            identification=identification,
            number=number,
            **urls
        )
        storage.save_player(player)

        current_app.logger.info(f"Registered player {player.id} in team {team.name}")
        return jsonify({'success': True, 'message': 'Player registered successfully', 'player_id': player.id})

    except ValidationError as e:
        return error_response(e.to_errors())
    except DuplicateRecordError as e:
        return error_response(e.message, 409, field=e.field)
    except UploadError as e:
        current_app.logger.error(f"Registration upload failed: {e}")
        return error_response(e.message, 502)


@bp.route('/api/users')
def list_players():
    """All registered players, newest first"""
    players = get_storage().get_all_players(newest_first=True)
    return jsonify([p.model_dump() for p in players])


@bp.route('/api/teams/<code>/players')
def team_players_by_code(code):
    """Players of the team owning ``code`` (no image URLs)"""
    storage = get_storage()
    team = storage.find_team_by_code(code)
    if not team:
        return error_response('Invalid code', 404)
    players = storage.find_players_by_team(team.name)
    return jsonify({'team': team.name, 'players': [p.public_dict() for p in players]})


@bp.route('/api/officials/login', methods=['POST'])
@limiter.limit("10 per minute")
def official_login():
    """Log in as admin or as a team official"""
    data = request.get_json(silent=True) or request.form.to_dict()
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''

    if not username or not password:
        return error_response('Username and password are required')

    if is_admin_credentials(username, password):
        return jsonify({'success': True, 'role': 'admin'})

    official = get_storage().authenticate_official(username, password)
    if not official:
        current_app.logger.warning(f"Failed official login for {username}")
        return error_response('Invalid credentials', 401)

    return jsonify({
        'success': True,
        'role': 'official',
        'official_id': official.id,
        'team': official.team_name
    })


@bp.route('/api/officials/<official_id>/players')
def official_players(official_id):
    """Players of the official's team ordered by last name"""
    storage = get_storage()
    official = get_official_or_404(official_id)
    players = storage.find_players_by_team(official.team_name)
    return jsonify([p.model_dump() for p in players])


@bp.route('/api/players/<player_id>', methods=['PUT'])
def update_player(player_id):
    """Edit a player; only the sent fields change, new images are optional"""
    storage = get_storage()
    player = storage.get_player(player_id)
    if not player:
        return error_response('Player not found', 404)

    try:
        data = request.form.to_dict()

        for field in ('first_name', 'last_name'):
            if data.get(field) and not is_valid_name(data[field]):
                return error_response('Invalid first names' if field == 'first_name' else 'Invalid last names')

        identification = (data.get('identification') or '').strip()
        if identification:
            if not is_valid_identification(identification):
                return error_response('Invalid identification')
            if storage.find_player_by_identification(identification, exclude_id=player.id):
                return error_response('Identification already registered', 409, field='identification')

        number = None
        if data.get('number'):
            number = parse_jersey_number(data['number'])
            if number is None:
                return error_response(
                    f'Invalid number ({config.MIN_JERSEY_NUMBER}-{config.MAX_JERSEY_NUMBER})'
                )
            if storage.find_player_by_number(player.team, number, exclude_id=player.id):
                return error_response(f'Number {number} is already registered in {player.team}')

        new_authorization = read_upload(AUTHORIZATION_FIELD, allow_pdf=True)
        if data.get('dob'):
            birth_date = parse_birth_date(data['dob'])
            if not birth_date:
                return error_response('Invalid date')
            age = calculate_age(birth_date)
            if age < config.MIN_PLAYER_AGE:
                return error_response(f'Players under {config.MIN_PLAYER_AGE} cannot be registered')
            if requires_authorization(age):
                if not player.authorization_url and new_authorization is None:
                    return error_response(
                        f'Authorization required ({config.MIN_PLAYER_AGE}-'
                        f'{config.AUTHORIZATION_REQUIRED_UNDER - 1} years)'
                    )
            else:
                player.authorization_url = None
            player.dob = birth_date.isoformat()
            player.age = age

        if data.get('first_name'):
            player.first_name = data['first_name'].strip()
        if data.get('last_name'):
            player.last_name = data['last_name'].strip()
        if identification:
            player.identification = identification
        if number is not None:
            player.number = number

        for field, (attribute, prefix) in IMAGE_FIELDS.items():
            upload = read_upload(field)
            if upload is not None:
                setattr(player, attribute, upload_file(upload, f'{prefix}_edit', player.identification))
        if new_authorization is not None:
            player.authorization_url = upload_file(new_authorization, 'aut_edit', player.identification)

        storage.save_player(player)
        return jsonify({'success': True, 'message': 'Player updated successfully', 'player': player.model_dump()})

    except ValidationError as e:
        return error_response(e.to_errors())
    except DuplicateRecordError as e:
        return error_response(e.message, 409, field=e.field)
    except UploadError as e:
        current_app.logger.error(f"Player update upload failed: {e}")
        return error_response(e.message, 502)


@bp.route('/api/players/<player_id>', methods=['DELETE'])
def delete_player(player_id):
    if not get_storage().delete_player(player_id):
        return error_response('Player not found', 404)
    return jsonify({'success': True, 'message': 'Player deleted successfully'})


@bp.route('/api/players/report-pdf/<official_id>')
def roster_pdf(official_id):
    """Roster PDF of the official's team"""
    storage = get_storage()
    official = get_official_or_404(official_id)

    team_name = official.team_name
    players = storage.find_players_by_team(team_name)
    try:
        pdf_bytes = render_roster_pdf(
            team_name, players,
            fetcher=get_fetcher(),
            logo_path=current_app.config.get('LOGO_PATH')
        )
    except Exception as e:
        current_app.logger.error(f"PDF generation error for {team_name}: {e}", exc_info=True)
        return error_response('Error generating PDF', 500)

    return send_attachment(pdf_bytes, PDF_MIMETYPE, generate_report_filename(team_name, 'pdf'))


@bp.route('/api/players/report/<official_id>')
def roster_document(official_id):
    """Roster DOCX of the official's team"""
    storage = get_storage()
    official = get_official_or_404(official_id)

    team_name = official.team_name
    players = storage.find_players_by_team(team_name)
    try:
        docx_bytes = build_roster_document(team_name, players, fetcher=get_fetcher())
    except Exception as e:
        current_app.logger.error(f"DOCX generation error for {team_name}: {e}", exc_info=True)
        return error_response('Error generating report', 500)

    return send_attachment(docx_bytes, DOCX_MIMETYPE, generate_report_filename(team_name, 'docx'))
