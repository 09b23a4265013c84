"""
Flask web application for the Playoff Predictor.
"""
import os
import hmac
import uuid
import yaml
from datetime import datetime
from functools import wraps
from filelock import FileLock
from flask import Flask, request, jsonify, session
from playoffs.models import DEFAULT_ROSTER, load_roster, get_team
from playoffs.template import DEFAULT_TEMPLATE, load_template
from playoffs.derivation import derive, get_bracket_display, missing_predictions

app = Flask(__name__)
# Rounds are returned in bracket order
app.json.sort_keys = False


def _get_or_create_secret_key() -> bytes:
    """Get SECRET_KEY from env, or generate and persist to file."""
    env_key = os.environ.get('SECRET_KEY')
    if env_key:
        return env_key.encode() if isinstance(env_key, str) else env_key
    key_file = os.path.join(DATA_DIR, '.secret_key')
    if os.path.exists(key_file):
        with open(key_file, 'rb') as f:
            return f.read()
    key = os.urandom(24)
    os.makedirs(os.path.dirname(key_file), exist_ok=True)
    with open(key_file, 'wb') as f:
        f.write(key)
    return key


BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('PREDICTOR_DATA_DIR', os.path.join(BASE_DIR, 'data'))

app.secret_key = _get_or_create_secret_key()

PARTICIPANTS_FILE = os.path.join(DATA_DIR, 'participants.yaml')
PREDICTIONS_FILE = os.path.join(DATA_DIR, 'predictions.yaml')

# Optional overrides for the bracket configuration
ROSTER_FILE = os.environ.get('PREDICTOR_ROSTER_FILE')
TEMPLATE_FILE = os.environ.get('PREDICTOR_TEMPLATE_FILE')

MIN_NAME_LENGTH = 2
MIN_PHONE_LENGTH = 10


def _load_bracket_config():
    """Load roster and template once; a malformed template stops startup."""
    roster = load_roster(ROSTER_FILE) if ROSTER_FILE else DEFAULT_ROSTER
    if TEMPLATE_FILE:
        template = load_template(TEMPLATE_FILE, roster=roster if ROSTER_FILE else None)
    else:
        template = DEFAULT_TEMPLATE
    return roster, template


ROSTER, TEMPLATE = _load_bracket_config()


def _data_lock() -> FileLock:
    os.makedirs(DATA_DIR, exist_ok=True)
    return FileLock(os.path.join(DATA_DIR, '.lock'), timeout=10)


def _load_yaml_list(path: str, key: str) -> list:
    if not os.path.exists(path):
        return []
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        return data.get(key, []) if data else []
    except (OSError, yaml.YAMLError, AttributeError) as e:
        app.logger.warning(f'Failed to parse {path}: {e}')
        return []


def load_participants() -> list:
    """Load registered participants from YAML."""
    return _load_yaml_list(PARTICIPANTS_FILE, 'participants')


def save_participants(participants: list):
    """Save registered participants to YAML."""
    os.makedirs(DATA_DIR, exist_ok=True)
    with open(PARTICIPANTS_FILE, 'w', encoding='utf-8') as f:
        yaml.dump({'participants': participants}, f, default_flow_style=False)


def load_prediction_records() -> list:
    """Load every saved prediction record, oldest first."""
    return _load_yaml_list(PREDICTIONS_FILE, 'predictions')


def save_prediction_records(records: list):
    """Save prediction records to YAML."""
    os.makedirs(DATA_DIR, exist_ok=True)
    with open(PREDICTIONS_FILE, 'w', encoding='utf-8') as f:
        yaml.dump({'predictions': records}, f, default_flow_style=False)


def validate_registration(name: str, phone: str) -> list:
    """Return a list of validation errors for a registration."""
    errors = []
    if len(name) < MIN_NAME_LENGTH:
        errors.append(f'Name must be at least {MIN_NAME_LENGTH} characters')
    if len(phone) < MIN_PHONE_LENGTH:
        errors.append(f'Phone must be at least {MIN_PHONE_LENGTH} characters')
    return errors


def create_participant(name: str, phone: str) -> tuple:
    """Register a participant. Returns (success, participant id or error message)."""
    name = (name or '').strip()
    phone = (phone or '').strip()
    errors = validate_registration(name, phone)
    if errors:
        return False, f'Invalid input: {", ".join(errors)}'

    participant_id = uuid.uuid4().hex[:12]
    with _data_lock():
        participants = load_participants()
        participants.append({
            'id': participant_id,
            'name': name,
            'phone': phone,
            'created': datetime.now().isoformat()
        })
        save_participants(participants)
    app.logger.info(f'Registered participant {participant_id}')
    return True, participant_id


def get_participant(participant_id: str):
    """Find a participant by id, or None."""
    return next((p for p in load_participants() if p['id'] == participant_id), None)


def clean_predictions(predictions: dict) -> dict:
    """Drop cleared picks so absent always means 'not predicted'."""
    return {str(k): str(v) for k, v in predictions.items() if v}


def save_predictions(participant_id: str, predictions: dict) -> tuple:
    """
    Append a prediction record for a participant.

    The champion is the pick for the final matchup. Returns (success, message).
    """
    if get_participant(participant_id) is None:
        return False, 'User not found'

    predictions = clean_predictions(predictions)
    champion = derive(TEMPLATE, predictions).champion
    with _data_lock():
        records = load_prediction_records()
        records.append({
            'id': uuid.uuid4().hex[:12],
            'user_id': participant_id,
            'predictions': predictions,
            'champion': champion,
            'created': datetime.now().isoformat()
        })
        save_prediction_records(records)
    app.logger.info(f'Saved {len(predictions)} predictions for {participant_id} (champion: {champion})')
    return True, 'Predictions saved'


def get_latest_predictions(participant_id: str):
    """Return the most recently saved predictions for a participant, or None."""
    for record in reversed(load_prediction_records()):
        if record.get('user_id') == participant_id:
            return record.get('predictions') or {}
    return None


def get_all_predictions() -> list:
    """All prediction records, newest first, with their participant attached."""
    participants = {p['id']: p for p in load_participants()}
    result = []
    for record in reversed(load_prediction_records()):
        participant = participants.get(record.get('user_id'))
        result.append({
            'id': record.get('id'),
            'participant': {'id': participant['id'], 'name': participant['name']} if participant else None,
            'predictions': record.get('predictions') or {},
            'champion': record.get('champion'),
            'created': record.get('created'),
        })
    return result


def require_admin_key(f):
    """Require valid ADMIN_API_KEY in Authorization header."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected_key = os.environ.get('ADMIN_API_KEY')
        if not expected_key:
            return jsonify({'error': 'Server not configured for admin access'}), 500

        auth_header = request.headers.get('Authorization', '')
        if not auth_header.startswith('Bearer '):
            return jsonify({'error': 'Missing or invalid Authorization header'}), 401

        provided_key = auth_header[7:]  # Strip "Bearer "
        if not hmac.compare_digest(expected_key, provided_key):
            return jsonify({'error': 'Invalid API key'}), 401

        return f(*args, **kwargs)
    return decorated_function


@app.route('/api/teams')
def api_teams():
    """List the roster."""
    return jsonify([team.to_dict() for team in ROSTER.values()])


@app.route('/api/bracket', methods=['GET', 'POST'])
def api_bracket():
    """Derive the bracket for an in-progress set of picks (nothing is saved)."""
    predictions = {}
    if request.method == 'POST':
        data = request.get_json(silent=True) or {}
        predictions = data.get('predictions') or {}
        if not isinstance(predictions, dict):
            return jsonify({'error': 'predictions must be an object'}), 400
    return jsonify(get_bracket_display(TEMPLATE, predictions, ROSTER))


@app.route('/api/register', methods=['POST'])
def api_register():
    """Register a participant and remember them in the session."""
    data = request.get_json(silent=True) or {}
    success, result = create_participant(str(data.get('name') or ''), str(data.get('phone') or ''))
    if not success:
        return jsonify({'success': False, 'error': result}), 400
    session['participant'] = result
    return jsonify({'success': True, 'user_id': result})


@app.route('/api/predictions', methods=['POST'])
def api_save_predictions():
    """Submit a complete set of picks for a participant."""
    data = request.get_json(silent=True) or {}
    participant_id = data.get('user_id') or session.get('participant')
    predictions = data.get('predictions')

    if not participant_id or not isinstance(predictions, dict) or not clean_predictions(predictions):
        app.logger.info('Rejected predictions: missing user id or predictions')
        return jsonify({'success': False, 'error': 'Invalid data provided.'}), 400

    missing = missing_predictions(TEMPLATE, clean_predictions(predictions))
    if missing:
        return jsonify({
            'success': False,
            'error': 'Please complete all matchups before submitting.',
            'missing': missing
        }), 400

    success, message = save_predictions(participant_id, predictions)
    if not success:
        return jsonify({'success': False, 'error': message}), 404
    return jsonify({'success': True})


@app.route('/api/predictions/<participant_id>')
def api_get_predictions(participant_id):
    """Latest saved predictions for a participant (null if none)."""
    return jsonify({'success': True, 'predictions': get_latest_predictions(participant_id)})


@app.route('/api/summary/<participant_id>')
def api_summary(participant_id):
    """Champion and derived bracket for a participant's latest predictions."""
    participant = get_participant(participant_id)
    if participant is None:
        return jsonify({'success': False, 'error': 'User not found'}), 404

    predictions = get_latest_predictions(participant_id) or {}
    display = get_bracket_display(TEMPLATE, predictions, ROSTER)
    return jsonify({
        'success': True,
        'name': participant['name'],
        'champion': display['champion'],
        'champion_team': display['champion_team'],
        'bracket': display
    })


@app.route('/api/admin/predictions')
@require_admin_key
def api_admin_predictions():
    """Every saved prediction record, newest first."""
    records = get_all_predictions()
    for record in records:
        team = get_team(ROSTER, record['champion'])
        record['champion_name'] = team.name if team else None
    return jsonify({'predictions': records})


if __name__ == '__main__':
    app.run(debug=True, port=5000)
